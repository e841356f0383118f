from pathlib import Path
from typing import Protocol

from jsonnet_bundler.domain.source import SourceDescriptor


class FetcherPort(Protocol):
    """Materializes a package tree into ``dest`` and reports the revision fetched.

    Implementations must be safe to call repeatedly for the same source and
    version, and must raise an ``AdapterError`` subclass on failure.
    """

    async def fetch(self, source: SourceDescriptor, version: str, dest: Path) -> str: ...
