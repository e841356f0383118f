from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from jsonnet_bundler.domain.source import SourceDescriptor


class FakeFetcher:
    """In-memory fetch collaborator.

    ``revisions`` maps (remote, version) to the revision reported; unknown
    pairs report the requested version unchanged, so a pinned revision
    round-trips.
    """

    def __init__(
        self,
        revisions: dict[tuple[str, str], str] | None = None,
        delays: dict[str, float] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.revisions = revisions or {}
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls: list[tuple[str, str, Path]] = []
        self.completed: list[str] = []

    async def fetch(self, source: SourceDescriptor, version: str, dest: Path) -> str:
        self.calls.append((source.remote, version, dest))
        await asyncio.sleep(self.delays.get(source.remote, 0))
        if source.remote in self.failures:
            raise self.failures[source.remote]
        dest.mkdir(parents=True, exist_ok=True)
        (dest / "main.libsonnet").write_text(f"// {source.remote}@{version}\n")
        self.completed.append(source.remote)
        return self.revisions.get((source.remote, version), version)


@pytest.fixture
def fake_fetcher_cls() -> type[FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logging.getLogger("jsonnet_bundler").handlers.clear()
