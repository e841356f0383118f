from __future__ import annotations

from dataclasses import dataclass

from jsonnet_bundler.domain.json_types import JsonDict


@dataclass(eq=False)
class BundlerError(Exception):
    message: str
    details: JsonDict | None = None
    hint: str | None = None
    cause: BaseException | None = None

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class UnrecognizedSourceError(BundlerError):
    pass


class ManifestLoadError(BundlerError):
    pass


class ManifestWriteError(BundlerError):
    pass


class CacheDirError(BundlerError):
    pass


@dataclass(eq=False)
class ResolutionError(BundlerError):
    dependency: str = ""


class InstallCancelledError(BundlerError):
    pass


class LockEncodeError(BundlerError):
    pass


class LockWriteError(BundlerError):
    pass


class SettingsError(BundlerError):
    pass
