from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence

from jsonnet_bundler.application.install import ResolutionPolicy, install, persist_lock
from jsonnet_bundler.application.jsonnetfile import (
    load_manifest,
    lock_path_for,
    write_manifest,
)
from jsonnet_bundler.application.settings import Settings
from jsonnet_bundler.domain.dependency import Dependency, Lock
from jsonnet_bundler.domain.diagnostics import (
    Diagnostic,
    DependencyLocation,
    FileLocation,
    Location,
    Severity,
    ValueLocation,
)
from jsonnet_bundler.domain.errors import (
    BundlerError,
    CacheDirError,
    InstallCancelledError,
    LockEncodeError,
    LockWriteError,
    ManifestLoadError,
    ManifestWriteError,
    ResolutionError,
    UnrecognizedSourceError,
)
from jsonnet_bundler.domain.json_types import JsonDict, as_json_dict, as_str
from jsonnet_bundler.domain.resolver import parse_dependency
from jsonnet_bundler.domain.result import Result
from jsonnet_bundler.ports.fetcher import FetcherPort

_ERROR_CODES: tuple[tuple[type[BundlerError], str, str], ...] = (
    (UnrecognizedSourceError, "UNSUPPORTED_SOURCE", "source.resolve"),
    (ManifestLoadError, "MANIFEST_LOAD_FAILED", "manifest.load"),
    (ManifestWriteError, "MANIFEST_WRITE_FAILED", "manifest.write"),
    (CacheDirError, "CACHE_DIR_FAILED", "cache.prepare"),
    (ResolutionError, "RESOLUTION_FAILED", "dependency.resolve"),
    (InstallCancelledError, "INSTALL_CANCELLED", "install.cancel"),
    (LockEncodeError, "LOCK_ENCODE_FAILED", "lock.encode"),
    (LockWriteError, "LOCK_WRITE_FAILED", "lock.write"),
)


def _location(error: BundlerError) -> Location | None:
    details = as_json_dict(error.details)
    if isinstance(error, ResolutionError) and error.dependency:
        return DependencyLocation(error.dependency)
    if isinstance(error, UnrecognizedSourceError):
        return ValueLocation("source", as_str(details.get("source")))
    if details.get("path"):
        return FileLocation(as_str(details.get("path")))
    return None


def diagnostic_for(error: BundlerError) -> Diagnostic:
    code, rule = "INSTALL_FAILED", "install"
    for kind, kind_code, kind_rule in _ERROR_CODES:
        if isinstance(error, kind):
            code, rule = kind_code, kind_rule
            break
    details = dict(error.details or {})
    if error.cause is not None:
        details["cause"] = str(error.cause)
    return Diagnostic(
        code=code,
        rule=rule,
        severity=Severity.ERROR,
        message=str(error),
        location=_location(error),
        hint=error.hint,
        details=details or None,
        is_execution=not isinstance(error, UnrecognizedSourceError),
    )


def _lock_artifact(lock_path: Path, lock: Lock) -> JsonDict:
    return as_json_dict(
        {
            "kind": "lock",
            "path": str(lock_path),
            "dependencies": [{"name": d.name, "version": d.version} for d in lock],
        }
    )


async def _run(
    workdir: Path,
    urls: Sequence[str],
    settings: Settings,
    fetcher: FetcherPort,
    policy: ResolutionPolicy,
    abort_signal: asyncio.Event | None,
) -> Result[Lock]:
    manifest_path = settings.manifest_path(workdir)
    try:
        manifest = load_manifest(manifest_path)
    except ManifestLoadError as e:
        return Result(diagnostics=[diagnostic_for(e)])

    diagnostics: list[Diagnostic] = []
    added: list[Dependency] = []
    for url in urls:
        try:
            added.append(parse_dependency(url))
        except UnrecognizedSourceError as e:
            diagnostics.append(diagnostic_for(e))
    if diagnostics:
        return Result(diagnostics=diagnostics)

    for dep in added:
        manifest = manifest.with_dependency(dep)

    try:
        lock = await install(
            policy,
            manifest_path,
            manifest,
            settings.cache_dir(workdir),
            fetcher=fetcher,
            jobs=settings.jobs,
            timeout=settings.timeout,
            abort_signal=abort_signal,
            reresolve={dep.name for dep in added},
        )
        if added:
            write_manifest(manifest_path, manifest)
        # The lock on disk never lists a dependency the manifest lacks.
        persist_lock(manifest_path, lock)
    except BundlerError as e:
        return Result(diagnostics=[diagnostic_for(e)])

    return Result(value=lock, artifacts=[_lock_artifact(lock_path_for(manifest_path), lock)])


async def install_packages(
    workdir: Path,
    urls: Sequence[str],
    settings: Settings,
    fetcher: FetcherPort,
    *,
    abort_signal: asyncio.Event | None = None,
) -> Result[Lock]:
    """Add ``urls`` to the manifest and install, keeping locked revisions."""
    return await _run(
        workdir, urls, settings, fetcher, ResolutionPolicy.USE_EXISTING_LOCK, abort_signal
    )


async def update_packages(
    workdir: Path,
    settings: Settings,
    fetcher: FetcherPort,
    *,
    abort_signal: asyncio.Event | None = None,
) -> Result[Lock]:
    """Re-resolve every dependency, ignoring the lock."""
    return await _run(
        workdir, (), settings, fetcher, ResolutionPolicy.FORCE_RERESOLVE, abort_signal
    )
