"""Resolve every manifest dependency into the cache and assemble a lock.

The run is all-or-nothing: a lock is only returned (and, through
``install_and_lock``, written) once every dependency has been fetched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Collection, TypeVar

from jsonnet_bundler.adapters.errors import AdapterError
from jsonnet_bundler.adapters.workspace.filesystem import STAGING_DIR_NAME
from jsonnet_bundler.application.jsonnetfile import load_lock, lock_path_for, write_lock
from jsonnet_bundler.domain.dependency import Dependency, Lock, Manifest
from jsonnet_bundler.domain.errors import CacheDirError, InstallCancelledError, ResolutionError
from jsonnet_bundler.domain.json_types import as_json_dict
from jsonnet_bundler.ports.fetcher import FetcherPort

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_JOBS = 4


class ResolutionPolicy(str, Enum):
    USE_EXISTING_LOCK = "use-existing-lock"
    FORCE_RERESOLVE = "force-reresolve"


@dataclass(frozen=True)
class PlannedFetch:
    dependency: Dependency
    version: str
    pinned: bool = False


def plan_fetches(
    policy: ResolutionPolicy,
    manifest: Manifest,
    existing: Lock | None,
    reresolve: Collection[str] = (),
) -> list[PlannedFetch]:
    plans: list[PlannedFetch] = []
    for dep in manifest:
        pinned = None
        if (
            policy is ResolutionPolicy.USE_EXISTING_LOCK
            and existing is not None
            and dep.name not in reresolve
        ):
            pinned = existing.pinned_version(dep)
        if pinned:
            plans.append(PlannedFetch(dep, pinned, pinned=True))
        else:
            plans.append(PlannedFetch(dep, dep.version))
    return plans


def prepare_cache_dir(cache_dir: Path) -> None:
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CacheDirError(
            f"Could not create cache directory {cache_dir}",
            details={"path": str(cache_dir)},
            cause=e,
        )


def _destination(cache_dir: Path, dep: Dependency) -> Path:
    dest = cache_dir / dep.name
    if cache_dir.resolve() not in dest.resolve().parents:
        raise ResolutionError(
            f"Dependency name {dep.name!r} escapes the cache directory",
            details={"path": str(cache_dir)},
            dependency=dep.name,
        )
    if dest.resolve().relative_to(cache_dir.resolve()).parts[0] == STAGING_DIR_NAME:
        raise ResolutionError(
            f"Dependency name {dep.name!r} is reserved for staging",
            details={"path": str(cache_dir)},
            dependency=dep.name,
        )
    return dest


async def _fetch_one(
    plan: PlannedFetch,
    cache_dir: Path,
    fetcher: FetcherPort,
    semaphore: asyncio.Semaphore,
) -> str:
    dep = plan.dependency
    dest = _destination(cache_dir, dep)
    async with semaphore:
        logger.info(
            "resolving %s@%s from %s%s",
            dep.name,
            plan.version,
            dep.source.remote,
            " (locked)" if plan.pinned else "",
        )
        try:
            revision = await fetcher.fetch(dep.source, plan.version, dest)
        except (AdapterError, OSError) as e:
            raise ResolutionError(
                f"Failed to resolve {dep.name}@{plan.version}",
                details=as_json_dict(
                    {"remote": dep.source.remote, "subdir": dep.source.subdir, "version": plan.version}
                ),
                cause=e,
                dependency=dep.name,
            )
    if not revision:
        raise ResolutionError(
            f"No revision reported for {dep.name}@{plan.version}",
            dependency=dep.name,
        )
    logger.info("resolved %s to %s", dep.name, revision)
    return revision


def _first_failure(group: BaseExceptionGroup, order: list[str]) -> BaseException:
    failures = list(group.exceptions)
    resolution = [e for e in failures if isinstance(e, ResolutionError)]
    reported = failures[0]
    if resolution:
        reported = min(
            resolution,
            key=lambda e: order.index(e.dependency) if e.dependency in order else len(order),
        )
    for failure in failures:
        if failure is not reported:
            logger.debug("suppressed concurrent failure: %r", failure, exc_info=failure)
    return reported


async def fetch_all(
    plans: list[PlannedFetch],
    cache_dir: Path,
    fetcher: FetcherPort,
    jobs: int = DEFAULT_JOBS,
) -> list[str]:
    """Fetch concurrently; revisions come back in ``plans`` order."""
    semaphore = asyncio.Semaphore(max(1, jobs))
    tasks: list[asyncio.Task[str]] = []
    try:
        async with asyncio.TaskGroup() as group:
            for plan in plans:
                tasks.append(group.create_task(_fetch_one(plan, cache_dir, fetcher, semaphore)))
    except BaseExceptionGroup as group_error:
        raise _first_failure(group_error, [p.dependency.name for p in plans]) from None
    return [task.result() for task in tasks]


async def run_cancellable(
    work: Awaitable[T],
    timeout: float | None = None,
    abort_signal: asyncio.Event | None = None,
) -> T:
    """Await ``work``; an elapsed timeout or a set ``abort_signal`` cancels it."""
    task = asyncio.ensure_future(work)
    waiters: set[asyncio.Future[object]] = {task}
    abort_task: asyncio.Task[bool] | None = None
    if abort_signal is not None:
        abort_task = asyncio.create_task(abort_signal.wait())
        waiters.add(abort_task)
    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if abort_task is not None:
            abort_task.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    if task not in done:
        reason = "aborted" if abort_signal is not None and abort_signal.is_set() else "timed out"
        raise InstallCancelledError(
            f"Dependency resolution {reason}",
            details=as_json_dict({"reason": reason, "timeout": timeout}),
        )
    return task.result()


async def install(
    policy: ResolutionPolicy,
    manifest_path: Path,
    manifest: Manifest,
    cache_dir: Path,
    *,
    fetcher: FetcherPort,
    jobs: int = DEFAULT_JOBS,
    timeout: float | None = None,
    abort_signal: asyncio.Event | None = None,
    reresolve: Collection[str] = (),
) -> Lock:
    prepare_cache_dir(cache_dir)

    existing: Lock | None = None
    if policy is ResolutionPolicy.USE_EXISTING_LOCK:
        existing = load_lock(lock_path_for(manifest_path))
    else:
        logger.debug("ignoring existing lock for %s", manifest_path)

    plans = plan_fetches(policy, manifest, existing, reresolve)
    revisions = await run_cancellable(
        fetch_all(plans, cache_dir, fetcher, jobs),
        timeout=timeout,
        abort_signal=abort_signal,
    )
    return Lock(
        dependencies=tuple(
            plan.dependency.with_version(revision) for plan, revision in zip(plans, revisions)
        )
    )


def persist_lock(manifest_path: Path, lock: Lock) -> None:
    lock_path = lock_path_for(manifest_path)
    write_lock(lock_path, lock)
    logger.info("wrote %s (%d dependencies)", lock_path, len(lock))


async def install_and_lock(
    policy: ResolutionPolicy,
    manifest_path: Path,
    manifest: Manifest,
    cache_dir: Path,
    *,
    fetcher: FetcherPort,
    jobs: int = DEFAULT_JOBS,
    timeout: float | None = None,
    abort_signal: asyncio.Event | None = None,
    reresolve: Collection[str] = (),
) -> Lock:
    lock = await install(
        policy,
        manifest_path,
        manifest,
        cache_dir,
        fetcher=fetcher,
        jobs=jobs,
        timeout=timeout,
        abort_signal=abort_signal,
        reresolve=reresolve,
    )
    persist_lock(manifest_path, lock)
    return lock
