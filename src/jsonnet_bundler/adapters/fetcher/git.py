from __future__ import annotations

import logging
import shutil
from pathlib import Path

from jsonnet_bundler.adapters.command.subprocess_runner import SubprocessCommandRunner
from jsonnet_bundler.adapters.errors import (
    AuthenticationError,
    CommandFailed,
    FetchError,
    NetworkError,
    RefNotFoundError,
)
from jsonnet_bundler.adapters.workspace.filesystem import FilesystemWorkspace
from jsonnet_bundler.domain.json_types import as_json_dict
from jsonnet_bundler.domain.source import GitSource
from jsonnet_bundler.ports.command_runner import CommandResult, CommandRunnerPort

logger = logging.getLogger(__name__)

_AUTH_MARKERS = (
    "permission denied",
    "authentication failed",
    "could not read username",
    "terminal prompts disabled",
    "host key verification failed",
)
_NOT_FOUND_MARKERS = (
    "repository not found",
    "does not appear to be a git repository",
    "not found",
)
_NETWORK_MARKERS = (
    "could not resolve host",
    "unable to access",
    "connection timed out",
    "connection refused",
    "network is unreachable",
    "could not read from remote repository",
)


def _stderr_text(result: CommandResult) -> str:
    return result.stderr.strip() or result.stdout.strip()


def classify_fetch_failure(source: GitSource, result: CommandResult) -> FetchError:
    stderr = _stderr_text(result)
    lowered = stderr.lower()
    details = as_json_dict({"remote": source.remote, "stderr": stderr})
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthenticationError(
            f"Authentication to {source.remote} failed",
            details=details,
            hint="Check your SSH keys or git credentials",
        )
    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        return RefNotFoundError(f"Repository {source.remote} not found", details=details)
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return NetworkError(f"Could not reach {source.remote}", details=details)
    return FetchError(f"git fetch from {source.remote} failed", details=details)


class GitFetcher:
    def __init__(self, runner: CommandRunnerPort | None = None, git: str = "git") -> None:
        self.runner = runner or SubprocessCommandRunner()
        self.git = git

    async def _git(self, args: list[str], cwd: Path) -> CommandResult:
        return await self.runner.run([self.git, *args], cwd=cwd)

    async def _git_checked(self, args: list[str], cwd: Path) -> CommandResult:
        result = await self._git(args, cwd)
        if result.exit_code != 0:
            raise CommandFailed(
                f"git {args[0]} failed",
                details=as_json_dict({"args": args, "stderr": _stderr_text(result)}),
            )
        return result

    async def _resolve_revision(self, repo: Path, source: GitSource, version: str) -> str:
        for candidate in (f"origin/{version}", version):
            result = await self._git(
                ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"], repo
            )
            revision = result.stdout.strip()
            if result.exit_code == 0 and revision:
                return revision.splitlines()[0]
        raise RefNotFoundError(
            f"Version {version} not found in {source.remote}",
            details=as_json_dict({"remote": source.remote, "version": version}),
        )

    async def fetch(self, source: GitSource, version: str, dest: Path) -> str:
        workspace = FilesystemWorkspace(dest.parent)
        stage = workspace.begin_transaction(prefix=f"{dest.name}-")
        try:
            await self._git_checked(["init", "--quiet"], stage)
            await self._git_checked(["remote", "add", "origin", source.remote], stage)
            logger.debug("fetching %s into %s", source.remote, stage)
            fetched = await self._git(["fetch", "--quiet", "--tags", "origin"], stage)
            if fetched.exit_code != 0:
                raise classify_fetch_failure(source, fetched)

            revision = await self._resolve_revision(stage, source, version)
            await self._git_checked(
                ["-c", "advice.detachedHead=false", "checkout", "--quiet", "--detach", revision],
                stage,
            )
            shutil.rmtree(stage / ".git", ignore_errors=True)

            tree = stage / source.subdir if source.subdir else stage
            if tree != stage and stage.resolve() not in tree.resolve().parents:
                raise FetchError(
                    f"Subdirectory {source.subdir} leaves the checkout of {source.remote}",
                    details=as_json_dict({"remote": source.remote, "subdir": source.subdir}),
                )
            if not tree.is_dir():
                raise RefNotFoundError(
                    f"Subdirectory {source.subdir} not found in {source.remote}@{version}",
                    details=as_json_dict({"remote": source.remote, "subdir": source.subdir}),
                )
            workspace.commit(tree, dest)
        finally:
            workspace.discard(stage)
        logger.debug("materialized %s@%s at %s", source.remote, revision, dest)
        return revision
