from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from jsonnet_bundler.adapters.errors import CommandNotFound
from jsonnet_bundler.ports.command_runner import CommandResult

logger = logging.getLogger(__name__)


class SubprocessCommandRunner:
    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = env

    def _environment(self) -> dict[str, str]:
        full_env = os.environ.copy()
        # Never block on a credential prompt.
        full_env.setdefault("GIT_TERMINAL_PROMPT", "0")
        if self.env:
            full_env.update(self.env)
        return full_env

    async def run(self, args: list[str], cwd: Path | None = None) -> CommandResult:
        logger.debug("run: %s (cwd=%s)", " ".join(args), cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                cwd=str(cwd) if cwd is not None else None,
                env=self._environment(),
            )
        except FileNotFoundError as e:
            raise CommandNotFound(
                f"Command not found: {args[0]}",
                details={"command": args[0]},
                cause=e,
            )

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise

        return CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
