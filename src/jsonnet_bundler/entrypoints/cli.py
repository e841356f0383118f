from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, TypeVar
import asyncio
import contextlib
import json
import signal

import typer

from jsonnet_bundler.adapters.fetcher.git import GitFetcher
from jsonnet_bundler.application.init_manifest import init_manifest
from jsonnet_bundler.application.install_packages import install_packages, update_packages
from jsonnet_bundler.application.result_serialization import serialize_result
from jsonnet_bundler.application.settings import Settings, load_settings
from jsonnet_bundler.domain.errors import SettingsError
from jsonnet_bundler.domain.result import Result
from jsonnet_bundler.logging import setup_logging
from jsonnet_bundler.ports.fetcher import FetcherPort

T = TypeVar("T")

app = typer.Typer(add_completion=False, help="A jsonnet package manager")


@dataclass
class Invocation:
    workdir: Path
    settings: Settings


def _fetcher() -> FetcherPort:
    return GitFetcher()


def _invocation(ctx: typer.Context) -> Invocation:
    obj = ctx.find_object(Invocation)
    if obj is None:
        raise RuntimeError("CLI callback did not run")
    return obj


def _report(result: Result[T], command: str, args: list[str], as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(serialize_result(result, command=command, args=args)))
    else:
        for diag in result.diagnostics:
            typer.echo(f"{diag.severity.value}: {diag.message}", err=True)
            if diag.hint:
                typer.echo(f"  hint: {diag.hint}", err=True)
    raise typer.Exit(result.exit_code)


async def _interruptible(work: Callable[[asyncio.Event], Awaitable[T]]) -> T:
    abort_signal = asyncio.Event()
    loop = asyncio.get_running_loop()
    # Signal handlers are only available on the main thread of a Unix loop.
    with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
        loop.add_signal_handler(signal.SIGINT, abort_signal.set)
    try:
        return await work(abort_signal)
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.remove_signal_handler(signal.SIGINT)


def _run(work: Callable[[asyncio.Event], Awaitable[T]]) -> T:
    try:
        return asyncio.run(_interruptible(work))
    except KeyboardInterrupt:
        typer.echo("error: cancelled", err=True)
        raise typer.Exit(3)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    jsonnetpkg_home: Path | None = typer.Option(
        None, "--jsonnetpkg-home", help="The directory used to cache packages in."
    ),
    jobs: int | None = typer.Option(None, "--jobs", min=1, help="Parallel fetches."),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Abort resolution after this many seconds."
    ),
    log_level: str | None = typer.Option(None, "--log-level"),
):
    try:
        workdir = Path.cwd()
    except OSError as e:
        typer.echo(f"error: cannot determine working directory: {e}", err=True)
        raise typer.Exit(1)
    try:
        settings = load_settings(
            workdir,
            overrides={
                "home": jsonnetpkg_home,
                "jobs": jobs,
                "timeout": timeout,
                "log_level": log_level,
            },
        )
    except SettingsError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)
    setup_logging(settings.log_level)
    ctx.obj = Invocation(workdir=workdir, settings=settings)
    if ctx.invoked_subcommand is None:
        install(ctx, packages=None, as_json=False)


@app.command()
def init(ctx: typer.Context):
    """Initialize a new empty jsonnetfile."""
    inv = _invocation(ctx)
    result = init_manifest(inv.workdir, inv.settings.manifest_name)
    _report(result, "init", [], as_json=False)


@app.command()
def install(
    ctx: typer.Context,
    packages: list[str] | None = typer.Argument(None, help="URLs to package to install"),
    as_json: bool = typer.Option(False, "--json"),
):
    """Install all dependencies or install specific ones."""
    inv = _invocation(ctx)
    urls = list(packages or [])
    fetcher = _fetcher()
    result = _run(
        lambda abort_signal: install_packages(
            inv.workdir, urls, inv.settings, fetcher, abort_signal=abort_signal
        )
    )
    _report(result, "install", urls, as_json)


@app.command()
def update(ctx: typer.Context, as_json: bool = typer.Option(False, "--json")):
    """Update all dependencies."""
    inv = _invocation(ctx)
    fetcher = _fetcher()
    result = _run(
        lambda abort_signal: update_packages(
            inv.workdir, inv.settings, fetcher, abort_signal=abort_signal
        )
    )
    _report(result, "update", [], as_json)
