from __future__ import annotations

from pathlib import Path

from jsonnet_bundler.application.jsonnetfile import MANIFEST_FILE, write_manifest
from jsonnet_bundler.domain.dependency import Manifest
from jsonnet_bundler.domain.diagnostics import Diagnostic, FileLocation, Severity
from jsonnet_bundler.domain.errors import ManifestWriteError
from jsonnet_bundler.domain.result import Result


def init_manifest(workdir: Path, manifest_name: str = MANIFEST_FILE) -> Result[Manifest]:
    path = workdir / manifest_name
    if path.exists():
        return Result(
            diagnostics=[
                Diagnostic(
                    code="MANIFEST_EXISTS",
                    rule="manifest.init",
                    severity=Severity.WARN,
                    message=f"{manifest_name} already exists; leaving it untouched",
                    location=FileLocation(str(path)),
                )
            ]
        )
    manifest = Manifest()
    try:
        write_manifest(path, manifest)
    except ManifestWriteError as e:
        return Result(
            diagnostics=[
                Diagnostic(
                    code="MANIFEST_WRITE_FAILED",
                    rule="manifest.write",
                    severity=Severity.ERROR,
                    message=str(e),
                    location=FileLocation(str(path)),
                    is_execution=True,
                )
            ]
        )
    return Result(value=manifest, artifacts=[{"kind": "manifest", "path": str(path)}])
