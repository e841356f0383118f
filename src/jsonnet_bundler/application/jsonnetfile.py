"""Reading and writing ``jsonnetfile.json`` and its lock file."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import TypeVar

import jsonschema

from jsonnet_bundler.adapters.errors import WorkspaceCommitError
from jsonnet_bundler.adapters.workspace.filesystem import write_atomic
from jsonnet_bundler.domain.dependency import DEFAULT_VERSION, Dependency, DependencySet, Lock, Manifest
from jsonnet_bundler.domain.errors import (
    LockEncodeError,
    LockWriteError,
    ManifestLoadError,
    ManifestWriteError,
)
from jsonnet_bundler.domain.json_types import JsonDict, as_json_dict, as_json_list, as_str
from jsonnet_bundler.domain.source import GitSource

MANIFEST_FILE = "jsonnetfile.json"
SCHEMA_PATH = Path(__file__).with_name("jsonnetfile.schema.v1.json")

S = TypeVar("S", bound=DependencySet)


def lock_path_for(manifest_path: Path) -> Path:
    return manifest_path.with_name(f"{manifest_path.stem}.lock{manifest_path.suffix}")


@lru_cache(maxsize=1)
def _schema() -> JsonDict:
    return as_json_dict(json.loads(SCHEMA_PATH.read_text(encoding="utf-8")))


def _read_document(path: Path) -> JsonDict:
    try:
        raw: object = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ManifestLoadError(f"{path} not found", details={"path": str(path)}, cause=e)
    except (OSError, ValueError) as e:
        raise ManifestLoadError(f"Could not parse {path}", details={"path": str(path)}, cause=e)
    try:
        jsonschema.validate(raw, _schema())
    except jsonschema.ValidationError as e:
        raise ManifestLoadError(
            f"Invalid {path.name}: {e.message}",
            details={"path": str(path), "field": "/".join(str(p) for p in e.absolute_path)},
        )
    return as_json_dict(raw)


def _decode_dependency(entry: JsonDict) -> Dependency:
    git = as_json_dict(as_json_dict(entry.get("source")).get("git"))
    return Dependency(
        name=as_str(entry.get("name")),
        source=GitSource(
            remote=as_str(git.get("remote")),
            subdir=as_str(git.get("subdir")),
        ),
        version=as_str(entry.get("version")) or DEFAULT_VERSION,
    )


def decode(document: JsonDict, kind: type[S]) -> S:
    deps = [_decode_dependency(as_json_dict(item)) for item in as_json_list(document.get("dependencies"))]
    return kind(dependencies=tuple(deps))


def load_manifest(path: Path) -> Manifest:
    return decode(_read_document(path), Manifest)


def load_lock(path: Path) -> Lock | None:
    if not path.exists():
        return None
    return decode(_read_document(path), Lock)


def to_json_dict(deps: DependencySet) -> JsonDict:
    # Key order is part of the on-disk format.
    return {
        "dependencies": [
            {
                "name": dep.name,
                "source": {"git": {"remote": dep.source.remote, "subdir": dep.source.subdir}},
                "version": dep.version,
            }
            for dep in deps
        ]
    }


def encode(deps: DependencySet) -> str:
    try:
        return json.dumps(to_json_dict(deps), indent=4) + "\n"
    except (TypeError, ValueError) as e:
        raise LockEncodeError("Could not encode dependencies", cause=e)


def write_lock(path: Path, lock: Lock) -> None:
    content = encode(lock)
    try:
        write_atomic(path, content)
    except WorkspaceCommitError as e:
        raise LockWriteError(f"Could not write {path}", details={"path": str(path)}, cause=e.cause)


def write_manifest(path: Path, manifest: Manifest) -> None:
    try:
        content = encode(manifest)
    except LockEncodeError as e:
        raise ManifestWriteError(f"Could not encode {path}", cause=e.cause)
    try:
        write_atomic(path, content)
    except WorkspaceCommitError as e:
        raise ManifestWriteError(f"Could not write {path}", details={"path": str(path)}, cause=e.cause)
