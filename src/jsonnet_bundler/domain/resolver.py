"""Turn free-form package locations into dependencies.

Two families are recognized, tried in order:

* ``git+ssh://git@<host>:<org>/<repo>.git[/<subdir>][@<version>]``
* ``github.com/<user>/<repo>[/<subdir>][@<version>]``

Within a family the shapes go from most to least specific, because the
shorter patterns also match the longer strings and would swallow the
extra suffix.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Callable

from jsonnet_bundler.domain.dependency import DEFAULT_VERSION, Dependency
from jsonnet_bundler.domain.errors import UnrecognizedSourceError
from jsonnet_bundler.domain.source import (
    GitSource,
    SourceDescriptor,
    clean_subdir,
    is_safe_subdir,
)

_SUBDIR = r"/(?P<subdir>.*)"
_VERSION = r"@(?P<version>.*)"

_GIT_SSH = r"git\+ssh://git@(?P<host>[^:]+):(?P<org>[^/]+)/(?P<repo>[^/]+)\.git"
_GITHUB_SLUG = r"github\.com/(?P<user>[-_a-zA-Z0-9]+)/(?P<repo>[-_a-zA-Z0-9]+)"


@dataclass(frozen=True)
class _Family:
    name: str
    shapes: tuple[re.Pattern[str], ...]
    extract: Callable[[dict[str, str]], Dependency]

    @property
    def recognizer(self) -> re.Pattern[str]:
        return self.shapes[-1]

    def match(self, raw: str) -> Dependency | None:
        if not self.recognizer.search(raw):
            return None
        for shape in self.shapes:
            found = shape.search(raw)
            if found:
                groups = {k: v for k, v in found.groupdict().items() if v is not None}
                if not is_safe_subdir(groups.get("subdir", "").rstrip("/")):
                    return None
                return self.extract(groups)
        return None


def _shapes(base: str) -> tuple[re.Pattern[str], ...]:
    return (
        re.compile(base + _SUBDIR + _VERSION),
        re.compile(base + _SUBDIR),
        re.compile(base + _VERSION),
        re.compile(base),
    )


def _from_git_ssh(groups: dict[str, str]) -> Dependency:
    repo = groups["repo"]
    return Dependency(
        name=repo,
        source=GitSource(
            remote=f"git@{groups['host']}:{groups['org']}/{repo}",
            subdir=groups.get("subdir", ""),
        ),
        version=groups.get("version") or DEFAULT_VERSION,
    )


def _from_github(groups: dict[str, str]) -> Dependency:
    repo = groups["repo"]
    subdir = clean_subdir(groups.get("subdir", ""))
    # Sub-packages of a monorepo are named after their directory.
    name = posixpath.basename(subdir) if subdir else repo
    return Dependency(
        name=name,
        source=GitSource(
            remote=f"https://github.com/{groups['user']}/{repo}",
            subdir=subdir,
        ),
        version=groups.get("version") or DEFAULT_VERSION,
    )


FAMILIES: tuple[_Family, ...] = (
    _Family("git+ssh", _shapes(_GIT_SSH), _from_git_ssh),
    _Family("github", _shapes(_GITHUB_SLUG), _from_github),
)


def resolve(raw: str) -> Dependency | None:
    """Return the dependency described by ``raw``, or None if unrecognized."""
    for family in FAMILIES:
        if family.recognizer.search(raw):
            return family.match(raw)
    return None


def resolve_source(raw: str) -> SourceDescriptor | None:
    dependency = resolve(raw)
    return dependency.source if dependency is not None else None


def parse_dependency(raw: str) -> Dependency:
    dependency = resolve(raw)
    if dependency is None:
        raise UnrecognizedSourceError(
            f"Unsupported package source: {raw}",
            details={"source": raw},
            hint="Use git+ssh://git@<host>:<org>/<repo>.git or github.com/<user>/<repo>",
        )
    return dependency
