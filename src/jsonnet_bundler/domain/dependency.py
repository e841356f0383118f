from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, TypeVar

from jsonnet_bundler.domain.source import SourceDescriptor

DEFAULT_VERSION = "master"

S = TypeVar("S", bound="DependencySet")


@dataclass(frozen=True)
class Dependency:
    name: str
    source: SourceDescriptor
    version: str = DEFAULT_VERSION

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("dependency name must not be empty")

    def with_version(self, version: str) -> Dependency:
        return replace(self, version=version)


@dataclass(frozen=True)
class DependencySet:
    dependencies: tuple[Dependency, ...] = ()

    def __iter__(self) -> Iterator[Dependency]:
        return iter(self.dependencies)

    def __len__(self) -> int:
        return len(self.dependencies)

    def names(self) -> list[str]:
        return [dep.name for dep in self.dependencies]

    def get(self, name: str) -> Dependency | None:
        for dep in self.dependencies:
            if dep.name == name:
                return dep
        return None

    def with_dependency(self: S, dependency: Dependency) -> S:
        """Return a copy with ``dependency`` replacing its namesake, or appended."""
        deps = list(self.dependencies)
        for index, existing in enumerate(deps):
            if existing.name == dependency.name:
                deps[index] = dependency
                break
        else:
            deps.append(dependency)
        return replace(self, dependencies=tuple(deps))


@dataclass(frozen=True)
class Manifest(DependencySet):
    pass


@dataclass(frozen=True)
class Lock(DependencySet):
    def pinned_version(self, dependency: Dependency) -> str | None:
        locked = self.get(dependency.name)
        if locked is None or locked.source != dependency.source:
            return None
        return locked.version
