import pytest

from jsonnet_bundler.domain.dependency import Dependency, Lock, Manifest
from jsonnet_bundler.domain.source import GitSource


def _dep(name: str, version: str = "master", remote: str | None = None) -> Dependency:
    return Dependency(name, GitSource(remote or f"https://github.com/org/{name}"), version)


def test_git_source_requires_remote():
    with pytest.raises(ValueError):
        GitSource(remote="")


def test_git_source_cleans_subdir():
    assert GitSource("git@h:o/r", "/lib/").subdir == "lib"


@pytest.mark.parametrize("subdir", ["..", "../victim", "lib/../..", "a/./b", "a//b"])
def test_git_source_rejects_subdir_outside_repository(subdir):
    with pytest.raises(ValueError):
        GitSource("git@h:o/r", subdir)


def test_dependency_requires_name():
    with pytest.raises(ValueError):
        Dependency("", GitSource("git@h:o/r"))


def test_with_dependency_appends_and_replaces_in_place():
    manifest = Manifest((_dep("c"), _dep("a")))
    manifest = manifest.with_dependency(_dep("b"))
    manifest = manifest.with_dependency(_dep("c", "v2"))
    assert manifest.names() == ["c", "a", "b"]
    assert manifest.get("c").version == "v2"
    assert isinstance(manifest, Manifest)


def test_pinned_version_requires_same_source():
    lock = Lock((_dep("a", "abc123"),))
    assert lock.pinned_version(_dep("a")) == "abc123"
    assert lock.pinned_version(_dep("a", remote="https://github.com/fork/a")) is None
    assert lock.pinned_version(_dep("missing")) is None
