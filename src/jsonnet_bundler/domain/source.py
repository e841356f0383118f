from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, TypeAlias


@dataclass(frozen=True)
class GitSource:
    """A package living in a git remote, optionally below ``subdir``."""

    kind: ClassVar[str] = "git"

    remote: str
    subdir: str = ""

    def __post_init__(self) -> None:
        if not self.remote:
            raise ValueError("git source requires a remote")
        subdir = clean_subdir(self.subdir)
        if not is_safe_subdir(subdir):
            raise ValueError(f"subdir must be a relative path inside the repository: {self.subdir!r}")
        object.__setattr__(self, "subdir", subdir)


# Tagged union of source variants; git is the only kind so far.
SourceDescriptor: TypeAlias = GitSource


def clean_subdir(subdir: str) -> str:
    return subdir.strip("/")


def is_safe_subdir(subdir: str) -> bool:
    """True for "" or a relative path whose parts are real names; trailing ``/`` is ignored."""
    if not subdir:
        return True
    if subdir.startswith("/"):
        return False
    return all(part not in ("", ".", "..") for part in subdir.rstrip("/").split("/"))
