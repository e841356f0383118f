from pathlib import Path
import os
import shutil
import tempfile

from jsonnet_bundler.adapters.errors import WorkspaceCommitError, WorkspaceTransactionError

STAGING_DIR_NAME = ".tmp"


class FilesystemWorkspace:
    """Stages package trees under ``root/.tmp`` and swaps them into place."""

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def staging_root(self) -> Path:
        return self.root / STAGING_DIR_NAME

    def _rename(self, src: Path, dest: Path) -> None:
        os.replace(src, dest)

    def begin_transaction(self, prefix: str = "jsonnetpkg-") -> Path:
        try:
            self.staging_root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=prefix, dir=self.staging_root))
        except OSError as e:
            raise WorkspaceTransactionError(
                "Could not create staging directory",
                details={"root": str(self.root)},
                cause=e,
            )

    def commit(self, tree: Path, dest: Path) -> None:
        """Replace ``dest`` with ``tree``; the previous ``dest`` survives a failed swap."""
        backup: Path | None = None
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            self.staging_root.mkdir(parents=True, exist_ok=True)
            if dest.exists():
                backup = Path(
                    tempfile.mkdtemp(prefix="jsonnetpkg-backup-", dir=self.staging_root)
                ) / dest.name
                self._rename(dest, backup)
            self._rename(tree, dest)
        except Exception as e:
            if backup is not None and backup.exists() and not dest.exists():
                os.replace(backup, dest)
            raise WorkspaceCommitError(
                f"Could not move package into {dest}",
                details={"dest": str(dest)},
                cause=e,
            )
        finally:
            if backup is not None:
                shutil.rmtree(backup.parent, ignore_errors=True)

    def discard(self, stage: Path) -> None:
        shutil.rmtree(stage, ignore_errors=True)
        try:
            self.staging_root.rmdir()
        except OSError:
            pass


def write_atomic(path: Path, content: str) -> None:
    """Write ``content`` so readers see either the old file or the new one."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as e:
        raise WorkspaceCommitError(
            f"Could not write {path}",
            details={"path": str(path)},
            cause=e,
        )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if path.exists():
            shutil.copymode(path, tmp_path)
        else:
            tmp_path.chmod(0o644)
        os.replace(tmp_path, path)
    except Exception as e:
        tmp_path.unlink(missing_ok=True)
        raise WorkspaceCommitError(
            f"Could not write {path}",
            details={"path": str(path)},
            cause=e,
        )
