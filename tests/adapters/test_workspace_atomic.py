import pytest

from jsonnet_bundler.adapters.errors import WorkspaceCommitError
from jsonnet_bundler.adapters.workspace.filesystem import FilesystemWorkspace, write_atomic


def test_commit_replaces_existing_package(tmp_path):
    ws = FilesystemWorkspace(tmp_path)
    dest = tmp_path / "lib"
    dest.mkdir()
    (dest / "old.libsonnet").write_text("old")
    stage = ws.begin_transaction()
    (stage / "new.libsonnet").write_text("new")
    ws.commit(stage, dest)
    ws.discard(stage)
    assert sorted(p.name for p in dest.iterdir()) == ["new.libsonnet"]
    assert not ws.staging_root.exists()


def test_workspace_rollback_on_error(tmp_path, monkeypatch):
    ws = FilesystemWorkspace(tmp_path)
    dest = tmp_path / "lib"
    dest.mkdir()
    (dest / "old.libsonnet").write_text("old")
    stage = ws.begin_transaction()
    (stage / "new.libsonnet").write_text("new")

    original = ws._rename
    calls = []

    def flaky_rename(src, target):
        calls.append(target)
        if target == dest:
            raise OSError("boom")
        original(src, target)

    monkeypatch.setattr(ws, "_rename", flaky_rename)
    with pytest.raises(WorkspaceCommitError):
        ws.commit(stage, dest)
    ws.discard(stage)
    assert (dest / "old.libsonnet").read_text() == "old"
    assert not (dest / "new.libsonnet").exists()
    assert len(calls) == 2


def test_write_atomic_replaces_content(tmp_path):
    path = tmp_path / "jsonnetfile.lock.json"
    path.write_text("old")
    write_atomic(path, "new\n")
    assert path.read_text() == "new\n"
    assert list(tmp_path.iterdir()) == [path]


def test_write_atomic_keeps_old_file_on_failure(tmp_path, monkeypatch):
    path = tmp_path / "jsonnetfile.lock.json"
    path.write_text("old")

    def fail(*args, **kwargs):
        raise OSError("no space left")

    monkeypatch.setattr("jsonnet_bundler.adapters.workspace.filesystem.os.replace", fail)
    with pytest.raises(WorkspaceCommitError):
        write_atomic(path, "new")
    assert path.read_text() == "old"
    assert list(tmp_path.iterdir()) == [path]
