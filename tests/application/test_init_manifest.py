from jsonnet_bundler.application.init_manifest import init_manifest
from jsonnet_bundler.domain.diagnostics import Severity


def test_init_writes_empty_manifest(tmp_path):
    result = init_manifest(tmp_path)
    assert result.exit_code == 0
    assert (tmp_path / "jsonnetfile.json").read_text() == '{\n    "dependencies": []\n}\n'
    assert result.artifacts == [{"kind": "manifest", "path": str(tmp_path / "jsonnetfile.json")}]


def test_init_leaves_existing_manifest(tmp_path):
    path = tmp_path / "jsonnetfile.json"
    path.write_text('{"dependencies": [], "legacyImports": true}')
    result = init_manifest(tmp_path)
    assert result.exit_code == 0
    assert result.diagnostics[0].severity is Severity.WARN
    assert result.diagnostics[0].code == "MANIFEST_EXISTS"
    assert path.read_text() == '{"dependencies": [], "legacyImports": true}'


def test_init_write_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    result = init_manifest(blocker)
    assert result.exit_code == 3
    assert result.diagnostics[0].code == "MANIFEST_WRITE_FAILED"
