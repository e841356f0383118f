import json

from jsonnet_bundler.application.result_serialization import (
    RESULT_SCHEMA_VERSION,
    serialize_result,
)
from jsonnet_bundler.domain.dependency import Dependency, Lock
from jsonnet_bundler.domain.diagnostics import Diagnostic, DependencyLocation, Severity
from jsonnet_bundler.domain.result import Result
from jsonnet_bundler.domain.source import GitSource


def test_serialize_success_includes_lock():
    lock = Lock((Dependency("a", GitSource("https://example.com/a"), "r1"),))
    payload = serialize_result(Result(value=lock), command="install", args=["a"])
    assert payload["result_schema_version"] == RESULT_SCHEMA_VERSION
    assert payload["exit_code"] == 0
    assert payload["args"] == ["a"]
    assert payload["value"]["dependencies"][0]["version"] == "r1"
    json.dumps(payload)


def test_serialize_diagnostics():
    diag = Diagnostic(
        code="RESOLUTION_FAILED",
        rule="dependency.resolve",
        severity=Severity.ERROR,
        message="Failed to resolve a@master",
        location=DependencyLocation("a"),
        is_execution=True,
    )
    payload = serialize_result(Result(diagnostics=[diag]), command="update", args=[])
    assert payload["exit_code"] == 3
    assert payload["value"] is None
    serialized = payload["diagnostics"][0]
    assert serialized["severity"] == "error"
    assert serialized["location"] == {"kind": "dependency", "name": "a"}
    assert serialized["id"] == diag.id
