from jsonnet_bundler.domain.diagnostics import (
    DependencyLocation,
    Diagnostic,
    FileLocation,
    Severity,
)


def test_diagnostic_id_is_deterministic():
    d1 = Diagnostic(
        code="X",
        rule="r",
        severity=Severity.ERROR,
        message="m",
        location=FileLocation("jsonnetfile.json"),
    )
    d2 = Diagnostic(
        code="X",
        rule="r",
        severity=Severity.ERROR,
        message="m",
        location=FileLocation("jsonnetfile.json"),
    )
    assert d1.id == d2.id


def test_dependency_location_kind():
    location = DependencyLocation("grafana-builder")
    assert location.kind == "dependency"
    assert location.name == "grafana-builder"
