import io
import logging

from jsonnet_bundler.logging import setup_logging


def test_setup_logging_routes_package_records():
    stream = io.StringIO()
    setup_logging("info", stream=stream)
    logging.getLogger("jsonnet_bundler.application.install").info("resolved %s", "a")
    logging.getLogger("jsonnet_bundler.entrypoints.cli").debug("hidden")
    output = stream.getvalue()
    assert "[INFO] jsonnet_bundler.application.install: resolved a" in output
    assert "hidden" not in output


def test_setup_logging_replaces_handlers():
    setup_logging("WARNING", stream=io.StringIO())
    setup_logging("WARNING", stream=io.StringIO())
    assert len(logging.getLogger("jsonnet_bundler").handlers) == 1


def test_custom_format():
    stream = io.StringIO()
    setup_logging("WARNING", format="%(levelname)s|%(message)s", stream=stream)
    logging.getLogger("jsonnet_bundler.application.settings").warning("careful")
    assert stream.getvalue() == "WARNING|careful\n"
