"""
Standard library and structlog bridge tests.
"""

from __future__ import annotations

import inspect
import io
import logging

import structlog

from loguri.interceptors import LoguriHandler, route_to, severity_for
from loguri.levels import Severity


class TestSeverityMapping:
    def test_levels(self) -> None:
        assert severity_for(logging.CRITICAL) is Severity.CRIT
        assert severity_for(logging.ERROR) is Severity.ERR
        assert severity_for(logging.WARNING) is Severity.WARNING
        assert severity_for(logging.INFO) is Severity.INFO
        assert severity_for(logging.DEBUG) is Severity.DEBUG
        assert severity_for(logging.NOTSET) is Severity.DEBUG


class TestStdlibHandler:
    def test_records_are_forwarded(self, registry, tmp_path) -> None:
        path = tmp_path / "std.log"
        registry.add({"std": f"{path}?name&id"})
        logger = logging.getLogger("loguri.tests.stdlib")
        handler = LoguriHandler("std", registry)
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        try:
            logger.warning("disk %d%% full", 91)
            try:
                raise ValueError("bad input")
            except ValueError:
                logger.exception("failed")
        finally:
            logger.removeHandler(handler)
        lines = path.read_text().splitlines()
        assert lines == ["warning\tstd\tdisk 91% full", "err\tstd\tfailed\tValueError: bad input"]

    def test_handler_formatter_is_used(self, registry, tmp_path) -> None:
        path = tmp_path / "std.log"
        registry.add({"std": f"{path}?id"})
        handler = LoguriHandler("std", registry)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        record = logging.LogRecord("app", logging.INFO, __file__, 1, "hi", None, None)
        handler.emit(record)
        assert path.read_text() == "std\tapp: hi\n"


class TestStructlogProcessor:
    def test_processor_routes_event(self, registry, tmp_path) -> None:
        path = tmp_path / "s.log"
        registry.add({"sl": f"{path}?name"})
        render = route_to("sl", registry)
        assert render(None, "warning", {"event": "hi", "user": "ann"}) == ""
        assert path.read_text() == 'warning\thi\t{"user":"ann"}\n'

    def test_processor_factory_declares_its_signature(self) -> None:
        annotation = inspect.signature(route_to).return_annotation
        assert "Callable[[WrappedLogger, str, EventDict], str]" in str(annotation)

    def test_wrapped_logger(self, registry, tmp_path) -> None:
        path = tmp_path / "s.log"
        registry.add({"sl": f"{path}?name"})
        logger = structlog.wrap_logger(
            structlog.PrintLogger(file=io.StringIO()),
            processors=[route_to("sl", registry)],
        )
        logger.error("failed", attempt=2)
        assert path.read_text() == 'err\tfailed\t{"attempt":2}\n'
