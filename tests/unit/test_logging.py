"""
Unit Tests for Logging Configuration
"""
import json
import logging

from sgcadmin.config import AdminConfig
from sgcadmin.logging_config import (
    AdminLogger,
    JSONFormatter,
    get_logger,
    set_institution_id,
    set_user_id,
    setup_logging,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord("sgcadmin.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_includes_context_and_extras(self):
        set_user_id("u1")
        set_institution_id("inst-1")
        try:
            output = json.loads(JSONFormatter().format(make_record(event_type="auth")))
        finally:
            set_user_id("")
            set_institution_id("")

        assert output["message"] == "hello"
        assert output["user_id"] == "u1"
        assert output["institution_id"] == "inst-1"
        assert output["event_type"] == "auth"

    def test_empty_context_left_out(self):
        output = json.loads(JSONFormatter().format(make_record()))

        assert "user_id" not in output
        assert "request_id" not in output


class TestLoggers:
    def test_loggers_live_under_package_namespace(self):
        logger = get_logger("pages")

        assert logger.name == "sgcadmin.pages"
        assert isinstance(logger, AdminLogger)

    def test_setup_writes_to_log_file(self, tmp_path):
        config = AdminConfig(config_dir=str(tmp_path), log_level="DEBUG")

        logger = setup_logging(config)
        logger.log_auth_event("login", success=False, user_email="a@b.c", reason="Invalid credentials")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / "logs" / "sgcadmin.log").read_text()
        assert "Auth login: failed - a@b.c - Invalid credentials" in content
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True

    def test_error_with_context_carries_traceback(self):
        logger = get_logger("shell")
        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Collect()
        logger.addHandler(handler)
        try:
            try:
                raise ValueError("bad page")
            except ValueError as e:
                logger.log_error_with_context(e, context="list")
        finally:
            logger.removeHandler(handler)

        assert records[0].getMessage() == "Error in list: ValueError: bad page"
        assert records[0].error_context == "list"
        assert records[0].exc_info is not None
