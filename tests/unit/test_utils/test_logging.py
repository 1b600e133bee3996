"""Unit tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from quality_eval.utils.logging import SERVICE_NAME, add_service_context, setup_logging


@pytest.fixture
def isolated_root_logger(capsys):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_service_context_does_not_override_bound_values():
    event = add_service_context(None, "info", {"event": "x", "service": "other"})
    assert event["service"] == "other"
    assert isinstance(event["pid"], int)

    assert add_service_context(None, "info", {"event": "x"})["service"] == SERVICE_NAME


def test_setup_installs_single_handler_and_quiets_clients(isolated_root_logger):
    setup_logging("debug", "console")

    assert len(isolated_root_logger.handlers) == 1
    assert isinstance(isolated_root_logger.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert isolated_root_logger.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").propagate is True


def test_unknown_level_falls_back_to_info(isolated_root_logger):
    setup_logging("chatty", "json")
    assert isolated_root_logger.level == logging.INFO


def test_stdlib_records_render_as_json(isolated_root_logger, capsys):
    setup_logging("INFO", "json")

    logging.getLogger("uvicorn.error").warning("worker booted")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "worker booted"
    assert record["level"] == "warning"
    assert record["logger"] == "uvicorn.error"
    assert record["service"] == SERVICE_NAME
