"""Tests for structured JSON logging and LogContext."""

import json
import logging
import sys
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from bakery_kernel.exceptions import NegativeStockError
from bakery_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


def _format(record: logging.LogRecord) -> dict:
    return json.loads(StructuredFormatter().format(record))


def _record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("bakery_kernel.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_base_fields(self):
        payload = _format(_record())

        assert payload["level"] == "INFO"
        assert payload["logger"] == "bakery_kernel.test"
        assert payload["message"] == "hello"
        assert "ts" in payload

    def test_extra_fields_serialized(self):
        item_id = uuid4()
        payload = _format(_record(item_id=item_id, amount=Decimal("-600")))

        assert payload["item_id"] == str(item_id)
        assert payload["amount"] == "-600"

    def test_exception_fields(self):
        try:
            raise NegativeStockError(uuid4(), "Eggs", Decimal("100"), Decimal("150"))
        except NegativeStockError:
            record = logging.LogRecord(
                "bakery_kernel.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        payload = _format(record)
        assert payload["exc_type"] == "NegativeStockError"
        assert payload["exc_code"] == NegativeStockError.code
        assert payload["exc_item_name"] == "Eggs"
        assert "traceback" in payload


class TestLogContext:
    def test_bind_sets_and_restores(self):
        with LogContext.bind(actor_id="alice", item_id=None):
            assert LogContext.get_all() == {"actor_id": "alice"}
            with LogContext.bind(actor_id="bob"):
                assert LogContext.get_all()["actor_id"] == "bob"
            assert LogContext.get_all()["actor_id"] == "alice"
        assert LogContext.get_all() == {}

    def test_context_in_output(self):
        with LogContext.bind(production_run_id="run-1"):
            payload = _format(_record())
        assert payload["production_run_id"] == "run-1"

    def test_unknown_fields_ignored(self):
        with LogContext.bind(oven="left"):
            assert LogContext.get_all() == {}


class TestConfigureLogging:
    @pytest.fixture
    def fresh_logging(self):
        reset_logging()
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG, stream=StringIO())

    def test_idempotent(self, fresh_logging):
        stream = StringIO()
        configure_logging(level=logging.INFO, stream=stream)
        configure_logging(level=logging.INFO, stream=stream)

        get_logger("test").info("once")
        lines = [line for line in stream.getvalue().splitlines() if line]
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == "once"

    def test_level_respected(self, fresh_logging):
        stream = StringIO()
        configure_logging(level=logging.WARNING, stream=stream)

        get_logger("test").info("dropped")
        get_logger("test").warning("kept")
        messages = [json.loads(line)["message"] for line in stream.getvalue().splitlines() if line]
        assert messages == ["kept"]
