"""Tests for the structured logging system (billing_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from billing_kernel.domain.lifecycle import InvoiceStatus
from billing_kernel.exceptions import IllegalTransitionError
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "billing_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("sequence_allocated", extra={"kind": "invoice", "value": 42})

        record = _parse_log(stream)
        assert record["kind"] == "invoice"
        assert record["value"] == 42

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "document_finalized",
            extra={
                "document_uuid": uid,
                "grand_total": Decimal("240.00"),
                "status": InvoiceStatus.SENT,
                "at": datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc),
            },
        )

        record = _parse_log(stream)
        assert record["document_uuid"] == str(uid)
        assert record["grand_total"] == "240.00"
        assert record["status"] == "SENT"
        assert record["at"] == "2025-01-15T09:00:00+00:00"

    def test_unknown_objects_stringified(self):
        class Opaque:
            def __str__(self):
                return "opaque-value"

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "test_msg",
            extra={"payload": Opaque(), "day": datetime(2025, 1, 15).date()},
        )

        record = _parse_log(stream)
        assert record["payload"] == "opaque-value"
        assert record["day"] == "2025-01-15"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", document_kind="quote")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["document_kind"] == "quote"

    def test_billing_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise IllegalTransitionError("invoice", "DRAFT", "VALIDATED")
        except IllegalTransitionError:
            get_logger("test").error("transition_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "ILLEGAL_TRANSITION"
        assert record["exc_type"] == "IllegalTransitionError"
        assert record["exc_from_status"] == "DRAFT"
        assert record["exc_to_status"] == "VALIDATED"
        assert "traceback" in record

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", document_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "document_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", document_kind="invoice"):
            assert LogContext.get_all() == {
                "correlation_id": "inner",
                "document_kind": "invoice",
            }
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            document_id="d",
            document_kind="quote",
            trace_id="t",
        )
        assert len(LogContext.get_all()) == 5


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        # Other handlers (pytest's capture) may be attached; only ours count
        handlers = logging.getLogger("billing_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("services.sequence").debug("sequence_counter_race_retry")

        record = _parse_log(stream)
        assert record["logger"] == "billing_kernel.services.sequence"
