"""Tests for logging utility functions."""

import logging
from unittest.mock import MagicMock

from cloudutil.errors.exceptions import ApiResponseError, PermanentError
from cloudutil.logging.utilities import (
    MAX_ERROR_MESSAGE_LENGTH,
    log_exception,
    log_with_context,
)


class TestLogWithContext:

    def test_logs_message_at_given_level(self):
        logger = MagicMock()
        log_with_context(logger, logging.INFO, "test message")

        logger.log.assert_called_once_with(
            logging.INFO, "test message", exc_info=None, extra={}
        )

    def test_passes_extra_fields(self):
        logger = MagicMock()
        log_with_context(
            logger, logging.DEBUG, "Classified API error",
            http_status=429, error_reason="rateLimitExceeded",
        )

        logger.log.assert_called_once_with(
            logging.DEBUG, "Classified API error",
            exc_info=None,
            extra={"http_status": 429, "error_reason": "rateLimitExceeded"},
        )

    def test_handles_exc_info_separately(self):
        logger = MagicMock()
        log_with_context(logger, logging.ERROR, "failed", exc_info=True, trace_id="t-2")

        logger.log.assert_called_once_with(
            logging.ERROR, "failed", exc_info=True, extra={"trace_id": "t-2"}
        )

    def test_filters_reserved_log_keys(self):
        logger = MagicMock()
        log_with_context(
            logger, logging.INFO, "msg",
            name="should_be_filtered", message="also filtered", resource="kept",
        )

        logger.log.assert_called_once_with(
            logging.INFO, "msg", exc_info=None, extra={"resource": "kept"}
        )

    def test_real_logger_accepts_extras(self, caplog):
        logger = logging.getLogger("test.log_with_context")
        with caplog.at_level(logging.DEBUG, logger="test.log_with_context"):
            log_with_context(logger, logging.DEBUG, "hello", http_status=404, name="x")

        assert caplog.records[0].http_status == 404
        assert caplog.records[0].name == "test.log_with_context"


class TestLogException:

    def test_extracts_category_and_status(self):
        logger = MagicMock()
        error = ApiResponseError(404)
        log_exception(logger, error, "Object read failed", resource="gs://b/o")

        logger.log.assert_called_once_with(
            logging.ERROR,
            "Object read failed",
            exc_info=error,
            extra={
                "resource": "gs://b/o",
                "error_category": "permanent",
                "http_status": 404,
                "error_message": "HTTP 404",
            },
        )

    def test_keeps_explicit_fields(self):
        logger = MagicMock()
        log_exception(
            logger, ApiResponseError(503), "failed",
            error_category="custom", http_status=599,
        )

        extra = logger.log.call_args.kwargs["extra"]
        assert extra["error_category"] == "custom"
        assert extra["http_status"] == 599

    def test_plain_exception(self):
        logger = MagicMock()
        error = ValueError("bad")
        log_exception(logger, error, "failed", level=logging.WARNING)

        logger.log.assert_called_once_with(
            logging.WARNING, "failed", exc_info=error, extra={"error_message": "bad"}
        )

    def test_without_traceback(self):
        logger = MagicMock()
        log_exception(logger, PermanentError("gone"), "failed", include_traceback=False)

        logger.log.assert_called_once_with(
            logging.ERROR, "failed",
            extra={"error_category": "permanent", "error_message": "gone"},
        )

    def test_filters_reserved_log_keys(self):
        logger = MagicMock()
        error = ValueError("x")
        log_exception(logger, error, "failed", name="gs://b/o", msg="m", resource="kept")

        logger.log.assert_called_once_with(
            logging.ERROR, "failed", exc_info=error,
            extra={"resource": "kept", "error_message": "x"},
        )

    def test_real_logger_accepts_reserved_names(self, caplog):
        logger = logging.getLogger("test.log_exception")
        with caplog.at_level(logging.ERROR, logger="test.log_exception"):
            log_exception(logger, ValueError("x"), "failed", name="gs://b/o")

        assert caplog.records[0].name == "test.log_exception"
        assert caplog.records[0].error_message == "x"

    def test_truncates_long_messages(self):
        logger = MagicMock()
        log_exception(logger, ValueError("x" * 1000), "failed")

        message = logger.log.call_args.kwargs["extra"]["error_message"]
        assert len(message) == MAX_ERROR_MESSAGE_LENGTH + 3
        assert message.endswith("...")
