"""Tests for the observability module.

Tests for metrics collection, logging configuration and operation timing.
"""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from notes_mcp.observability import (
    LOGGER_NAME,
    MetricsCollector,
    configure_logging,
    metrics,
    timed_operation,
)


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    @pytest.fixture
    def metrics_collector(self):
        return MetricsCollector()

    def test_record_successful_operation(self, metrics_collector):
        """Test recording a successful operation."""
        metrics_collector.record_operation("test_op", 100.0, True)

        result = metrics_collector.get_metrics()
        assert result["test_op"]["count"] == 1
        assert result["test_op"]["success_count"] == 1
        assert result["test_op"]["error_count"] == 0
        assert result["test_op"]["avg_duration_ms"] == 100.0

    def test_record_failed_operation(self, metrics_collector):
        """Test recording a failed operation with error."""
        metrics_collector.record_operation("test_op", 50.0, False, "Test error")

        result = metrics_collector.get_metrics()
        assert result["test_op"]["error_count"] == 1
        assert result["test_op"]["last_error"] == "Test error"
        assert result["test_op"]["last_error_time"] is not None

    def test_multiple_operations_aggregated(self, metrics_collector):
        """Test that multiple operations are aggregated correctly."""
        metrics_collector.record_operation("test_op", 100.0, True)
        metrics_collector.record_operation("test_op", 200.0, True)
        metrics_collector.record_operation("test_op", 300.0, False, "Error")

        result = metrics_collector.get_metrics()
        assert result["test_op"]["count"] == 3
        assert result["test_op"]["avg_duration_ms"] == 200.0
        assert result["test_op"]["min_duration_ms"] == 100.0
        assert result["test_op"]["max_duration_ms"] == 300.0

    def test_get_summary(self, metrics_collector):
        """Test getting metrics summary."""
        metrics_collector.record_operation("op1", 100.0, True)
        metrics_collector.record_operation("op2", 200.0, False, "Error")

        summary = metrics_collector.get_summary()
        assert summary["total_operations"] == 2
        assert summary["total_success"] == 1
        assert summary["total_errors"] == 1
        assert summary["operations_tracked"] == ["op1", "op2"]

    def test_empty_summary(self, metrics_collector):
        summary = metrics_collector.get_summary()
        assert summary["total_operations"] == 0
        assert summary["overall_success_rate"] == 1.0

    def test_reset_metrics(self, metrics_collector):
        """Test resetting all metrics."""
        metrics_collector.record_operation("test_op", 100.0, True)
        metrics_collector.reset()
        assert metrics_collector.get_metrics() == {}


class TestTimedOperation:
    """Tests for timed_operation context manager."""

    def test_records_success(self):
        with timed_operation("search_notes", query="milk") as op:
            op["result_count"] = 3
        recorded = metrics.get_metrics()["search_notes"]
        assert recorded["success_count"] == 1
        assert "correlation_id" in op

    def test_records_raised_exception(self):
        with pytest.raises(RuntimeError):
            with timed_operation("create_note"):
                raise RuntimeError("boom")
        recorded = metrics.get_metrics()["create_note"]
        assert recorded["error_count"] == 1
        assert recorded["last_error"] == "boom"

    def test_records_handled_error(self):
        with timed_operation("get_note") as op:
            op["error"] = ValueError("not there")
        recorded = metrics.get_metrics()["get_note"]
        assert recorded["error_count"] == 1
        assert recorded["last_error"] == "not there"


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture
    def clean_logger(self):
        logger = logging.getLogger(LOGGER_NAME)
        saved_handlers = list(logger.handlers)
        saved_level = logger.level
        logger.handlers = []
        yield logger
        for handler in logger.handlers:
            handler.close()
        logger.handlers = saved_handlers
        logger.setLevel(saved_level)

    def test_creates_rotating_log_file(self, tmp_path, clean_logger):
        log_dir = tmp_path / "logs"
        result = configure_logging(log_dir, level=logging.DEBUG, console=False)

        assert result == log_dir
        assert (log_dir / "notes-mcp.log").exists()
        handlers = [h for h in clean_logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].maxBytes == 10 * 1024 * 1024
        assert handlers[0].backupCount == 5

    def test_is_idempotent(self, tmp_path, clean_logger):
        configure_logging(tmp_path, console=True)
        configure_logging(tmp_path, console=True)
        assert len(clean_logger.handlers) == 2

    def test_messages_reach_file(self, tmp_path, clean_logger):
        configure_logging(tmp_path, level=logging.INFO, console=False)
        logging.getLogger("notes_mcp.storage").info("hello from storage")
        for handler in clean_logger.handlers:
            handler.flush()
        assert "hello from storage" in (tmp_path / "notes-mcp.log").read_text()
