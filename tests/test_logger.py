"""Tests for logger.py -- setup_logging() and JsonFormatter.

Covers:
- CLI mode logging (stderr handler, optional file handler)
- MCP mode logging (file handler only, never stdout)
- Debug level override and LOG_LEVEL handling
- JSON formatter output
- Third-party logger silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from widget_transfer.logger import JsonFormatter, setup_logging


def _close(handlers):
    for h in handlers:
        if isinstance(h, logging.FileHandler):
            h.close()


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        mock_basic.assert_called_once()
        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_mcp_mode_logs_to_file(self, mock_basic, tmp_path):
        """MCP mode passes a single FileHandler to basicConfig."""
        log_file = tmp_path / "test-mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = mock_basic.call_args[1]["handlers"]
        try:
            assert len(handlers) == 1
            assert isinstance(handlers[0], logging.FileHandler)
            assert handlers[0].baseFilename == str(log_file)
        finally:
            _close(handlers)

    @patch("widget_transfer.logger.logging.FileHandler")
    @patch("widget_transfer.logger.logging.basicConfig")
    def test_mcp_mode_default_log_file(self, _mock_basic, mock_file_handler):
        setup_logging(mode="mcp")
        mock_file_handler.assert_called_once_with(
            "/tmp/widget-transfer-mcp.log", mode="a"
        )

    @patch("widget_transfer.logger.logging.FileHandler")
    @patch("widget_transfer.logger.logging.basicConfig")
    def test_mcp_mode_log_file_env(
        self, _mock_basic, mock_file_handler, monkeypatch
    ):
        monkeypatch.setenv("LOG_FILE", "/var/log/widgets.log")
        setup_logging(mode="mcp")
        mock_file_handler.assert_called_once_with(
            "/var/log/widgets.log", mode="a"
        )

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_debug_overrides_level(self, mock_basic):
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_config_level_replaces_mode_default(self, mock_basic):
        setup_logging(mode="cli", level="warning")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_env_beats_config_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", level="DEBUG")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_unknown_level_falls_back_to_info(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        """CLI mode with log_file creates both stderr and file handlers."""
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        try:
            assert [type(h) for h in handlers] == [
                logging.StreamHandler,
                logging.FileHandler,
            ]
        finally:
            _close(handlers)

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_json_format_uses_json_formatter(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")

        handlers = mock_basic.call_args[1]["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_third_party_silenced(self, _mock_basic):
        """Non-DEBUG mode silences mcp/charset_normalizer/anyio loggers."""
        setup_logging(mode="cli")

        assert logging.getLogger("mcp").level == logging.WARNING
        assert logging.getLogger("charset_normalizer").level == logging.WARNING
        assert logging.getLogger("anyio").level == logging.WARNING

    @patch("widget_transfer.logger.logging.FileHandler")
    @patch("widget_transfer.logger.logging.basicConfig")
    def test_mcp_default_level_is_warning(self, mock_basic, _mock_fh):
        setup_logging(mode="mcp")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("widget_transfer.logger.logging.basicConfig")
    def test_cli_default_level_is_info(self, mock_basic):
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


def _record(msg, args=(), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="widget_transfer.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_output(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        data = json.loads(formatter.format(_record("Merged %d widgets", (3,))))

        assert "ts" in data
        assert data["level"] == "INFO"
        assert data["logger"] == "widget_transfer.test"
        assert data["msg"] == "Merged 3 widgets"
        assert "exc" not in data

    def test_includes_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("bucket write failed")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(
            formatter.format(_record("boom", exc_info=exc_info, level=logging.ERROR))
        )
        assert "ValueError" in data["exc"]
        assert "bucket write failed" in data["exc"]

    def test_single_line_output(self):
        output = JsonFormatter().format(_record("line one\nline two"))
        assert "\n" not in output
        assert json.loads(output)["msg"] == "line one\nline two"
