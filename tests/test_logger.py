"""Tests for the logging setup module."""

import logging

from src.utils.logger import get_logger, setup_logging


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def setup_method(self) -> None:
        self.root = logging.getLogger()
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level
        self.root.handlers.clear()

    def teardown_method(self) -> None:
        self.root.handlers[:] = self.saved_handlers
        self.root.setLevel(self.saved_level)

    def test_setup_creates_handler(self) -> None:
        setup_logging("DEBUG")
        assert len(self.root.handlers) == 1
        assert self.root.level == logging.DEBUG

    def test_handler_uses_pipeline_format(self) -> None:
        setup_logging("INFO")
        formatter = self.root.handlers[0].formatter
        assert formatter is not None
        assert "%(name)s" in formatter._fmt
        assert "%(levelname)s" in formatter._fmt

    def test_setup_idempotent(self) -> None:
        setup_logging("INFO")
        count = len(self.root.handlers)
        setup_logging("DEBUG")
        assert len(self.root.handlers) == count
        assert self.root.level == logging.INFO

    def test_setup_invalid_level_defaults_to_info(self) -> None:
        setup_logging("NONEXISTENT")
        assert self.root.level == logging.INFO


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("src.pipeline.orchestrator")
        assert logger.name == "src.pipeline.orchestrator"
        assert isinstance(logger, logging.Logger)

    def test_same_name_returns_same_logger(self) -> None:
        assert get_logger("test.same") is get_logger("test.same")
