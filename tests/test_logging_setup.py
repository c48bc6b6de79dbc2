"""Tests for logging setup."""

import logging

import earshot.logging_setup as ls


class TestSetupLogging:
    def setup_method(self):
        # Reset the module-level flag for each test
        ls._CONFIGURED = False
        logging.getLogger("earshot").handlers.clear()

    def teardown_method(self):
        logger = logging.getLogger("earshot")
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
        ls._CONFIGURED = False

    def test_setup_creates_handler(self):
        ls.setup_logging()
        logger = logging.getLogger("earshot")
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_idempotent(self):
        ls.setup_logging()
        ls.setup_logging()
        logger = logging.getLogger("earshot")
        assert len(logger.handlers) == 1

    def test_custom_level(self):
        ls.setup_logging(level=logging.DEBUG)
        logger = logging.getLogger("earshot")
        assert logger.level == logging.DEBUG

    def test_env_level_overrides_default(self, monkeypatch):
        monkeypatch.setenv("EARSHOT_LOG_LEVEL", "debug")
        ls.setup_logging(default=logging.ERROR)
        assert logging.getLogger("earshot").level == logging.DEBUG

    def test_explicit_level_beats_env(self, monkeypatch):
        monkeypatch.setenv("EARSHOT_LOG_LEVEL", "DEBUG")
        ls.setup_logging(level=logging.WARNING)
        assert logging.getLogger("earshot").level == logging.WARNING

    def test_default_used_without_env(self, monkeypatch):
        monkeypatch.delenv("EARSHOT_LOG_LEVEL", raising=False)
        ls.setup_logging(default=logging.ERROR)
        assert logging.getLogger("earshot").level == logging.ERROR


class TestResolveLevel:
    def test_names_and_numbers(self):
        assert ls.resolve_level("warning") == logging.WARNING
        assert ls.resolve_level(" 15 ") == 15
        assert ls.resolve_level(logging.DEBUG) == logging.DEBUG

    def test_unknown_falls_back(self):
        assert ls.resolve_level("chatty", logging.ERROR) == logging.ERROR
        assert ls.resolve_level("", logging.ERROR) == logging.ERROR
        assert ls.resolve_level(None) == logging.INFO
