"""Tests for the structured logger's level controls."""

from __future__ import annotations

import logging

import pytest

from ui5_plugin_loader.logger import LEVEL_ENV_VARS, enable_debug, initial_level, logger, set_level


@pytest.fixture
def package_logger():
    stdlib_logger = logging.getLogger("ui5_plugin_loader")
    original = stdlib_logger.level
    yield stdlib_logger
    stdlib_logger.setLevel(original)


class TestLevels:
    def test_enable_debug(self, package_logger):
        package_logger.setLevel(logging.INFO)
        enable_debug()
        assert package_logger.level == logging.DEBUG

    def test_set_level(self, package_logger):
        set_level("warning")
        assert package_logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, package_logger):
        set_level("chatty")
        assert package_logger.level == logging.INFO

    def test_logger_accepts_keyword_context(self, package_logger):
        logger.info("Loaded middleware", name="ui5-tooling-modules-middleware")


class TestInitialLevel:
    """Level applied at import time, before Settings exists."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for var in LEVEL_ENV_VARS:
            monkeypatch.delenv(var, raising=False)

    def test_defaults_to_info(self):
        assert initial_level() == logging.INFO

    def test_loader_variable(self, monkeypatch):
        monkeypatch.setenv("UI5_PLUGIN_LOADER_LOGGING__LEVEL", "debug")
        assert initial_level() == logging.DEBUG

    def test_generic_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        assert initial_level() == logging.WARNING

    def test_loader_variable_wins(self, monkeypatch):
        monkeypatch.setenv("UI5_PLUGIN_LOADER_LOGGING__LEVEL", "ERROR")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert initial_level() == logging.ERROR

    def test_unknown_value_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        assert initial_level() == logging.INFO
