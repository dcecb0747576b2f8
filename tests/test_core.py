"""Tests for settings, logging setup and the error taxonomy."""

import logging

from formgrid.core.config import Settings
from formgrid.core.exceptions import (
    ExternalOperationError,
    NamingCollisionError,
    NodeNotFoundError,
    StructuralPlacementError,
)
from formgrid.core.logging_setup import configure_logging


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.DEFAULT_FIELD_SPAN == 4
        assert settings.DUPLICATE_GUARD_MS == 400
        assert settings.DEFAULT_REPEATER_MIN_ROWS == 1
        assert settings.DEFAULT_REPEATER_MAX_ROWS == 10

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("FORMGRID_DUPLICATE_GUARD_MS", "150")
        monkeypatch.setenv("FORMGRID_LOG_LEVEL", "DEBUG")

        settings = Settings(_env_file=None)

        assert settings.DUPLICATE_GUARD_MS == 150
        assert settings.LOG_LEVEL == "DEBUG"


class TestLogging:
    def test_configure_logging_sets_level(self):
        logger = configure_logging("debug")
        try:
            assert logger.name == "formgrid"
            assert logging.getLogger().level == logging.DEBUG
        finally:
            configure_logging("WARNING")

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("LOUD")
        try:
            assert logging.getLogger().level == logging.INFO
        finally:
            configure_logging("WARNING")


class TestExceptions:
    def test_messages(self):
        assert str(NodeNotFoundError("abc")) == "Node not found: abc"
        assert "row 0" in str(StructuralPlacementError("f1", "row 0 is above the grid"))
        assert str(NamingCollisionError("city", "s1")) == "Field name 'city' already exists in section 's1'"

    def test_external_error_keeps_cause(self):
        cause = TimeoutError("slow")
        error = ExternalOperationError("submit", cause)
        assert error.cause is cause
        assert str(error) == "submit failed: slow"

    def test_not_found_is_a_key_error(self):
        assert isinstance(NodeNotFoundError("x"), KeyError)
