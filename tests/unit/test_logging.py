"""Tests for the loguru sinks configured from settings."""

import sys

import pytest
from loguru import logger

from ai_trading.config.settings import Settings
from ai_trading.core.logging import setup_logging


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.configure(extra={})
    logger.add(sys.stderr)


def _settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        log_service_name="trading-test",
        log_dir=str(tmp_path / "logs"),
        **overrides,
    )


class TestSetupLogging:
    """Test sink configuration."""

    def test_console_only_by_default(self, tmp_path, restore_logger):
        assert setup_logging(_settings(tmp_path)) is None
        assert not (tmp_path / "logs").exists()

    def test_file_sink_from_settings(self, tmp_path, restore_logger):
        log_path = setup_logging(_settings(tmp_path, log_to_file=True), level="info")

        with logger.contextualize(symbol="AAPL"):
            logger.info("analysis stored")
        logger.debug("below the level")
        logger.warning("outside any symbol")
        logger.complete()

        assert log_path == tmp_path / "logs" / "trading-test.log"
        lines = log_path.read_text().splitlines()
        assert len(lines) == 2
        assert "| trading-test | AAPL |" in lines[0]
        assert lines[0].endswith("analysis stored")
        assert "| trading-test | - |" in lines[1]

    def test_override_disables_file(self, tmp_path, restore_logger):
        settings = _settings(tmp_path, log_to_file=True)
        assert setup_logging(settings, log_to_file=False) is None
