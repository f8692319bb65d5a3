"""
Unit Test Fixtures.

Fixtures for unit tests - configuration and logging are mocked where a
test needs control over them. File access goes to tmp_path only.
"""

from unittest.mock import MagicMock

import pytest

from kbnotes.core.config import get_app_config, get_settings


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def clear_config_cache():
    """
    Clear the cached settings before and after a test.

    Usage:
        def test_env_override(clear_config_cache, monkeypatch):
            monkeypatch.setenv("KBNOTES_NOTES_ROOT", "/tmp/notes")
            assert get_settings().notes_root == "/tmp/notes"
    """
    get_settings.cache_clear()
    get_app_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_app_config.cache_clear()


@pytest.fixture
def mock_app_config() -> MagicMock:
    """
    Mock YAML application configuration.

    Usage:
        def test_with_config(mock_app_config):
            with patch("module.get_app_config", return_value=mock_app_config):
                # Test code that uses app config
    """
    config = MagicMock()
    config.notes.root = "notes"
    config.notes.extensions = [".md"]
    config.notes.exclude_dirs = []
    config.notes.default_layout = "note"
    config.notes.required_fields = ["title"]
    config.notes.allowed_layouts = []
    config.concurrency.thread_pool.max_workers = 2
    return config


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.get_logger", return_value=mock_logger):
                # Test code that logs
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    return logger
