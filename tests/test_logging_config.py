"""Tests for logging configuration."""

import logging

import pytest

from remote_build_cache.logging_config import (
    LOG_FILE_NAME,
    LOGGER_NAME,
    _rotate_log_if_needed,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logger():
    """Undo handler and level changes made by setup_logging."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestGetLogger:
    """Tests for get_logger."""

    def test_module_name_is_namespaced(self):
        assert get_logger("service").name == "remote_build_cache.service"

    def test_package_module_name_kept(self):
        assert get_logger("remote_build_cache.service").name == "remote_build_cache.service"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_writes_to_log_dir(self, tmp_path):
        logger = setup_logging(tmp_path / "logs", level=logging.DEBUG)
        get_logger("service").debug("cache hit")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / "logs" / LOG_FILE_NAME).read_text()
        assert "cache hit" in content
        assert "remote_build_cache.service" in content

    def test_stderr_handler_by_default(self):
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_repeated_setup_replaces_handlers(self, tmp_path):
        setup_logging(tmp_path)
        logger = setup_logging(tmp_path)
        assert len(logger.handlers) == 1


class TestRotation:
    """Tests for startup log rotation."""

    def test_small_file_not_rotated(self, tmp_path):
        log_file = tmp_path / LOG_FILE_NAME
        log_file.write_text("short")

        _rotate_log_if_needed(log_file, max_bytes=100)

        assert log_file.exists()
        assert not (tmp_path / f"{LOG_FILE_NAME}.1").exists()

    def test_large_file_rotated(self, tmp_path):
        log_file = tmp_path / LOG_FILE_NAME
        log_file.write_text("x" * 200)
        (tmp_path / f"{LOG_FILE_NAME}.1").write_text("older")

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=3)

        assert not log_file.exists()
        assert (tmp_path / f"{LOG_FILE_NAME}.1").read_text() == "x" * 200
        assert (tmp_path / f"{LOG_FILE_NAME}.2").read_text() == "older"

    def test_oldest_backup_dropped(self, tmp_path):
        log_file = tmp_path / LOG_FILE_NAME
        log_file.write_text("x" * 200)
        for i in (1, 2):
            (tmp_path / f"{LOG_FILE_NAME}.{i}").write_text(f"backup {i}")

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=2)

        assert (tmp_path / f"{LOG_FILE_NAME}.2").read_text() == "backup 1"
        assert not (tmp_path / f"{LOG_FILE_NAME}.3").exists()
