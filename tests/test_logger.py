"""
Test suite for logging configuration.
"""

import logging

import pytest

from prompt_lab.utils.logger import ROOT_LOGGER_NAME, configure_logging, get_logger


@pytest.fixture
def restore_logging():
    yield
    configure_logging(enable_file=False, force=True)


class TestLogging:

    def test_module_loggers_share_package_root(self):
        logger = get_logger("prompt_lab.core.workflow_runner")
        assert logger.name == "prompt_lab.core.workflow_runner"
        ancestors = []
        current = logger.parent
        while current is not None:
            ancestors.append(current)
            current = current.parent
        assert logging.getLogger(ROOT_LOGGER_NAME) in ancestors

    def test_file_logging_writes_unicode(self, tmp_path, restore_logging):
        root = configure_logging(log_level="DEBUG", log_folder=str(tmp_path), enable_console=False,
                                 enable_file=True, force=True)
        get_logger("prompt_lab.test").info("Résumé ✓ 完成")
        for handler in root.handlers:
            handler.flush()

        content = (tmp_path / "prompt_lab.log").read_text(encoding="utf-8")
        assert "Résumé ✓ 完成" in content
        assert "prompt_lab.test - INFO" in content

    def test_level_from_environment(self, monkeypatch, restore_logging):
        monkeypatch.setenv("PROMPT_LAB_LOG_LEVEL", "warning")
        root = configure_logging(enable_console=False, enable_file=False, force=True)
        assert root.level == logging.WARNING

    def test_configured_once_without_force(self, restore_logging):
        first = configure_logging(log_level="ERROR", enable_console=False, force=True)
        second = configure_logging(log_level="DEBUG")
        assert second is first
        assert second.level == logging.ERROR

    def test_per_logger_level_override(self):
        assert get_logger("prompt_lab.noisy", level="error").level == logging.ERROR
