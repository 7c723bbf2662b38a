from __future__ import annotations

from pathlib import Path

from project_eye.project_eye import logger as app_logger


def test_log_directory_follows_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("PROJECT_EYE_LOG_DIR", str(tmp_path))

    assert app_logger.default_log_path() == tmp_path / "service.log"


def test_log_directory_defaults_to_local_app_data(monkeypatch):
    monkeypatch.delenv("PROJECT_EYE_LOG_DIR", raising=False)

    assert app_logger.default_log_path() == Path.home() / "AppData" / "Local" / "Project Eye" / "service.log"


def test_get_logger_returns_configured_shared_logger():
    assert app_logger.get_logger() is app_logger.get_logger()
