"""Tests for environment-driven settings and logging setup."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

import pytest
from pydantic import ValidationError

from ledger.logging_setup import LOG_FILE_NAME, setup_logging
from ledger.settings import Settings


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SALES_FEED_URL", "https://feeds.test/sales")
    monkeypatch.setenv("INVENTORY_DATA_ROOT", str(tmp_path))
    monkeypatch.setenv("PERSIST_PARTIAL_SYNC", "false")

    settings = Settings(_env_file=None)

    assert settings.SALES_FEED_URL == "https://feeds.test/sales"
    assert settings.PERSIST_PARTIAL_SYNC is False
    assert settings.cache_dir == tmp_path / "cache"
    assert settings.FEED_TIMEOUT_SECONDS == 8.0


def test_feed_timeout_must_stay_under_ten_seconds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEED_TIMEOUT_SECONDS", "30")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_setup_logging_adds_one_rotating_handler(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("INVENTORY_DATA_ROOT", str(tmp_path))
    settings = Settings(_env_file=None)
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        log_path = setup_logging(settings)
        setup_logging(settings)

        assert log_path == tmp_path / "logs" / LOG_FILE_NAME
        rotating = [
            h
            for h in root.handlers
            if isinstance(h, logging.handlers.RotatingFileHandler) and h.baseFilename.endswith(LOG_FILE_NAME)
        ]
        assert len(rotating) == 1
    finally:
        for handler in list(root.handlers):
            if handler not in original_handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(original_level)
