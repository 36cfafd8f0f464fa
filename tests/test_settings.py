"""
Tests for settings, path helpers, and log housekeeping.
"""
import json
import logging
from datetime import datetime, timedelta

import pytest

from services.logging import cleanup_old_logs, configure_logging, get_log_file_path
from services.settings import Settings, load_settings, save_settings
from utils import get_app_dir, get_settings_path, get_storage_path


class TestPaths:
    """App directory resolution."""

    def test_env_override(self, wallet_home):
        assert get_app_dir() == wallet_home
        assert wallet_home.is_dir()

    def test_file_names(self, wallet_home):
        assert get_storage_path() == wallet_home / "storage.json"
        assert get_settings_path() == wallet_home / "settings.json"


class TestSettings:
    """Loading and saving settings.json."""

    def test_defaults(self):
        settings = Settings()
        assert settings.word_count == 12
        assert settings.min_password_length == 8
        assert settings.auto_lock_seconds == 0
        assert settings.resolved_storage_path() is None

    def test_missing_file(self, tmp_path):
        assert load_settings(tmp_path / "settings.json") == Settings()

    def test_round_trip(self, tmp_path):
        path = tmp_path / "settings.json"
        save_settings(Settings(word_count=24, auto_lock_minutes=5), path)
        loaded = load_settings(path)
        assert loaded.word_count == 24
        assert loaded.auto_lock_seconds == 300

    def test_default_location(self, wallet_home):
        save_settings(Settings(log_level="DEBUG"))
        assert json.loads((wallet_home / "settings.json").read_text())["log_level"] == "DEBUG"
        assert load_settings().log_level == "DEBUG"

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"word_count": 24, "theme": "dark"}))
        assert load_settings(path).word_count == 24

    @pytest.mark.parametrize("content", ["{broken", "[]"])
    def test_unreadable_file_falls_back(self, tmp_path, content):
        path = tmp_path / "settings.json"
        path.write_text(content)
        assert load_settings(path) == Settings()

    def test_storage_path_expanded(self, tmp_path):
        settings = Settings(storage_path=str(tmp_path / "custom.json"))
        assert settings.resolved_storage_path() == tmp_path / "custom.json"


class TestLogging:
    """Log file naming and retention."""

    def test_log_file_name(self, tmp_path):
        path = get_log_file_path(datetime(2024, 3, 9), logs_dir=tmp_path)
        assert path == tmp_path / "helix-2024-03-09.log"

    def test_cleanup(self, tmp_path):
        old = get_log_file_path(datetime.now() - timedelta(days=10), logs_dir=tmp_path)
        recent = get_log_file_path(datetime.now(), logs_dir=tmp_path)
        stray = tmp_path / "helix-notadate.log"
        for path in (old, recent, stray):
            path.write_text("x")

        assert cleanup_old_logs(7, logs_dir=tmp_path) == 1
        assert not old.exists()
        assert recent.exists()
        assert stray.exists()

    def test_negative_retention(self, tmp_path):
        old = get_log_file_path(datetime.now() - timedelta(days=10), logs_dir=tmp_path)
        old.write_text("x")
        assert cleanup_old_logs(-1, logs_dir=tmp_path) == 0
        assert old.exists()

    def test_configure_keeps_existing_handlers(self, tmp_path):
        root = logging.getLogger()
        sentinel = logging.NullHandler()
        root.addHandler(sentinel)
        try:
            before = list(root.handlers)
            configure_logging(logging.DEBUG, tmp_path / "helix.log")
            assert root.handlers == before
            assert not (tmp_path / "helix.log").exists()
        finally:
            root.removeHandler(sentinel)
