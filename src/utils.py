"""
Shared utility functions for Helix Wallet.

Contains path helpers used across packages.
"""

import os
from pathlib import Path

APP_HOME_ENV = "HELIX_WALLET_HOME"
APP_DIR_NAME = ".helix-wallet"


def get_app_dir() -> Path:
    """Get the application data directory ($HELIX_WALLET_HOME or ~/.helix-wallet)."""
    override = os.environ.get(APP_HOME_ENV)
    if override:
        app_dir = Path(override).expanduser()
    else:
        app_dir = Path.home() / APP_DIR_NAME

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_storage_path() -> Path:
    """Get path to the wallet storage file."""
    return get_app_dir() / "storage.json"


def get_settings_path() -> Path:
    """Get path to settings file."""
    return get_app_dir() / "settings.json"


def get_history_path() -> Path:
    """Get path to the shell command history file."""
    return get_app_dir() / "history"


def get_logs_dir() -> Path:
    """Get the logs directory."""
    logs_dir = get_app_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir
