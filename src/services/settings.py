"""
Settings - User preferences persisted to settings.json.

Missing file means defaults. An unreadable file is logged and ignored
(settings hold no key material, so falling back is safe).
"""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional

from utils import get_settings_path

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings."""
    storage_path: str = ""          # Empty = default storage.json in app dir
    word_count: int = 12            # Recovery phrase length for new wallets
    auto_lock_minutes: int = 0      # 0 = disabled
    log_level: str = "WARNING"     # Console stays quiet inside the shell
    log_retention_days: int = 0     # 0 = console only, no log files
    min_password_length: int = 8

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @property
    def auto_lock_seconds(self) -> int:
        return max(self.auto_lock_minutes, 0) * 60

    def resolved_storage_path(self) -> Optional[Path]:
        return Path(self.storage_path).expanduser() if self.storage_path else None


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from disk."""
    settings_path = Path(path) if path else get_settings_path()
    if settings_path.exists():
        try:
            with open(settings_path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings root is not an object")
            return Settings.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to load settings: {e}")
    return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    """Save settings to disk."""
    settings_path = Path(path) if path else get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    with open(settings_path, 'w') as f:
        json.dump(settings.to_dict(), f, indent=2)
