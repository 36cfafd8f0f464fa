"""
Services package - Application services for Helix.

Contains:
- logging: console/file logging configuration and log retention
- settings: user preferences (settings.json)
"""

from .settings import Settings, load_settings, save_settings

__all__ = [
    "Settings",
    "load_settings",
    "save_settings",
]
