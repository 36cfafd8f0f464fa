"""
Models package - Persistence for Helix.

Contains:
- SecretStore: JSON-backed wallet record, one instance per storage file
"""

from .store import SecretStore

__all__ = [
    "SecretStore",
]
