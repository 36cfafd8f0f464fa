"""
Secret Store - JSON persistence for the wallet record.

One schema-free JSON object per storage file. Keyring fields, token lists,
and anything else other components write live side by side under their own
top-level keys; unknown keys are always carried through a save.

One instance per storage path per process (see get_instance()).
"""

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from utils import get_storage_path
from wallet.crypto import set_secure_permissions
from wallet.errors import PersistenceError

logger = logging.getLogger(__name__)


class SecretStore:
    """Durable key-value record with last-writer-wins merge."""

    _instances: dict[Path, "SecretStore"] = {}
    _registry_lock = threading.Lock()

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        self._lock = threading.RLock()

    @classmethod
    def get_instance(cls, path: Optional[Path] = None) -> "SecretStore":
        """
        Get the store for a path, loading it on first use.

        Every caller in the process shares the same in-memory copy, so two
        components can never race each other with divergent saves.
        """
        resolved = Path(path or get_storage_path()).expanduser().resolve()
        with cls._registry_lock:
            store = cls._instances.get(resolved)
            if store is None:
                store = cls(resolved)
                store.load()
                cls._instances[resolved] = store
            return store

    @classmethod
    def clear_instances(cls) -> None:
        """Forget all loaded stores (next get_instance() reloads from disk)."""
        with cls._registry_lock:
            cls._instances.clear()

    def load(self) -> dict[str, Any]:
        """
        Load the record from disk.

        A missing file is an empty record. A file that cannot be read or
        parsed raises PersistenceError: resetting it to empty would discard
        the only copy of the encrypted key material.
        """
        with self._lock:
            if not self.path.exists():
                self._data = {}
                return self.get_data()

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.error(f"Failed to load storage file {self.path}: {type(e).__name__}")
                raise PersistenceError(f"Cannot read storage file {self.path}") from e

            if not isinstance(data, dict):
                logger.error(f"Storage file {self.path} does not hold a JSON object")
                raise PersistenceError(f"Storage file {self.path} is not a JSON object")

            self._data = data
            logger.debug(f"Loaded storage file {self.path} ({len(data)} keys)")
            return self.get_data()

    def get_data(self) -> dict[str, Any]:
        """Get a copy of the in-memory record."""
        with self._lock:
            return copy.deepcopy(self._data)

    def set_data(self, partial: dict[str, Any]) -> None:
        """Shallow-merge `partial` into the record (partial wins). Not saved."""
        with self._lock:
            self._data = {**self._data, **copy.deepcopy(partial)}

    def remove(self, *keys: str) -> None:
        """Delete top-level keys from the record. Not saved."""
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def save(self) -> None:
        """
        Write the full record to disk.

        Written to a temp file and swapped in with os.replace, so the file on
        disk is always either the old record or the new one.
        """
        with self._lock:
            payload = json.dumps(self._data, indent=2)
            temp_path = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                set_secure_permissions(temp_path)
                temp_path.replace(self.path)
            except OSError as e:
                logger.error(f"Failed to save storage file {self.path}: {e.strerror}")
                try:
                    temp_path.unlink(missing_ok=True)
                except OSError:
                    pass
                raise PersistenceError(f"Cannot write storage file {self.path}") from e
            set_secure_permissions(self.path)
