"""
Helix Wallet - Local credential vault terminal.

Entry point for the application.
"""

import logging
import sys

from models.store import SecretStore
from services.logging import cleanup_old_logs, configure_logging, get_log_file_path
from services.settings import load_settings
from ui import WalletShell
from utils import get_history_path
from wallet import Keyring
from wallet.errors import PersistenceError

logger = logging.getLogger(__name__)


def main():
    """Application entry point."""
    settings = load_settings()

    # Configure logging before anything else
    log_file = get_log_file_path() if settings.log_retention_days > 0 else None
    configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO), log_file)
    if settings.log_retention_days > 0:
        cleanup_old_logs(settings.log_retention_days)

    try:
        store = SecretStore.get_instance(settings.resolved_storage_path())
    except PersistenceError as e:
        logger.error(str(e))
        sys.exit(1)

    keyring = Keyring(store, idle_timeout=settings.auto_lock_seconds)
    shell = WalletShell(keyring, settings, history_path=get_history_path())
    try:
        shell.run()
    finally:
        keyring.lock()


if __name__ == "__main__":
    main()
