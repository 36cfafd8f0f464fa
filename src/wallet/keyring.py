"""
Keyring - Wallet secret lifecycle, addresses, and lock state.

State machine:
    NO_WALLET -> LOCKED -> UNLOCKED
    UNLOCKED -> LOCKED (lock(), auto-lock, or a new process)

The keyring is the only component that ever holds a decrypted secret, and
only for the duration of one operation. While unlocked it caches the
password (never the secret) in its UnlockSession; signing re-decrypts the
secret on every call.

Usage:
    store = SecretStore.get_instance()
    keyring = Keyring(store)

    phrase = keyring.generate_secret()
    keyring.persist(phrase, "my-password")

    keyring.unlock("my-password")
    signature = keyring.sign_message("hello")
    keyring.lock()
"""

import hmac
import logging
import time
from enum import Enum
from typing import Any, Callable, Optional, Union, TYPE_CHECKING

from eth_account.datastructures import SignedTransaction
from eth_account.messages import encode_defunct
from eth_utils import keccak

if TYPE_CHECKING:
    from models.store import SecretStore

from . import crypto, notes
from .accounts import (
    MnemonicSecret,
    RawKeySecret,
    Secret,
    SECRET_TYPE_MNEMONIC,
    SECRET_TYPE_PRIVATE_KEY,
    parse_secret,
    secret_from_payload,
)
from .errors import (
    AddressDerivationError,
    AuthenticationError,
    IncorrectPassword,
    KeyringLocked,
    PersistenceError,
    UnknownAddress,
    WalletExists,
    WalletNotFound,
)

logger = logging.getLogger(__name__)


# ============================================
# Record Fields
# ============================================

PASSWORD_HASH = "password_hash"
ENCRYPTED_SECRET = "encrypted_secret"
SECRET_TYPE = "secret_type"
ADDRESSES = "addresses"
ACTIVE_ADDRESS = "active_address"
ENCRYPTION_PUBLIC_KEY = "encryption_public_key"
ENCRYPTION_PRIVATE_KEY = "encryption_private_key"

# Everything remove_keyring() clears; other top-level keys are left alone
KEY_FIELDS = (
    PASSWORD_HASH,
    ENCRYPTED_SECRET,
    SECRET_TYPE,
    ADDRESSES,
    ACTIVE_ADDRESS,
    ENCRYPTION_PUBLIC_KEY,
    ENCRYPTION_PRIVATE_KEY,
)


def hash_password(password: str) -> str:
    """
    EIP-191 personal-message hash of the password, 0x-hex.

    Only used for equality checks. Unsalted, unlike the cipher's KDF.
    """
    signable = encode_defunct(text=password)
    digest = keccak(b"\x19" + signable.version + signable.header + signable.body)
    return "0x" + digest.hex()


class KeyringState(Enum):
    NO_WALLET = "no_wallet"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


# ============================================
# Unlock Session
# ============================================

class UnlockSession:
    """
    In-memory unlock state for one keyring.

    Holds the password while unlocked. With idle_timeout > 0 the session
    expires after that many seconds without use (0 = never).
    """

    def __init__(self, idle_timeout: float = 0,
                 clock: Callable[[], float] = time.monotonic):
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._password: Optional[str] = None
        self._last_used = 0.0

    def open(self, password: str) -> None:
        self._password = password
        self._last_used = self._clock()

    def close(self) -> None:
        self._password = None
        self._last_used = 0.0

    def _expired(self) -> bool:
        if self.idle_timeout <= 0:
            return False
        return self._clock() - self._last_used >= self.idle_timeout

    @property
    def is_open(self) -> bool:
        if self._password is None:
            return False
        if self._expired():
            logger.info("Auto-locking wallet due to inactivity")
            self.close()
            return False
        return True

    def use(self) -> Optional[str]:
        """Return the cached password and refresh the idle timer (None if locked)."""
        if not self.is_open:
            return None
        self._last_used = self._clock()
        return self._password


# ============================================
# Keyring
# ============================================

class Keyring:
    """Secret generation, persistence, address management, and signing."""

    def __init__(self, store: "SecretStore", idle_timeout: float = 0,
                 session: Optional[UnlockSession] = None):
        """
        Args:
            store: Secret store holding the wallet record
            idle_timeout: Auto-lock after this many idle seconds (0 = disabled)
            session: Unlock state holder (one is created if omitted)
        """
        self._store = store
        self._session = session or UnlockSession(idle_timeout)

    # ============================================
    # Secrets
    # ============================================

    @staticmethod
    def generate_secret(kind: str = SECRET_TYPE_MNEMONIC, word_count: int = 12) -> str:
        """
        Generate a fresh secret and return its display form.

        Returns the recovery phrase (mnemonic) or 0x-hex key (private_key).
        Nothing is stored.
        """
        if kind == SECRET_TYPE_MNEMONIC:
            return MnemonicSecret.generate(word_count).phrase
        if kind == SECRET_TYPE_PRIVATE_KEY:
            return RawKeySecret.generate().display
        raise ValueError(f"Unknown secret type: {kind}")

    def wallet_exists(self) -> bool:
        return ENCRYPTED_SECRET in self._store.get_data()

    def persist(self, secret: Union[Secret, str], password: str) -> str:
        """
        Encrypt and store a new wallet secret.

        Derives address 0, stores the password hash, the encrypted secret,
        a fresh note-encryption keypair, and makes address 0 active.

        Returns:
            The primary address

        Raises:
            WalletExists: a wallet is already stored
            InvalidSecret: text is not a phrase or private key
        """
        if self.wallet_exists():
            raise WalletExists("A wallet already exists")
        if isinstance(secret, str):
            secret = parse_secret(secret)

        address = secret.derive_address(0)
        encryption_private, encryption_public = notes.generate_encryption_keypair()

        self._commit({
            PASSWORD_HASH: hash_password(password),
            ENCRYPTED_SECRET: crypto.encrypt(secret.to_payload(), password),
            SECRET_TYPE: secret.kind,
            ADDRESSES: [address],
            ACTIVE_ADDRESS: address,
            ENCRYPTION_PUBLIC_KEY: encryption_public,
            ENCRYPTION_PRIVATE_KEY: crypto.encrypt(
                {"type": "x25519", "key": encryption_private.hex()}, password
            ),
        })
        self._session.close()

        logger.info(f"Wallet stored ({secret.kind}), primary address {address}")
        return address

    def _commit(self, partial: dict[str, Any]) -> None:
        """Merge and save; if the save fails, the in-memory record is rolled back."""
        before = self._store.get_data()
        self._store.set_data(partial)
        try:
            self._store.save()
        except PersistenceError:
            self._store.remove(*[key for key in partial if key not in before])
            self._store.set_data({key: before[key] for key in partial if key in before})
            raise

    def validate_password(self, password: str) -> bool:
        stored = self._store.get_data().get(PASSWORD_HASH)
        if not stored:
            return False
        return hmac.compare_digest(stored, hash_password(password))

    def _require_wallet(self) -> dict[str, Any]:
        data = self._store.get_data()
        if ENCRYPTED_SECRET not in data:
            raise WalletNotFound("Wallet not found")
        return data

    def _load_secret(self, data: dict[str, Any], password: str) -> Secret:
        return secret_from_payload(crypto.decrypt(data[ENCRYPTED_SECRET], password))

    @property
    def secret_type(self) -> Optional[str]:
        return self._store.get_data().get(SECRET_TYPE)

    # ============================================
    # Addresses
    # ============================================

    def add_address(self, password: str) -> str:
        """
        Derive the next address, make it active, and store it.

        Raises:
            WalletNotFound: no wallet stored
            IncorrectPassword: password hash mismatch
            AddressDerivationError: private key wallets hold one address
        """
        data = self._require_wallet()
        if not self.validate_password(password):
            raise IncorrectPassword()

        secret = self._load_secret(data, password)
        addresses = list(data.get(ADDRESSES, []))
        if secret.max_addresses is not None and len(addresses) >= secret.max_addresses:
            raise AddressDerivationError("Private key wallets only have one address")

        address = secret.derive_address(len(addresses))
        addresses.append(address)

        self._commit({ADDRESSES: addresses, ACTIVE_ADDRESS: address})

        logger.info(f"Added address #{len(addresses) - 1}: {address}")
        return address

    def get_addresses(self) -> list[str]:
        return list(self._store.get_data().get(ADDRESSES, []))

    def get_active_address(self) -> Optional[str]:
        return self._store.get_data().get(ACTIVE_ADDRESS)

    def _find_address(self, address: str) -> int:
        """Index of an address in the wallet (case-insensitive)."""
        for i, known in enumerate(self.get_addresses()):
            if known.lower() == address.lower():
                return i
        raise UnknownAddress(f"Unknown address: {address}")

    def set_active_address(self, address: str) -> str:
        """Select the active address. Returns the stored spelling."""
        index = self._find_address(address)
        canonical = self.get_addresses()[index]
        self._commit({ACTIVE_ADDRESS: canonical})
        logger.info(f"Active address set to {canonical}")
        return canonical

    def get_encryption_public_key(self) -> Optional[str]:
        return self._store.get_data().get(ENCRYPTION_PUBLIC_KEY)

    # ============================================
    # Lock State
    # ============================================

    @property
    def state(self) -> KeyringState:
        if not self.wallet_exists():
            return KeyringState.NO_WALLET
        if self._session.is_open:
            return KeyringState.UNLOCKED
        return KeyringState.LOCKED

    @property
    def is_unlocked(self) -> bool:
        return self.state is KeyringState.UNLOCKED

    def unlock(self, password: str) -> bool:
        """Cache the password for signing if it is correct."""
        if not self.wallet_exists() or not self.validate_password(password):
            logger.warning("Unlock attempt failed")
            return False
        self._session.open(password)
        logger.info("Wallet unlocked")
        return True

    def lock(self) -> None:
        """Clear the cached password."""
        if self._session.is_open:
            logger.info("Wallet locked")
        self._session.close()

    def _require_unlocked(self) -> tuple[dict[str, Any], str]:
        """Record and cached password; anything short of UNLOCKED is KeyringLocked."""
        password = self._session.use()
        data = self._store.get_data()
        if password is None or ENCRYPTED_SECRET not in data:
            raise KeyringLocked()
        return data, password

    def _decrypt_unlocked(self, data: dict[str, Any], password: str, field: str) -> Any:
        try:
            return crypto.decrypt(data[field], password)
        except AuthenticationError:
            # Record changed under a live session; drop the stale password
            self.lock()
            raise

    # ============================================
    # Signing
    # ============================================

    def _signing_account(self, address: Optional[str]):
        data, password = self._require_unlocked()
        target = address or data.get(ACTIVE_ADDRESS)
        if not target:
            raise UnknownAddress("No active address")
        index = self._find_address(target)
        secret = secret_from_payload(self._decrypt_unlocked(data, password, ENCRYPTED_SECRET))
        return secret.derive_account(index)

    def sign_transaction(self, transaction: dict, address: Optional[str] = None) -> SignedTransaction:
        """
        Sign a transaction dict with the active (or given) address.

        Returns eth_account's SignedTransaction; raw_transaction is ready to broadcast.
        """
        account = self._signing_account(address)
        return account.sign_transaction(transaction)

    def sign_message(self, message: Union[str, bytes], address: Optional[str] = None) -> bytes:
        """
        Sign a personal message (EIP-191).

        Returns: 65-byte signature (r + s + v)
        """
        account = self._signing_account(address)
        if isinstance(message, str):
            signable = encode_defunct(text=message)
        else:
            signable = encode_defunct(primitive=message)
        return bytes(account.sign_message(signable).signature)

    def decrypt_note(self, envelope: Union[str, dict]) -> str:
        """Decrypt a note sent to this wallet's encryption public key."""
        data, password = self._require_unlocked()
        if ENCRYPTION_PRIVATE_KEY not in data:
            raise WalletNotFound("Wallet has no encryption key")
        payload = self._decrypt_unlocked(data, password, ENCRYPTION_PRIVATE_KEY)
        return notes.decrypt_note(bytes.fromhex(payload["key"]), envelope)

    # ============================================
    # Removal
    # ============================================

    def remove_keyring(self) -> None:
        """Delete all key material from storage and lock."""
        before = self._store.get_data()
        self._store.remove(*KEY_FIELDS)
        try:
            self._store.save()
        except PersistenceError:
            self._store.set_data({key: before[key] for key in KEY_FIELDS if key in before})
            raise
        self._session.close()
        logger.info("Keyring removed")
