"""
Wallet package - Secure key management for Helix.

Contains:
- crypto: enc:: password-based AES-256-GCM blobs
- accounts: MnemonicSecret / RawKeySecret and address derivation
- notes: X25519 note encryption keypair
- Keyring: secret lifecycle, addresses, lock state, signing
- errors: failure taxonomy
"""

from .crypto import encrypt, decrypt, is_encrypted, ENCRYPTED_PREFIX
from .accounts import (
    MnemonicSecret,
    RawKeySecret,
    Secret,
    parse_secret,
    secret_from_payload,
)
from .keyring import Keyring, KeyringState, UnlockSession
from .errors import (
    WalletError,
    FormatError,
    AuthenticationError,
    EncryptionError,
    IncorrectPassword,
    KeyringLocked,
    UnknownAddress,
    WalletExists,
    WalletNotFound,
    InvalidSecret,
    AddressDerivationError,
    PersistenceError,
)

__all__ = [
    # Crypto
    "encrypt",
    "decrypt",
    "is_encrypted",
    "ENCRYPTED_PREFIX",
    # Secrets
    "MnemonicSecret",
    "RawKeySecret",
    "Secret",
    "parse_secret",
    "secret_from_payload",
    # Keyring
    "Keyring",
    "KeyringState",
    "UnlockSession",
    # Errors
    "WalletError",
    "FormatError",
    "AuthenticationError",
    "EncryptionError",
    "IncorrectPassword",
    "KeyringLocked",
    "UnknownAddress",
    "WalletExists",
    "WalletNotFound",
    "InvalidSecret",
    "AddressDerivationError",
    "PersistenceError",
]
