"""
Wallet errors.

Every failure the cipher, store, and keyring can report. Messages are
generic on purpose: none of them ever carries a password, a recovery
phrase, or key bytes.
"""


class WalletError(Exception):
    """Base class for all wallet failures."""


# ============================================
# Cipher
# ============================================

class FormatError(WalletError, ValueError):
    """Ciphertext is not in the enc:: format (missing prefix, bad hex, short)."""


class AuthenticationError(WalletError, ValueError):
    """Tag mismatch: wrong password or tampered data (indistinguishable)."""

    def __init__(self, message: str = "Incorrect password or corrupted data"):
        super().__init__(message)


class EncryptionError(WalletError):
    """The underlying cipher primitive failed while encrypting."""


# ============================================
# Keyring
# ============================================

class IncorrectPassword(WalletError, ValueError):
    """Password does not match the stored password hash."""

    def __init__(self, message: str = "Incorrect password"):
        super().__init__(message)


class KeyringLocked(WalletError):
    """A signing operation was attempted without unlocking first."""

    def __init__(self, message: str = "Wallet is locked"):
        super().__init__(message)


class UnknownAddress(WalletError, ValueError):
    """Address is not one of the wallet's derived addresses."""


class WalletExists(WalletError):
    """A wallet already exists; it must be removed before creating another."""


class WalletNotFound(WalletError):
    """No wallet has been created or imported yet."""


class InvalidSecret(WalletError, ValueError):
    """Text is neither a valid recovery phrase nor a valid private key."""


class AddressDerivationError(WalletError, ValueError):
    """The secret cannot produce an address at the requested index."""


# ============================================
# Storage
# ============================================

class PersistenceError(WalletError):
    """Reading or writing the storage file failed."""
