"""
Wallet Crypto - Password-based encryption of the wallet secret.

- PBKDF2-HMAC-SHA512 key derivation (random salt, randomized cost)
- AES-256-GCM authenticated encryption
- Single self-describing blob: "enc::" + hex(salt | iv | tag | iterations | ciphertext)

The password and the derived key never leave this module; only the salt,
the iteration field, and the authentication tag travel with the ciphertext.
"""

import json
import logging
import math
import os
import secrets
from pathlib import Path
from typing import Any, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import AuthenticationError, EncryptionError, FormatError

logger = logging.getLogger(__name__)

Password = Union[str, bytes]


# ============================================
# Security Constants
# ============================================

ENCRYPTED_PREFIX = "enc::"

SALT_SIZE = 64
IV_SIZE = 16
TAG_SIZE = 16
ITERATIONS_SIZE = 5  # ASCII digits
KEY_SIZE = 32  # AES-256

MIN_ITERATIONS = 10000
MAX_ITERATIONS = 99999

# Fixed transform applied to the stored iteration field before it reaches
# PBKDF2. It is public and adds no strength; kept for blob compatibility.
ITERATION_FACTOR = 0.47
ITERATION_OFFSET = 1337

HEADER_SIZE = SALT_SIZE + IV_SIZE + TAG_SIZE + ITERATIONS_SIZE

# Secure file permissions (Unix only)
SECURE_FILE_MODE = 0o600  # Owner read/write only


def set_secure_permissions(filepath: Path) -> None:
    """
    Set restrictive file permissions on Unix systems.

    Sets file to mode 0600 (owner read/write only) to protect wallet data.
    No-op on Windows (NTFS uses ACLs, not Unix permissions).
    """
    if os.name == 'posix':
        try:
            os.chmod(filepath, SECURE_FILE_MODE)
        except OSError:
            # Best effort - don't fail save operation if chmod fails
            pass


# ============================================
# Key Derivation
# ============================================

def kdf_iterations(iterations: int) -> int:
    """PBKDF2 rounds actually used for a stored iteration field."""
    return math.floor(iterations * ITERATION_FACTOR + ITERATION_OFFSET)


def derive_key(password: Password, salt: bytes, iterations: int) -> bytes:
    """
    Derive a 32-byte AES key from the password.

    `iterations` is the value stored in the blob; the transform from
    kdf_iterations() is applied here so callers never have to.
    """
    if isinstance(password, str):
        password = password.encode('utf-8')

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_SIZE,
        salt=salt,
        iterations=kdf_iterations(iterations),
    )
    return kdf.derive(password)


# ============================================
# Encryption
# ============================================

def _serialize(plaintext: Any) -> str:
    if isinstance(plaintext, str):
        return plaintext
    return json.dumps(plaintext, separators=(',', ':'))


def encrypt(plaintext: Any, password: Password) -> str:
    """
    Encrypt a value with a password.

    Strings are encrypted as-is; anything else is serialized to JSON first.

    Returns: "enc::<hex>" blob
    Raises: EncryptionError if the cipher primitive fails.
    """
    try:
        data = _serialize(plaintext).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise EncryptionError("Value cannot be serialized for encryption") from e

    salt = secrets.token_bytes(SALT_SIZE)
    iv = secrets.token_bytes(IV_SIZE)
    iterations = MIN_ITERATIONS + secrets.randbelow(MAX_ITERATIONS - MIN_ITERATIONS + 1)

    try:
        key = derive_key(password, salt, iterations)
        ciphertext_and_tag = AESGCM(key).encrypt(iv, data, None)
    except (TypeError, ValueError, OverflowError) as e:
        logger.error("Encryption failed: %s", type(e).__name__)
        raise EncryptionError("Encryption failed") from e

    ciphertext = ciphertext_and_tag[:-TAG_SIZE]
    tag = ciphertext_and_tag[-TAG_SIZE:]

    payload = salt + iv + tag + str(iterations).encode('ascii') + ciphertext
    return ENCRYPTED_PREFIX + payload.hex()


def _split(blob: str) -> tuple[bytes, bytes, bytes, bytes, bytes]:
    """Split a blob into (salt, iv, tag, iterations_field, ciphertext)."""
    if not isinstance(blob, str) or not blob.startswith(ENCRYPTED_PREFIX):
        raise FormatError("Value was not encrypted by this wallet (missing enc:: prefix)")

    body = blob[len(ENCRYPTED_PREFIX):]
    if ENCRYPTED_PREFIX in body:
        raise FormatError("Malformed ciphertext: repeated enc:: marker")

    try:
        raw = bytes.fromhex(body)
    except ValueError as e:
        raise FormatError("Malformed ciphertext: payload is not hex") from e

    if len(raw) < HEADER_SIZE:
        raise FormatError(
            f"Malformed ciphertext: {len(raw)} bytes (minimum {HEADER_SIZE})"
        )

    salt = raw[:SALT_SIZE]
    iv = raw[SALT_SIZE:SALT_SIZE + IV_SIZE]
    tag = raw[SALT_SIZE + IV_SIZE:SALT_SIZE + IV_SIZE + TAG_SIZE]
    iterations_field = raw[SALT_SIZE + IV_SIZE + TAG_SIZE:HEADER_SIZE]
    ciphertext = raw[HEADER_SIZE:]
    return salt, iv, tag, iterations_field, ciphertext


def decrypt(blob: str, password: Password) -> Any:
    """
    Decrypt an "enc::" blob with a password.

    Returns the parsed JSON value when the plaintext is JSON, otherwise the
    plaintext string itself.

    Raises:
        FormatError: blob is not in this format
        AuthenticationError: wrong password or tampered data
    """
    salt, iv, tag, iterations_field, ciphertext = _split(blob)

    # A mangled iteration field can only come from tampering
    if not (iterations_field.isascii() and iterations_field.isdigit()):
        raise AuthenticationError()
    iterations = int(iterations_field)

    key = derive_key(password, salt, iterations)
    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        text = plaintext.decode('utf-8')
    except (InvalidTag, UnicodeDecodeError) as e:
        raise AuthenticationError() from e

    try:
        return json.loads(text)
    except ValueError:
        return text


def is_encrypted(value: Any) -> bool:
    """Check whether a stored value looks like an enc:: blob."""
    return isinstance(value, str) and value.startswith(ENCRYPTED_PREFIX)
