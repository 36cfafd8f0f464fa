"""
Note encryption - X25519 keypair for receiving private-transfer notes.

Independent of the signing key. A sender encrypts to the wallet's public
encryption key with an ephemeral X25519 key:
    ECDH -> HKDF-SHA256(info="helix-note") -> AES-256-GCM

Envelope (JSON):
    {"version": "x25519-aes256gcm", "ephemPublicKey": b64,
     "nonce": b64, "ciphertext": b64}
"""

import base64
import json
import os
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import AuthenticationError, FormatError

NOTE_VERSION = "x25519-aes256gcm"
NOTE_CONTEXT = b"helix-note"
NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _public_bytes(public_key: X25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _note_key(shared: bytes, ephem_public: bytes, recipient_public: bytes) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=ephem_public + recipient_public,
        info=NOTE_CONTEXT,
    )
    return hkdf.derive(shared)


def generate_encryption_keypair() -> tuple[bytes, str]:
    """Generate a keypair. Returns (raw private key, base64 public key)."""
    private = X25519PrivateKey.generate()
    private_bytes = private.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return private_bytes, _b64(_public_bytes(private.public_key()))


def public_key_from_private(private_key: bytes) -> str:
    """Base64 public key for a raw private key."""
    private = X25519PrivateKey.from_private_bytes(private_key)
    return _b64(_public_bytes(private.public_key()))


def encrypt_note(recipient_public_key: str, plaintext: str) -> str:
    """Encrypt a note to a base64 X25519 public key. Returns the JSON envelope."""
    try:
        recipient_bytes = base64.b64decode(recipient_public_key, validate=True)
        recipient = X25519PublicKey.from_public_bytes(recipient_bytes)
    except ValueError as e:
        raise FormatError("Invalid encryption public key") from e

    ephem = X25519PrivateKey.generate()
    ephem_public = _public_bytes(ephem.public_key())
    key = _note_key(ephem.exchange(recipient), ephem_public, recipient_bytes)

    nonce = os.urandom(NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return json.dumps({
        "version": NOTE_VERSION,
        "ephemPublicKey": _b64(ephem_public),
        "nonce": _b64(nonce),
        "ciphertext": _b64(ct),
    })


def decrypt_note(private_key: bytes, envelope: Union[str, dict]) -> str:
    """
    Decrypt a note envelope with the raw X25519 private key.

    Raises:
        FormatError: envelope is not a note envelope
        AuthenticationError: wrong key or tampered note
    """
    try:
        data = json.loads(envelope) if isinstance(envelope, str) else envelope
        if data.get("version") != NOTE_VERSION:
            raise FormatError(f"Unsupported note version: {data.get('version')}")
        ephem_public = base64.b64decode(data["ephemPublicKey"], validate=True)
        nonce = base64.b64decode(data["nonce"], validate=True)
        ct = base64.b64decode(data["ciphertext"], validate=True)
        ephem = X25519PublicKey.from_public_bytes(ephem_public)
    except FormatError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise FormatError("Malformed note envelope") from e

    private = X25519PrivateKey.from_private_bytes(private_key)
    recipient_public = _public_bytes(private.public_key())
    key = _note_key(private.exchange(ephem), ephem_public, recipient_public)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ct, None)
    except (InvalidTag, ValueError) as e:
        raise AuthenticationError("Note could not be decrypted") from e
    return plaintext.decode("utf-8")
