"""
Wallet Accounts - The two kinds of wallet secret and their derivation.

A wallet is backed by exactly one secret:
- MnemonicSecret: BIP-39 entropy, BIP-32/44 HD derivation (many addresses)
- RawKeySecret: a single imported/generated private key (one address)

Both expose the same interface so the keyring never branches on type.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from mnemonic import Mnemonic
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_account.hdaccount import seed_from_mnemonic, key_from_seed

from .errors import AddressDerivationError, InvalidSecret

# Enable HD wallet features
Account.enable_unaudited_hdwallet_features()


# BIP-44 derivation path for Ethereum
ETH_DERIVATION_PATH = "m/44'/60'/0'/0/{}"

MNEMONIC_LANGUAGE = "english"
# Entropy bits per phrase length
MNEMONIC_STRENGTH = {12: 128, 24: 256}
PRIVATE_KEY_SIZE = 32

SECRET_TYPE_MNEMONIC = "mnemonic"
SECRET_TYPE_PRIVATE_KEY = "private_key"


def _strip_hex(text: str) -> str:
    text = text.strip()
    if text.startswith("0x") or text.startswith("0X"):
        return text[2:]
    return text


# ============================================
# Mnemonic (HD) Secret
# ============================================

@dataclass(frozen=True, repr=False)
class MnemonicSecret:
    """BIP-39 entropy; addresses derived along m/44'/60'/0'/0/{index}."""
    entropy: bytes

    kind: ClassVar[str] = SECRET_TYPE_MNEMONIC
    max_addresses: ClassVar[Optional[int]] = None

    def __repr__(self) -> str:
        return "MnemonicSecret(<redacted>)"

    @property
    def phrase(self) -> str:
        """The recovery phrase (sensitive - only show during backup!)."""
        return Mnemonic(MNEMONIC_LANGUAGE).to_mnemonic(self.entropy)

    @property
    def display(self) -> str:
        return self.phrase

    @classmethod
    def generate(cls, word_count: int = 12) -> "MnemonicSecret":
        """
        Generate a fresh recovery phrase.

        Args:
            word_count: 12 (128-bit) or 24 (256-bit) words
        """
        if word_count not in MNEMONIC_STRENGTH:
            raise ValueError("word_count must be 12 or 24")
        phrase = Mnemonic(MNEMONIC_LANGUAGE).generate(strength=MNEMONIC_STRENGTH[word_count])
        return cls.from_phrase(phrase)

    @classmethod
    def from_phrase(cls, phrase: str) -> "MnemonicSecret":
        """Build from a phrase, rejecting unknown words or a bad checksum."""
        mnemo = Mnemonic(MNEMONIC_LANGUAGE)
        normalized = " ".join(phrase.split()).lower()
        if not normalized or not mnemo.check(normalized):
            raise InvalidSecret("Invalid recovery phrase")
        return cls(bytes(mnemo.to_entropy(normalized)))

    def derive_account(self, index: int) -> LocalAccount:
        if index < 0:
            raise AddressDerivationError(f"Invalid derivation index: {index}")
        seed = seed_from_mnemonic(self.phrase, passphrase="")
        private_key = key_from_seed(seed, ETH_DERIVATION_PATH.format(index))
        return Account.from_key(private_key)

    def derive_address(self, index: int) -> str:
        return self.derive_account(index).address

    def to_payload(self) -> dict:
        return {"type": self.kind, "entropy": self.entropy.hex()}


# ============================================
# Private Key Secret (Single Address)
# ============================================

@dataclass(frozen=True, repr=False)
class RawKeySecret:
    """
    A single private key.

    Unlike HD secrets, this can only have one address (index 0).
    """
    key: bytes

    kind: ClassVar[str] = SECRET_TYPE_PRIVATE_KEY
    max_addresses: ClassVar[Optional[int]] = 1

    def __repr__(self) -> str:
        return "RawKeySecret(<redacted>)"

    @property
    def display(self) -> str:
        return "0x" + self.key.hex()

    @classmethod
    def generate(cls) -> "RawKeySecret":
        return cls(bytes(Account.create().key))

    @classmethod
    def from_hex(cls, private_key: str) -> "RawKeySecret":
        """
        Build from a hex private key (with or without 0x prefix).
        """
        try:
            key = bytes.fromhex(_strip_hex(private_key))
        except ValueError as e:
            raise InvalidSecret("Invalid private key") from e
        if len(key) != PRIVATE_KEY_SIZE:
            raise InvalidSecret("Invalid private key: must be 32 bytes")
        try:
            Account.from_key(key)  # Validate curve range
        except Exception as e:
            raise InvalidSecret("Invalid private key") from e
        return cls(key)

    def derive_account(self, index: int) -> LocalAccount:
        if index != 0:
            raise AddressDerivationError("Private key wallets only have one address")
        return Account.from_key(self.key)

    def derive_address(self, index: int) -> str:
        return self.derive_account(index).address

    def to_payload(self) -> dict:
        return {"type": self.kind, "key": self.key.hex()}


Secret = Union[MnemonicSecret, RawKeySecret]


# ============================================
# Parsing
# ============================================

def parse_secret(text: str) -> Secret:
    """
    Parse user input into a secret.

    Accepts a BIP-39 recovery phrase or a hex private key.
    """
    text = (text or "").strip()
    if not text:
        raise InvalidSecret("Empty secret")
    if len(text.split()) > 1:
        return MnemonicSecret.from_phrase(text)
    return RawKeySecret.from_hex(text)


def secret_from_payload(payload: Any) -> Secret:
    """
    Rebuild a secret from the decrypted contents of encrypted_secret.

    Handles the structured payload written by to_payload() and the bare
    strings written by earlier versions: hex mnemonic entropy, or a
    0x-prefixed private key.
    """
    if isinstance(payload, dict):
        kind = payload.get("type")
        try:
            if kind == SECRET_TYPE_MNEMONIC:
                return MnemonicSecret(bytes.fromhex(payload["entropy"]))
            if kind == SECRET_TYPE_PRIVATE_KEY:
                return RawKeySecret.from_hex(payload["key"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSecret("Stored secret is malformed") from e
        raise InvalidSecret(f"Unknown secret type: {kind}")

    # A digits-only entropy hex string comes back from the JSON step as an int
    if isinstance(payload, int) and not isinstance(payload, bool):
        payload = str(payload)

    if isinstance(payload, str):
        if payload.startswith("0x") or payload.startswith("0X"):
            return RawKeySecret.from_hex(payload)
        try:
            entropy = bytes.fromhex(payload)
        except ValueError as e:
            raise InvalidSecret("Stored secret is malformed") from e
        if len(entropy) not in (16, 20, 24, 28, 32):
            raise InvalidSecret("Stored secret is malformed")
        return MnemonicSecret(entropy)

    raise InvalidSecret("Stored secret is malformed")
