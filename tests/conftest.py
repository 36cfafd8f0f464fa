"""Shared fixtures: every test gets its own wallet home and storage file."""
import pytest

from models.store import SecretStore
from utils import APP_HOME_ENV
from wallet import Keyring

# Well-known BIP-39 / eth_account vectors
TEST_PHRASE = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
TEST_PHRASE_ADDRESS_0 = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_PRIVATE_KEY_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

PASSWORD = "correctpw1"


@pytest.fixture(autouse=True)
def wallet_home(tmp_path, monkeypatch):
    """Point the app directory at a temp dir and reset the store registry."""
    home = tmp_path / "helix-home"
    monkeypatch.setenv(APP_HOME_ENV, str(home))
    SecretStore.clear_instances()
    yield home
    SecretStore.clear_instances()


@pytest.fixture
def storage_path(tmp_path):
    return tmp_path / "storage.json"


@pytest.fixture
def store(storage_path):
    return SecretStore.get_instance(storage_path)


@pytest.fixture
def keyring(store):
    return Keyring(store)


@pytest.fixture
def mnemonic_keyring(keyring):
    """Keyring with the test phrase stored under PASSWORD."""
    keyring.persist(TEST_PHRASE, PASSWORD)
    return keyring
