import pytest
from config.settings import VaultConfig
from securex.lib.auth import CredentialGate
from securex.lib.models import VaultEntry
from securex.lib.storage import VaultStore

# Keep PBKDF2 cheap in tests; production uses DEFAULT_ITERATIONS.
FAST_ITERATIONS = 1000


@pytest.fixture
def config(tmp_path):
    return VaultConfig(app_dir=tmp_path / 'securex', kdf_iterations=FAST_ITERATIONS)


@pytest.fixture
def gate(config):
    return CredentialGate(config)


@pytest.fixture
def make_key(gate):
    """Derive a vault key from a password and (by default) a fresh salt."""
    def _make(password='pw', salt=None):
        return gate.crypto.derive_key(password, salt or gate.crypto.generate_salt())
    return _make


@pytest.fixture
def store(config, gate, make_key):
    return VaultStore(config, make_key('pw'), gate.crypto)


@pytest.fixture
def unlock(config, gate):
    """Open the vault the way the CLI does: key from password + master salt."""
    def _unlock(password):
        return VaultStore(config, gate.crypto.derive_key(password, gate.salt()), gate.crypto)
    return _unlock


def entry(account, username='alice', password='p@ss', url=None):
    return VaultEntry.create(account, username, password, url)


@pytest.fixture
def make_entries():
    def _make(*accounts):
        return [entry(a, username=f'{a}-user', password=f'{a}-secret') for a in accounts]
    return _make
