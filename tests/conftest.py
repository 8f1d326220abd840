"""Shared fixtures. KDF costs are lowered so password tests stay fast."""

import pytest

from sweetvault.backends import FIPSCrypto, ModernCrypto
from sweetvault.engine import Engine
from sweetvault.files import EncryptedFile
from sweetvault.keys import StringProvider

ROOT_KEY_HEX = "4e1c44f87b4cdf21808762970b356891db180a9dd9850e7baf2a79ff3ab8a2fc"


def _fast_backend(name):
    if name == 'fips':
        return FIPSCrypto(iterations=1000)
    return ModernCrypto(time_cost=1, memory_cost=8192)


def _make_codec(name='fips', **kwargs):
    engine = Engine(StringProvider(ROOT_KEY_HEX), _fast_backend(name))
    return EncryptedFile(engine, **kwargs)


@pytest.fixture
def root_key_hex():
    return ROOT_KEY_HEX


@pytest.fixture
def fast_backend():
    """Factory: backend by name with cheap KDF settings."""
    return _fast_backend


@pytest.fixture
def make_codec():
    """Factory: EncryptedFile for a backend name, extra kwargs to the codec."""
    return _make_codec


@pytest.fixture(params=['fips', 'nacl'])
def codec(request):
    """An EncryptedFile for each backend."""
    return _make_codec(request.param)
