# Backends Module
"""
Cryptographic backends for file encryption:
- FIPSCrypto: AES-256-CTR + HMAC-SHA384, PBKDF2-SHA384
- ModernCrypto: ChaCha20 + BLAKE2b, Argon2id

A backend is chosen once, when the engine is constructed.
"""

from .base import Backend
from .fips import FIPSCrypto
from .modern import ModernCrypto

BACKENDS = {
    'fips': FIPSCrypto,
    'nacl': ModernCrypto,
    'modern': ModernCrypto,
}


def get_backend(name: str, **kwargs) -> Backend:
    """
    Create a backend by name.

    Args:
        name: 'fips', 'nacl' or 'modern'
        **kwargs: Backend KDF overrides

    Raises:
        ValueError: If the name is unknown
    """
    try:
        backend_class = BACKENDS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown backend: {name}") from None
    return backend_class(**kwargs)


__all__ = [
    'Backend',
    'FIPSCrypto',
    'ModernCrypto',
    'BACKENDS',
    'get_backend',
]
