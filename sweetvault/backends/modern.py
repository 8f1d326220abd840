"""
Modern Backend

- Argon2id password key derivation (argon2-cffi low-level API)
- Keyed BLAKE2b subkey derivation from the file key and nonce
- ChaCha20 stream encryption
- Keyed BLAKE2b-256 authentication (32-byte tag)

Stream nonce: 24 random bytes.
"""

import hashlib
from typing import Tuple

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from ..constants import KEY_SIZE, SALT_SIZE
from ..exceptions import CryptoOperationError
from ..keys import SymmetricKey
from .base import Backend


STREAM_NONCE_SIZE = 24
BLAKE2B_MAC_SIZE = 32

# BLAKE2b personalization strings (max 16 bytes)
PERSON_ENCRYPTION = b"sweetvault.enc"
PERSON_AUTHENTICATION = b"sweetvault.auth"

# Argon2id configuration
# - time_cost: number of passes
# - memory_cost: memory usage in KiB
# - parallelism: number of lanes
ARGON2_CONFIG = {
    'time_cost': 2,
    'memory_cost': 65536,    # 64 MiB
    'parallelism': 1,
    'hash_len': KEY_SIZE,
}


class ModernCrypto(Backend):
    """
    ChaCha20 + BLAKE2b backend with Argon2id password hashing.

    Example:
        >>> backend = ModernCrypto(time_cost=1, memory_cost=8192)
        >>> backend.get_prefix()
        b'nacl:'
    """

    PREFIX = b"nacl:"
    NONCE_SIZE = STREAM_NONCE_SIZE
    MAC_SIZE = BLAKE2B_MAC_SIZE

    def __init__(self, **kwargs):
        """
        Args:
            **kwargs: Override ARGON2_CONFIG entries
        """
        self._config = ARGON2_CONFIG.copy()
        self._config.update(kwargs)

    def derive_key_from_password(self, password: str,
                                 salt: bytes) -> SymmetricKey:
        if len(salt) != SALT_SIZE:
            raise ValueError(f"Salt must be {SALT_SIZE} bytes")
        try:
            raw = hash_secret_raw(
                secret=password.encode('utf-8'),
                salt=salt,
                type=Type.ID,
                **self._config
            )
        except HashingError as exc:
            raise CryptoOperationError("Key derivation failed") from exc
        return SymmetricKey(raw)

    def _stream_state(self, key: SymmetricKey, nonce: bytes) -> Tuple[Cipher, object]:
        raw = key.get_raw_key()
        enc_key = hashlib.blake2b(
            nonce, key=raw, digest_size=KEY_SIZE, person=PERSON_ENCRYPTION
        ).digest()
        auth_key = hashlib.blake2b(
            nonce, key=raw, digest_size=KEY_SIZE, person=PERSON_AUTHENTICATION
        ).digest()

        # Subkeys are unique per nonce, so the counter starts at zero
        cipher_nonce = b"\x00" * 4 + nonce[:12]
        cipher = Cipher(algorithms.ChaCha20(enc_key, cipher_nonce), mode=None)
        mac = hashlib.blake2b(key=auth_key, digest_size=BLAKE2B_MAC_SIZE)
        return cipher, mac
