"""
FIPS Backend

Uses only FIPS-approved primitives:
- PBKDF2-HMAC-SHA384 password key derivation (100,000 iterations)
- HKDF-SHA384 to split the file key into encryption and MAC keys
- AES-256-CTR stream encryption
- HMAC-SHA384 authentication (48-byte tag)

Stream nonce (48 bytes):
    - HKDF salt (32)
    - AES-CTR initial counter block (16)
"""

import hashlib
import hmac
from typing import Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..constants import KEY_SIZE, SALT_SIZE
from ..exceptions import CryptoOperationError
from ..keys import SymmetricKey
from .base import Backend


HKDF_SALT_SIZE = 32
CTR_IV_SIZE = 16
HMAC_SIZE = 48              # SHA-384

# HKDF domain separation
INFO_ENCRYPTION = b"AES-256-CTR"
INFO_AUTHENTICATION = b"HMAC-SHA-384"

# PBKDF2 configuration
PBKDF2_CONFIG = {
    'iterations': 100_000,
    'length': KEY_SIZE,
}


class FIPSCrypto(Backend):
    """
    AES-256-CTR + HMAC-SHA384 backend.

    Example:
        >>> backend = FIPSCrypto()
        >>> backend.get_prefix()
        b'fips:'
    """

    PREFIX = b"fips:"
    NONCE_SIZE = HKDF_SALT_SIZE + CTR_IV_SIZE
    MAC_SIZE = HMAC_SIZE

    def __init__(self, **kwargs):
        """
        Args:
            **kwargs: Override PBKDF2_CONFIG entries (e.g. iterations)
        """
        config = PBKDF2_CONFIG.copy()
        config.update(kwargs)
        self._iterations = config['iterations']
        self._length = config['length']

    def derive_key_from_password(self, password: str,
                                 salt: bytes) -> SymmetricKey:
        if len(salt) != SALT_SIZE:
            raise ValueError(f"Salt must be {SALT_SIZE} bytes")
        try:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA384(),
                length=self._length,
                salt=salt,
                iterations=self._iterations,
            )
            return SymmetricKey(kdf.derive(password.encode('utf-8')))
        except (ValueError, TypeError) as exc:
            raise CryptoOperationError("Key derivation failed") from exc

    def _stream_state(self, key: SymmetricKey, nonce: bytes) -> Tuple[Cipher, object]:
        hkdf_salt = nonce[:HKDF_SALT_SIZE]
        iv = nonce[HKDF_SALT_SIZE:]

        enc_key = HKDF(
            algorithm=hashes.SHA384(),
            length=KEY_SIZE,
            salt=hkdf_salt,
            info=INFO_ENCRYPTION,
        ).derive(key.get_raw_key())
        auth_key = HKDF(
            algorithm=hashes.SHA384(),
            length=HMAC_SIZE,
            salt=hkdf_salt,
            info=INFO_AUTHENTICATION,
        ).derive(key.get_raw_key())

        cipher = Cipher(algorithms.AES(enc_key), modes.CTR(iv))
        mac = hmac.new(auth_key, digestmod=hashlib.sha384)
        return cipher, mac
