"""
Key Hierarchy Engine

Derives per-context symmetric keys from the root key supplied by a key
provider:

    key(table, column) = HKDF-SHA384(
        root_key,
        salt = table,
        info = DS_FIELD || pack(table, column),
    )

pack() length-prefixes every piece so that ("ab", "c") and ("a", "bc")
never collide.
"""

import logging
import struct
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .backends import Backend, get_backend
from .constants import KEY_SIZE
from .keys import KeyProvider, SymmetricKey

logger = logging.getLogger(__name__)

# Domain separation for field encryption keys
DS_FIELD = b"\xb4" * 32


def pack(*pieces: str) -> bytes:
    """Encode pieces as LE64(count) || (LE64(len) || piece)*."""
    output = struct.pack('<Q', len(pieces))
    for piece in pieces:
        data = piece.encode('utf-8')
        output += struct.pack('<Q', len(data)) + data
    return output


class Engine:
    """
    Holds the key provider and the backend.

    Example:
        >>> engine = Engine(RandomProvider(), backend='nacl')
        >>> key = engine.get_field_symmetric_key('users', 'ssn')
    """

    def __init__(self, key_provider: KeyProvider,
                 backend: Union[Backend, str] = 'fips'):
        """
        Args:
            key_provider: Source of the root key
            backend: Backend instance, or a name accepted by get_backend()
        """
        if isinstance(backend, str):
            backend = get_backend(backend)
        self._backend = backend
        self._key_provider = key_provider
        logger.debug("Engine using %s backend", type(backend).__name__)

    def get_backend(self) -> Backend:
        return self._backend

    def get_key_provider(self) -> KeyProvider:
        return self._key_provider

    def get_field_symmetric_key(self, table: str, column: str) -> SymmetricKey:
        """
        Derive the symmetric key for a (table, column) context.

        Deterministic for a given root key and context.
        """
        root = self._key_provider.get_symmetric_key()
        hkdf = HKDF(
            algorithm=hashes.SHA384(),
            length=KEY_SIZE,
            salt=table.encode('utf-8'),
            info=DS_FIELD + pack(table, column),
        )
        return SymmetricKey(hkdf.derive(root.get_raw_key()))
