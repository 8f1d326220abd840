"""
Key Material and Key Providers

A key provider supplies the root key of the key hierarchy. The engine
derives every per-context key from it, so the root key never touches
ciphertext directly.

Providers:
- StringProvider: root key given as raw bytes or hex
- FileProvider: root key stored in a file (raw or hex)
- RandomProvider: fresh random root key (tests, throwaway vaults)
"""

import binascii
import secrets
from abc import ABC, abstractmethod
from typing import Union

from .constants import KEY_SIZE
from .exceptions import FilesystemError


class SymmetricKey:
    """
    Opaque 256-bit symmetric key.

    The raw bytes are only reachable through get_raw_key() and are never
    included in repr() output.
    """

    __slots__ = ('_raw',)

    def __init__(self, raw: bytes):
        if not isinstance(raw, (bytes, bytearray)):
            raise TypeError("Key material must be bytes")
        if len(raw) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes")
        self._raw = bytes(raw)

    def get_raw_key(self) -> bytes:
        return self._raw

    def __repr__(self) -> str:
        return f"<SymmetricKey {KEY_SIZE * 8}-bit>"


def _decode_key(material: Union[bytes, str]) -> bytes:
    """Accept 32 raw bytes or 64 hex characters."""
    if isinstance(material, str):
        material = material.strip().encode('ascii')
    if len(material) == KEY_SIZE:
        return bytes(material)
    if len(material) == KEY_SIZE * 2:
        try:
            return binascii.unhexlify(material)
        except binascii.Error as exc:
            raise ValueError("Invalid hex-encoded key") from exc
    raise ValueError(
        f"Key must be {KEY_SIZE} raw bytes or {KEY_SIZE * 2} hex characters"
    )


class KeyProvider(ABC):
    """Supplies the root symmetric key."""

    @abstractmethod
    def get_symmetric_key(self) -> SymmetricKey:
        """Return the root key."""


class StringProvider(KeyProvider):
    """
    Root key passed in directly.

    Example:
        >>> provider = StringProvider("4e1c44f87b4cdf21808762970b356891"
        ...                           "db180a9dd9850e7baf2a79ff3ab8a2fc")
        >>> len(provider.get_symmetric_key().get_raw_key())
        32
    """

    def __init__(self, key_material: Union[bytes, str]):
        self._key = SymmetricKey(_decode_key(key_material))

    def get_symmetric_key(self) -> SymmetricKey:
        return self._key


class FileProvider(KeyProvider):
    """Root key loaded from a file containing raw or hex-encoded key bytes."""

    def __init__(self, path: str):
        try:
            with open(path, 'rb') as f:
                material = f.read()
        except OSError as exc:
            raise FilesystemError(f"Could not read key file: {path}") from exc

        # Hex key files usually end with a newline
        if len(material) != KEY_SIZE:
            material = material.strip()
        self._key = SymmetricKey(_decode_key(material))

    def get_symmetric_key(self) -> SymmetricKey:
        return self._key


class RandomProvider(KeyProvider):
    """Generates a random root key once, at construction."""

    def __init__(self):
        self._key = SymmetricKey(secrets.token_bytes(KEY_SIZE))

    def get_symmetric_key(self) -> SymmetricKey:
        return self._key
