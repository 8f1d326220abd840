"""
Password Salt Handling

Salts are 16 random bytes stored right after the backend prefix. A salt
equal to DUMMY_SALT is never produced, since that value marks containers
encrypted with a managed key.
"""

import hmac
import secrets
from typing import BinaryIO

from ..backends import Backend
from ..constants import DUMMY_SALT, SALT_SIZE
from ..exceptions import CryptoOperationError, FormatError


class SaltManager:
    """Generates fresh salts and reads them back out of containers."""

    def __init__(self, backend: Backend):
        self._backend = backend

    def generate(self) -> bytes:
        """
        Generate a random 16-byte salt that is not DUMMY_SALT.

        Raises:
            CryptoOperationError: If the system RNG fails
        """
        try:
            salt = secrets.token_bytes(SALT_SIZE)
            while hmac.compare_digest(DUMMY_SALT, salt):
                salt = secrets.token_bytes(SALT_SIZE)
        except (OSError, NotImplementedError) as exc:
            raise CryptoOperationError("RNG failure") from exc
        return salt

    def extract(self, input_fp: BinaryIO) -> bytes:
        """
        Read the salt from a container and rewind the stream to offset 0.

        Raises:
            FormatError: If the stream is too short to hold a salt
        """
        input_fp.seek(self._backend.get_file_encryption_salt_offset())
        salt = input_fp.read(SALT_SIZE)
        input_fp.seek(0)
        if len(salt) != SALT_SIZE:
            raise FormatError("Input is too short to contain a salt")
        return salt
