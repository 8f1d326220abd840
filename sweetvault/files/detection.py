"""
Container format detection.

Checks the leading bytes of a stream against the backend prefix. This is
advisory only: a matching prefix says nothing about authenticity.
"""

import hmac
from typing import BinaryIO

from ..backends import Backend


class FormatDetector:
    """Classifies streams as containers of a given backend."""

    def __init__(self, backend: Backend):
        self._backend = backend

    def is_encrypted(self, stream: BinaryIO) -> bool:
        """
        Return True if the stream starts with the backend prefix.

        The stream position is left where it was.
        """
        expected = self._backend.get_prefix()
        position = stream.tell()
        try:
            stream.seek(0)
            header = stream.read(len(expected))
            if header is None or len(header) < len(expected):
                return False
            return hmac.compare_digest(expected, header)
        finally:
            stream.seek(position)
