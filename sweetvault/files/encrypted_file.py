"""
Encrypted File Module

Streams files and file-like objects into self-describing encrypted
containers and back.

Two key sources:
- Managed key: derived by the engine for the fixed (FILE_TABLE, FILE_COLUMN)
  context. The salt slot of the container holds DUMMY_SALT.
- Password: derived by the backend KDF from the password and a random salt
  stored in the container.

Container Format:
    [prefix | salt | backend stream data]

    - Prefix: backend magic bytes (e.g. b"fips:")
    - Salt (16): at backend.get_file_encryption_salt_offset()
    - Stream data: nonce, ciphertext and MAC, defined by the backend

Memory use is bounded by the chunk size, whatever the file size. Encrypting
or decrypting a file onto itself is supported.
"""

import hmac
import logging
from typing import BinaryIO

from ..backends import Backend
from ..constants import DEFAULT_CHUNK_SIZE, DUMMY_SALT, FILE_COLUMN, FILE_TABLE
from ..engine import Engine
from ..exceptions import FormatError
from ..keys import RandomProvider
from .detection import FormatDetector
from .salt import SaltManager
from .streams import StreamResolver

logger = logging.getLogger(__name__)


class EncryptedFile:
    """
    File and stream encryption codec.

    Example:
        >>> engine = Engine(StringProvider(root_key_hex), backend='nacl')
        >>> codec = EncryptedFile(engine)
        >>> codec.encrypt_file("report.pdf", "report.pdf.enc")
        True
        >>> codec.is_file_encrypted("report.pdf.enc")
        True
        >>> codec.decrypt_file("report.pdf.enc", "report.pdf")
        True
    """

    def __init__(self, engine: Engine, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Args:
            engine: Key hierarchy engine; also selects the backend
            chunk_size: Bytes processed per iteration. Affects memory use
                and I/O granularity only, never the output format.
        """
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            raise ValueError("Chunk size must be an integer")
        if chunk_size < 1:
            raise ValueError("Chunk size must be positive")

        self._engine = engine
        self._chunk_size = chunk_size
        self._resolver = StreamResolver(chunk_size)
        self._salts = SaltManager(engine.get_backend())
        self._detector = FormatDetector(engine.get_backend())

    def get_backend(self) -> Backend:
        return self._engine.get_backend()

    def get_backend_prefix(self) -> bytes:
        return self._engine.get_backend().get_prefix()

    def get_engine(self) -> Engine:
        return self._engine

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def encrypt_file(self, input_path: str, output_path: str) -> bool:
        """
        Encrypt a file with the managed key.

        Raises:
            FilesystemError: If a path cannot be opened, read or written
            CryptoOperationError: If encryption fails
        """
        logger.debug("Encrypting %s -> %s", input_path, output_path)
        with self._resolver.open_pair(input_path, output_path) as (fin, fout):
            return self.encrypt_stream(fin, fout)

    def decrypt_file(self, input_path: str, output_path: str) -> bool:
        """
        Decrypt a file with the managed key.

        Raises:
            FilesystemError: If a path cannot be opened, read or written
            CryptoOperationError: If the container fails authentication
        """
        logger.debug("Decrypting %s -> %s", input_path, output_path)
        with self._resolver.open_pair(input_path, output_path) as (fin, fout):
            return self.decrypt_stream(fin, fout)

    def encrypt_file_with_password(self, input_path: str, output_path: str,
                                   password: str) -> bool:
        """Encrypt a file with a password instead of the managed key."""
        logger.debug("Encrypting %s -> %s with password", input_path, output_path)
        with self._resolver.open_pair(input_path, output_path) as (fin, fout):
            return self.encrypt_stream_with_password(fin, fout, password)

    def decrypt_file_with_password(self, input_path: str, output_path: str,
                                   password: str) -> bool:
        """Decrypt a password-encrypted file."""
        logger.debug("Decrypting %s -> %s with password", input_path, output_path)
        with self._resolver.open_pair(input_path, output_path) as (fin, fout):
            return self.decrypt_stream_with_password(fin, fout, password)

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def encrypt_stream(self, input_fp: BinaryIO, output_fp: BinaryIO) -> bool:
        key = self._engine.get_field_symmetric_key(FILE_TABLE, FILE_COLUMN)
        return self.get_backend().do_stream_encrypt(
            input_fp, output_fp, key, self._chunk_size
        )

    def decrypt_stream(self, input_fp: BinaryIO, output_fp: BinaryIO) -> bool:
        key = self._engine.get_field_symmetric_key(FILE_TABLE, FILE_COLUMN)
        return self.get_backend().do_stream_decrypt(
            input_fp, output_fp, key, self._chunk_size
        )

    def encrypt_stream_with_password(self, input_fp: BinaryIO,
                                     output_fp: BinaryIO,
                                     password: str) -> bool:
        """
        Encrypt a stream with a key derived from the password and a fresh salt.

        Raises:
            CryptoOperationError: On RNG or key derivation failure
        """
        backend = self.get_backend()
        salt = self._salts.generate()
        key = backend.derive_key_from_password(password, salt)
        return backend.do_stream_encrypt(
            input_fp, output_fp, key, self._chunk_size, salt
        )

    def decrypt_stream_with_password(self, input_fp: BinaryIO,
                                     output_fp: BinaryIO,
                                     password: str) -> bool:
        """
        Decrypt a password-encrypted stream.

        Raises:
            FormatError: If the container was encrypted with the managed key
            CryptoOperationError: If the password is wrong or the data
                was modified
        """
        backend = self.get_backend()
        salt = self.get_salt_from_stream(input_fp)
        if hmac.compare_digest(DUMMY_SALT, salt):
            raise FormatError("Container was not encrypted with a password")
        key = backend.derive_key_from_password(password, salt)
        return backend.do_stream_decrypt(
            input_fp, output_fp, key, self._chunk_size
        )

    def get_salt_from_stream(self, input_fp: BinaryIO) -> bytes:
        """Read the password salt; leaves the stream at offset 0."""
        return self._salts.extract(input_fp)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def is_file_encrypted(self, path: str) -> bool:
        """
        Return True if the file starts with this backend's prefix.

        Raises:
            FilesystemError: If the file cannot be opened
        """
        with self.get_stream_for_file(path, 'rb') as stream:
            return self.is_stream_encrypted(stream)

    def is_stream_encrypted(self, stream: BinaryIO) -> bool:
        """Return True if the stream is a container; position is kept."""
        return self._detector.is_encrypted(stream)

    def get_stream_for_file(self, path: str, mode: str = 'wb') -> BinaryIO:
        """
        Open a file with the codec's buffer size.

        Raises:
            FilesystemError: If the file cannot be opened
        """
        if mode == 'rb':
            return self._resolver.open_for_read(path)
        if mode == 'wb':
            return self._resolver.open_for_write(path)
        raise ValueError(f"Unsupported mode: {mode}")


def encrypt_file_with_password(input_path: str, output_path: str,
                               password: str, backend='fips') -> bool:
    """Convenience function for password-based file encryption."""
    codec = EncryptedFile(Engine(RandomProvider(), backend))
    return codec.encrypt_file_with_password(input_path, output_path, password)


def decrypt_file_with_password(input_path: str, output_path: str,
                               password: str, backend='fips') -> bool:
    """Convenience function for password-based file decryption."""
    codec = EncryptedFile(Engine(RandomProvider(), backend))
    return codec.decrypt_file_with_password(input_path, output_path, password)
