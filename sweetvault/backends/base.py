"""
Backend Interface and Streaming Container

Every backend produces the same container shape:

    [prefix | salt | stream nonce | ciphertext ... | MAC]

    - Prefix (5): backend magic, used only for format detection
    - Salt (16): password salt, or DUMMY_SALT for managed-key containers
    - Stream nonce (backend-defined): per-container randomness
    - Ciphertext: plaintext length, produced by a stream cipher
    - MAC (backend-defined): covers everything before it

Decryption is two-pass with bounded memory:
    1. Authenticate the whole container, spooling a short checkpoint of the
       running MAC after each chunk to a temporary file.
    2. Rewind, re-check each chunk against its checkpoint, then decrypt it.

No plaintext is written until the MAC has been verified, and a file that
changes between the two passes is rejected.
"""

import hmac
import io
import logging
import secrets
import tempfile
from abc import ABC, abstractmethod
from typing import BinaryIO, Tuple

from cryptography.hazmat.primitives.ciphers import Cipher

from ..constants import DEFAULT_CHUNK_SIZE, DUMMY_SALT, SALT_SIZE
from ..exceptions import CryptoOperationError, FormatError
from ..keys import SymmetricKey

logger = logging.getLogger(__name__)

# Truncated running-MAC snapshot kept per chunk between decryption passes
CHECKPOINT_SIZE = 16

# Checkpoints stay in memory up to this size, then spill to disk
CHECKPOINT_SPOOL_SIZE = 64 * 1024


def _read_exact(fp: BinaryIO, size: int) -> bytes:
    """Read exactly `size` bytes or raise FormatError."""
    data = fp.read(size)
    if data is None or len(data) != size:
        raise FormatError("Unexpected end of stream")
    return data


class Backend(ABC):
    """
    Cryptographic primitive provider for the file codec.

    Subclasses set PREFIX, NONCE_SIZE and MAC_SIZE, and implement the
    password KDF and the per-container key schedule.
    """

    PREFIX = b""
    NONCE_SIZE = 0
    MAC_SIZE = 0

    def get_prefix(self) -> bytes:
        """Magic bytes at the start of every container of this backend."""
        return self.PREFIX

    def get_file_encryption_salt_offset(self) -> int:
        """Byte offset of the 16-byte salt, directly after the prefix."""
        return len(self.PREFIX)

    @abstractmethod
    def derive_key_from_password(self, password: str,
                                 salt: bytes) -> SymmetricKey:
        """
        Derive a symmetric key from a password and a 16-byte salt.

        Raises:
            CryptoOperationError: If the KDF fails
        """

    @abstractmethod
    def _stream_state(self, key: SymmetricKey, nonce: bytes) -> Tuple[Cipher, object]:
        """
        Build the stream cipher and a fresh MAC object for one container.

        The MAC object must support update(), copy() and digest().
        """

    @property
    def header_size(self) -> int:
        return len(self.PREFIX) + SALT_SIZE + self.NONCE_SIZE

    def do_stream_encrypt(self, input_fp: BinaryIO, output_fp: BinaryIO,
                          key: SymmetricKey,
                          chunk_size: int = DEFAULT_CHUNK_SIZE,
                          salt: bytes = DUMMY_SALT) -> bool:
        """
        Encrypt input_fp (from its current position) into output_fp.

        Args:
            input_fp: Readable plaintext stream
            output_fp: Writable stream receiving the container
            key: Encryption key
            chunk_size: Bytes read per iteration
            salt: Password salt to embed, DUMMY_SALT in managed mode

        Returns:
            True on success
        """
        if len(salt) != SALT_SIZE:
            raise ValueError(f"Salt must be {SALT_SIZE} bytes")

        nonce = secrets.token_bytes(self.NONCE_SIZE)
        cipher, mac = self._stream_state(key, nonce)
        encryptor = cipher.encryptor()

        header = self.PREFIX + salt + nonce
        output_fp.write(header)
        mac.update(header)

        chunks = 0
        while True:
            chunk = input_fp.read(chunk_size)
            if not chunk:
                break
            ciphertext = encryptor.update(chunk)
            mac.update(ciphertext)
            output_fp.write(ciphertext)
            chunks += 1

        # Stream ciphers produce no trailing block
        tail = encryptor.finalize()
        if tail:
            mac.update(tail)
            output_fp.write(tail)

        output_fp.write(mac.digest())
        output_fp.flush()
        logger.debug("Encrypted %d chunk(s) with %s", chunks, type(self).__name__)
        return True

    def do_stream_decrypt(self, input_fp: BinaryIO, output_fp: BinaryIO,
                          key: SymmetricKey,
                          chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
        """
        Authenticate and decrypt the container in input_fp into output_fp.

        The container must start at offset 0 of input_fp.

        Returns:
            True on success

        Raises:
            FormatError: Container too short or prefix mismatch
            CryptoOperationError: Authentication failed, or the input
                changed between the verification and decryption passes
        """
        input_fp.seek(0, io.SEEK_END)
        total_size = input_fp.tell()
        input_fp.seek(0)

        header_size = self.header_size
        if total_size < header_size + self.MAC_SIZE:
            raise FormatError("Input file is too small to be a valid container")

        header = _read_exact(input_fp, header_size)
        if not hmac.compare_digest(header[:len(self.PREFIX)], self.PREFIX):
            raise FormatError("Invalid file header")

        nonce = header[-self.NONCE_SIZE:]
        cipher, mac = self._stream_state(key, nonce)
        mac.update(header)
        initial_mac = mac.copy()

        end = total_size - self.MAC_SIZE
        with tempfile.SpooledTemporaryFile(max_size=CHECKPOINT_SPOOL_SIZE,
                                           mode='w+b') as checkpoints:
            # Pass 1: authenticate, recording a checkpoint per chunk
            chunks = 0
            position = header_size
            while position < end:
                chunk = _read_exact(input_fp, min(chunk_size, end - position))
                mac.update(chunk)
                checkpoints.write(mac.copy().digest()[:CHECKPOINT_SIZE])
                position += len(chunk)
                chunks += 1

            stored_mac = _read_exact(input_fp, self.MAC_SIZE)
            if not hmac.compare_digest(mac.digest(), stored_mac):
                logger.warning("Authentication failed for %s container",
                               type(self).__name__)
                raise CryptoOperationError("Invalid authentication tag")

            # Pass 2: re-verify each chunk against its checkpoint, then decrypt
            checkpoints.seek(0)
            input_fp.seek(header_size)
            decryptor = cipher.decryptor()
            mac = initial_mac
            position = header_size
            for _ in range(chunks):
                checkpoint = checkpoints.read(CHECKPOINT_SIZE)
                chunk = input_fp.read(min(chunk_size, end - position))
                mac.update(chunk)
                if not hmac.compare_digest(checkpoint,
                                           mac.copy().digest()[:CHECKPOINT_SIZE]):
                    raise CryptoOperationError("Race condition")
                output_fp.write(decryptor.update(chunk))
                position += len(chunk)

        output_fp.write(decryptor.finalize())
        output_fp.flush()
        logger.debug("Decrypted %d chunk(s) with %s", chunks, type(self).__name__)
        return True
