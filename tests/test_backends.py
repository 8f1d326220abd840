"""
Unit tests for the cryptographic backends.

Tests:
- Prefix and salt offset
- Password key derivation
- Container layout
- Authentication and race detection during decryption
"""

import io
import os
import tracemalloc
from unittest.mock import patch

import pytest
from argon2.exceptions import HashingError

from sweetvault.backends import BACKENDS, FIPSCrypto, ModernCrypto, get_backend
from sweetvault.backends.fips import PBKDF2_CONFIG
from sweetvault.backends.modern import ARGON2_CONFIG
from sweetvault.constants import DUMMY_SALT, SALT_SIZE
from sweetvault.exceptions import CryptoOperationError, FormatError
from sweetvault.keys import SymmetricKey


class SwappingStream(io.BytesIO):
    """BytesIO that flips one byte the second time it is rewound to `offset`."""

    def __init__(self, data: bytes, offset: int):
        super().__init__(data)
        self._offset = offset
        self._swapped = False

    def seek(self, pos, whence=io.SEEK_SET):
        if whence == io.SEEK_SET and pos == self._offset and not self._swapped:
            self._swapped = True
            view = self.getbuffer()
            view[pos] ^= 0x01
            view.release()
        return super().seek(pos, whence)


class NullSink:
    """Write-only stream that discards everything."""

    def write(self, data):
        return len(data)

    def flush(self):
        pass


@pytest.fixture(params=['fips', 'nacl'])
def backend(request, fast_backend):
    return fast_backend(request.param)


class TestBackendSelection:
    """Tests for get_backend."""

    def test_names(self):
        """Known names map to backend classes."""
        assert isinstance(get_backend('fips'), FIPSCrypto)
        assert isinstance(get_backend('nacl'), ModernCrypto)
        assert isinstance(get_backend('MODERN'), ModernCrypto)
        assert set(BACKENDS) == {'fips', 'nacl', 'modern'}

    def test_unknown_name(self):
        """Unknown backends are rejected."""
        with pytest.raises(ValueError):
            get_backend('rot13')

    def test_kdf_overrides(self):
        """Keyword arguments override KDF defaults."""
        assert PBKDF2_CONFIG['iterations'] >= 100000
        assert ARGON2_CONFIG['memory_cost'] == 65536
        backend = get_backend('fips', iterations=1000)
        assert backend._iterations == 1000


class TestPrefix:
    """Tests for the format prefix and salt offset."""

    def test_prefixes(self):
        assert FIPSCrypto().get_prefix() == b"fips:"
        assert ModernCrypto().get_prefix() == b"nacl:"

    def test_salt_offset_follows_prefix(self, backend):
        assert backend.get_file_encryption_salt_offset() == len(backend.get_prefix())


class TestKeyDerivation:
    """Tests for password key derivation."""

    def test_deterministic(self, backend):
        """Same password and salt give the same key."""
        salt = b"fixed_salt_12345"
        key1 = backend.derive_key_from_password("password", salt)
        key2 = backend.derive_key_from_password("password", salt)
        assert key1.get_raw_key() == key2.get_raw_key()
        assert len(key1.get_raw_key()) == 32

    def test_different_salt_different_key(self, backend):
        key1 = backend.derive_key_from_password("password", b"salt1" + b"\x00" * 11)
        key2 = backend.derive_key_from_password("password", b"salt2" + b"\x00" * 11)
        assert key1.get_raw_key() != key2.get_raw_key()

    def test_different_password_different_key(self, backend):
        salt = os.urandom(SALT_SIZE)
        key1 = backend.derive_key_from_password("password1", salt)
        key2 = backend.derive_key_from_password("password2", salt)
        assert key1.get_raw_key() != key2.get_raw_key()

    def test_salt_length_checked(self, backend):
        with pytest.raises(ValueError):
            backend.derive_key_from_password("password", b"short")

    def test_argon2_failure(self, fast_backend):
        """Argon2 errors surface as CryptoOperationError."""
        backend = fast_backend('nacl')
        with patch('sweetvault.backends.modern.hash_secret_raw',
                   side_effect=HashingError("boom")):
            with pytest.raises(CryptoOperationError):
                backend.derive_key_from_password("password", os.urandom(SALT_SIZE))


class TestContainer:
    """Tests for do_stream_encrypt / do_stream_decrypt."""

    def test_layout(self, backend):
        """Container is prefix | salt | nonce | ciphertext | MAC."""
        key = SymmetricKey(os.urandom(32))
        salt = os.urandom(SALT_SIZE)
        plaintext = b"layout check"

        output = io.BytesIO()
        assert backend.do_stream_encrypt(io.BytesIO(plaintext), output, key, 8192, salt)
        data = output.getvalue()

        prefix = backend.get_prefix()
        assert data.startswith(prefix)
        offset = backend.get_file_encryption_salt_offset()
        assert data[offset:offset + SALT_SIZE] == salt
        assert len(data) == backend.header_size + len(plaintext) + backend.MAC_SIZE
        assert plaintext not in data

    def test_default_salt_is_dummy(self, backend):
        key = SymmetricKey(os.urandom(32))
        output = io.BytesIO()
        backend.do_stream_encrypt(io.BytesIO(b"x"), output, key)
        offset = backend.get_file_encryption_salt_offset()
        assert output.getvalue()[offset:offset + SALT_SIZE] == DUMMY_SALT

    def test_roundtrip_many_chunks(self, backend):
        key = SymmetricKey(os.urandom(32))
        plaintext = os.urandom(10 * 64 + 3)

        encrypted = io.BytesIO()
        backend.do_stream_encrypt(io.BytesIO(plaintext), encrypted, key, 64)
        decrypted = io.BytesIO()
        assert backend.do_stream_decrypt(encrypted, decrypted, key, 64)
        assert decrypted.getvalue() == plaintext

    def test_bad_salt_length(self, backend):
        key = SymmetricKey(os.urandom(32))
        with pytest.raises(ValueError):
            backend.do_stream_encrypt(io.BytesIO(b"x"), io.BytesIO(), key, 8192, b"salt")

    def test_too_short(self, backend):
        """Anything shorter than an empty container is a format error."""
        key = SymmetricKey(os.urandom(32))
        short = io.BytesIO(backend.get_prefix() + b"\x00" * 10)
        with pytest.raises(FormatError):
            backend.do_stream_decrypt(short, io.BytesIO(), key)

    def test_wrong_prefix(self, backend):
        key = SymmetricKey(os.urandom(32))
        encrypted = io.BytesIO()
        backend.do_stream_encrypt(io.BytesIO(b"data"), encrypted, key)
        data = bytearray(encrypted.getvalue())
        data[0] ^= 0xFF
        with pytest.raises(FormatError):
            backend.do_stream_decrypt(io.BytesIO(bytes(data)), io.BytesIO(), key)

    def test_wrong_key(self, backend):
        encrypted = io.BytesIO()
        backend.do_stream_encrypt(io.BytesIO(b"data"), encrypted,
                                  SymmetricKey(os.urandom(32)))
        with pytest.raises(CryptoOperationError, match="authentication"):
            backend.do_stream_decrypt(encrypted, io.BytesIO(),
                                      SymmetricKey(os.urandom(32)))

    def test_modified_between_passes(self, backend):
        """A file changed after verification is rejected before writing it."""
        key = SymmetricKey(os.urandom(32))
        encrypted = io.BytesIO()
        backend.do_stream_encrypt(io.BytesIO(b"A" * 500), encrypted, key, 100)

        swapping = SwappingStream(encrypted.getvalue(), backend.header_size)
        output = io.BytesIO()
        with pytest.raises(CryptoOperationError, match="Race condition"):
            backend.do_stream_decrypt(swapping, output, key, 100)
        assert output.getvalue() == b""

    def test_decrypt_memory_is_flat(self, fast_backend):
        """Peak memory of decryption does not grow with the input size."""
        backend = fast_backend('fips')
        key = SymmetricKey(os.urandom(32))
        chunk_size = 32

        containers = []
        for size in (256 * 1024, 2 * 1024 * 1024):
            encrypted = io.BytesIO()
            backend.do_stream_encrypt(io.BytesIO(os.urandom(size)), encrypted,
                                      key, chunk_size)
            encrypted.seek(0)
            containers.append(encrypted)

        peaks = []
        for encrypted in containers:
            tracemalloc.start()
            try:
                backend.do_stream_decrypt(encrypted, NullSink(), key, chunk_size)
                peaks.append(tracemalloc.get_traced_memory()[1])
            finally:
                tracemalloc.stop()

        assert peaks[1] < 2 * peaks[0]

    def test_backends_incompatible(self, fast_backend):
        """A container of one backend cannot be read by the other."""
        key = SymmetricKey(os.urandom(32))
        encrypted = io.BytesIO()
        fast_backend('fips').do_stream_encrypt(io.BytesIO(b"data"), encrypted, key)
        with pytest.raises(FormatError):
            fast_backend('nacl').do_stream_decrypt(encrypted, io.BytesIO(), key)
