# SweetVault
"""
Streaming file encryption for a field-level encryption library.

Example:
    >>> from sweetvault import Engine, EncryptedFile, RandomProvider
    >>> codec = EncryptedFile(Engine(RandomProvider(), backend='fips'))
    >>> codec.encrypt_file_with_password("notes.txt", "notes.enc", "hunter2")
    True
"""

from .backends import Backend, FIPSCrypto, ModernCrypto, get_backend
from .constants import DEFAULT_CHUNK_SIZE, DUMMY_SALT, FILE_COLUMN, FILE_TABLE
from .engine import Engine
from .exceptions import (
    CryptoOperationError,
    FilesystemError,
    FormatError,
    SweetVaultError,
)
from .files import EncryptedFile
from .keys import (
    FileProvider,
    KeyProvider,
    RandomProvider,
    StringProvider,
    SymmetricKey,
)

__version__ = "1.0.0"

__all__ = [
    'Backend',
    'FIPSCrypto',
    'ModernCrypto',
    'get_backend',
    'Engine',
    'EncryptedFile',
    'KeyProvider',
    'StringProvider',
    'FileProvider',
    'RandomProvider',
    'SymmetricKey',
    'SweetVaultError',
    'FilesystemError',
    'CryptoOperationError',
    'FormatError',
    'DEFAULT_CHUNK_SIZE',
    'DUMMY_SALT',
    'FILE_TABLE',
    'FILE_COLUMN',
]
