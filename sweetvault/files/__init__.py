# File Encryption Module
"""
Streaming file encryption:
- EncryptedFile: encrypt/decrypt files and streams (managed key or password)
- StreamResolver: safe input/output stream pairs, including same-file staging
- SaltManager: password salt generation and extraction
- FormatDetector: container detection by backend prefix
"""

from .detection import FormatDetector
from .encrypted_file import (
    EncryptedFile,
    decrypt_file_with_password,
    encrypt_file_with_password,
)
from .salt import SaltManager
from .streams import StreamResolver, same_file

__all__ = [
    'EncryptedFile',
    'encrypt_file_with_password',
    'decrypt_file_with_password',
    'StreamResolver',
    'same_file',
    'SaltManager',
    'FormatDetector',
]
