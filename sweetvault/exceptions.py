"""
Exception hierarchy for SweetVault.

    SweetVaultError
    ├── FilesystemError
    └── CryptoOperationError
        └── FormatError
"""


class SweetVaultError(Exception):
    """Base class for all SweetVault errors."""


class FilesystemError(SweetVaultError):
    """A path could not be opened, created, read or written."""


class CryptoOperationError(SweetVaultError):
    """
    Raised on entropy, key derivation or cipher failures, including
    authentication failures of an encrypted container.
    """


class FormatError(CryptoOperationError):
    """The data is not a container of the expected format."""
