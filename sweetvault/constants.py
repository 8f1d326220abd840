"""
Shared constants for SweetVault.

Sizes are in bytes unless noted otherwise.
"""

# Key material
KEY_SIZE = 32               # 256-bit symmetric keys
SALT_SIZE = 16              # 128-bit password salt

# Reserved salt value meaning "no real salt" (managed-key containers).
# A generated salt must never be equal to it.
DUMMY_SALT = b"\x00" * SALT_SIZE

# Fixed key-hierarchy context used for whole-file encryption
FILE_TABLE = "file"
FILE_COLUMN = "file"

# Streaming
DEFAULT_CHUNK_SIZE = 8192

# Same-path staging buffer stays in memory up to this size, then spills to disk
SPOOL_MAX_SIZE = 8 * 1024 * 1024  # 8 MB
