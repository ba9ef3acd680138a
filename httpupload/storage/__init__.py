"""
Storage module for uploaded files.

Files are written below a local root directory, exactly once per path.
"""
from httpupload.storage.write_once import (
    ForbiddenPathError,
    PathConflictError,
    StorageError,
    StorageWriteError,
    UploadError,
    WriteOnceStore,
)

__all__ = [
    "WriteOnceStore",
    "UploadError",
    "ForbiddenPathError",
    "PathConflictError",
    "StorageError",
    "StorageWriteError",
]
