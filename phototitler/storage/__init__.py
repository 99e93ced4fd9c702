import os

from .dropbox_storage import DropboxStorage, DropboxStorageError
from .filesystem_storage import FileSystemStorage
from .object_storage import (
    AUDIO_PREFIX,
    IMAGE_EXTENSIONS,
    PDFS_PREFIX,
    PHOTOS_PREFIX,
    ObjectStorage,
    StorageError,
)

__all__ = [
    "AUDIO_PREFIX",
    "IMAGE_EXTENSIONS",
    "PDFS_PREFIX",
    "PHOTOS_PREFIX",
    "DropboxStorage",
    "DropboxStorageError",
    "FileSystemStorage",
    "ObjectStorage",
    "StorageError",
    "get_storage_backend",
]


def get_storage_backend() -> ObjectStorage:
    """
    Factory for storage backend based on STORAGE_BACKEND env var.
    Defaults to FileSystemStorage rooted at STORAGE_ROOT.

    Supported values (case-insensitive):
      - 'filesystem'
      - 'dropbox'
    """
    backend = os.getenv("STORAGE_BACKEND", "filesystem").lower()
    if backend in ("filesystem", ""):  # default
        return FileSystemStorage()
    if backend == "dropbox":
        return DropboxStorage()
    error_message = f"Unknown storage backend: {backend}"
    raise ValueError(error_message)
