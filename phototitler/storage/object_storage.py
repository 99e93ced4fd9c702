import unicodedata
from abc import ABC, abstractmethod
from pathlib import PurePosixPath

from phototitler.errors import InvalidInputError

PHOTOS_PREFIX = "photos/"
PDFS_PREFIX = "pdfs/"
AUDIO_PREFIX = "audio/"

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".tiff", ".tif"})


def display_sort_key(name: str) -> tuple[str, str]:
    """Case- and accent-insensitive ordering, ties broken by the raw name."""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), name


class StorageError(Exception):
    """Base exception for object storage backends."""


class ObjectStorage(ABC):
    """
    Interface for object storage backends: an opaque key to bytes store
    with prefix listing.
    """

    @abstractmethod
    def list_objects(self, prefix: str) -> list[str]:
        """
        Return every key starting with prefix, following pagination.
        """
        error_message = "list_objects not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """
        Retrieve the raw bytes stored under key.
        Raises AssetNotFoundError if the key does not exist.
        """
        error_message = "get_object not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def put_object(self, key: str, data: bytes, content_type: str) -> None:
        """
        Store data under key, replacing any existing object.
        """
        error_message = "put_object not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def delete_object(self, key: str) -> None:
        """
        Delete the object stored under key. Missing keys are not an error.
        """
        error_message = "delete_object not implemented"
        raise NotImplementedError(error_message)

    def list_photos(self) -> list[str]:
        """
        Return photo filenames (relative to the photos prefix), images only,
        sorted ignoring case and accents.
        """
        filenames = []
        for key in self.list_objects(PHOTOS_PREFIX):
            filename = key.removeprefix(PHOTOS_PREFIX)
            if filename and PurePosixPath(filename).suffix.lower() in IMAGE_EXTENSIONS:
                filenames.append(filename)
        return sorted(filenames, key=display_sort_key)

    def get_photo(self, filename: str) -> bytes:
        if not filename or ".." in PurePosixPath(filename).parts:
            msg = f"Invalid photo filename: {filename!r}"
            raise InvalidInputError(msg)
        return self.get_object(PHOTOS_PREFIX + filename)
