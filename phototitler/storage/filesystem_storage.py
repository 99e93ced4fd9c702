import os
from pathlib import Path

from phototitler.errors import AssetNotFoundError

from .object_storage import ObjectStorage, StorageError


class FileSystemStorage(ObjectStorage):
    """
    Object storage using the local filesystem. Keys map to paths relative
    to base_path.
    """
    def __init__(self, base_path: str = "") -> None:
        self.base_path = Path(base_path or os.getenv("STORAGE_ROOT", "."))

    def _path_for(self, key: str) -> Path:
        root = self.base_path.resolve()
        path = (root / key).resolve()
        if path != root and root not in path.parents:
            error_message = f"Key escapes storage root: {key}"
            raise StorageError(error_message)
        return path

    def list_objects(self, prefix: str) -> list[str]:
        root = self.base_path.resolve()
        try:
            keys = [
                p.relative_to(root).as_posix()
                for p in root.rglob("*")
                if p.is_file()
            ]
        except FileNotFoundError:
            return []
        return sorted(k for k in keys if k.startswith(prefix))

    def get_object(self, key: str) -> bytes:
        file_path = self._path_for(key)
        try:
            return file_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as exc:
            error_message = f"Object not found: {key}"
            raise AssetNotFoundError(error_message) from exc

    def put_object(self, key: str, data: bytes, content_type: str) -> None:  # noqa: ARG002
        file_path = self._path_for(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)

    def delete_object(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)
