import pathlib

import pytest

from phototitler.errors import AssetNotFoundError, InvalidInputError
from phototitler.storage import (
    DropboxStorage,
    FileSystemStorage,
    ObjectStorage,
    StorageError,
    get_storage_backend,
)


def test_filesystem_storage(tmp_path: pathlib.Path) -> None:
    photos = tmp_path / "photos"
    (photos / "2024").mkdir(parents=True)
    (photos / "photo1.jpg").write_bytes(b"first")
    (photos / "Photo2.PNG").write_bytes(b"second")
    (photos / "2024" / "nested.jpeg").write_bytes(b"nested")
    (photos / "notes.txt").write_bytes(b"text")
    (tmp_path / "pdfs").mkdir()
    (tmp_path / "pdfs" / "doc.pdf").write_bytes(b"%PDF")

    storage = FileSystemStorage(base_path=str(tmp_path))
    assert storage.list_photos() == ["2024/nested.jpeg", "photo1.jpg", "Photo2.PNG"]
    assert storage.get_photo("photo1.jpg") == b"first"
    assert storage.list_objects("pdfs/") == ["pdfs/doc.pdf"]


def test_filesystem_put_and_delete(tmp_path: pathlib.Path) -> None:
    storage = FileSystemStorage(base_path=str(tmp_path))
    storage.put_object("audio/a.jpg.webm", b"sound", "audio/webm")
    assert (tmp_path / "audio" / "a.jpg.webm").read_bytes() == b"sound"
    storage.put_object("audio/a.jpg.webm", b"again", "audio/webm")
    assert storage.get_object("audio/a.jpg.webm") == b"again"
    storage.delete_object("audio/a.jpg.webm")
    storage.delete_object("audio/a.jpg.webm")
    assert storage.list_objects("audio/") == []


def test_filesystem_missing_object(tmp_path: pathlib.Path) -> None:
    storage = FileSystemStorage(base_path=str(tmp_path))
    with pytest.raises(AssetNotFoundError):
        storage.get_object("photos/missing.jpg")


def test_filesystem_rejects_escaping_keys(tmp_path: pathlib.Path) -> None:
    storage = FileSystemStorage(base_path=str(tmp_path / "root"))
    with pytest.raises(StorageError, match="escapes"):
        storage.put_object("../outside.txt", b"x", "text/plain")


def test_filesystem_storage_missing_path() -> None:
    # Listing a nonexistent directory returns empty list
    storage = FileSystemStorage(base_path="/path/does/not/exist")
    assert storage.list_photos() == []


def test_filesystem_root_from_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path
) -> None:
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path))
    assert FileSystemStorage().base_path == tmp_path


@pytest.mark.parametrize("filename", ["", "../secret.jpg", "a/../../b.jpg"])
def test_get_photo_rejects_bad_names(tmp_path: pathlib.Path, filename: str) -> None:
    storage = FileSystemStorage(base_path=str(tmp_path))
    with pytest.raises(InvalidInputError):
        storage.get_photo(filename)


def test_object_storage_abstract_methods() -> None:
    # Subclass implements but calls super, which raises NotImplementedError
    class Dummy(ObjectStorage):
        def list_objects(self, prefix: str) -> list[str]:
            return super().list_objects(prefix)  # type: ignore[safe-super]

        def get_object(self, key: str) -> bytes:
            return super().get_object(key)  # type: ignore[safe-super]

        def put_object(self, key: str, data: bytes, content_type: str) -> None:
            super().put_object(key, data, content_type)  # type: ignore[safe-super]

        def delete_object(self, key: str) -> None:
            super().delete_object(key)  # type: ignore[safe-super]

    dummy = Dummy()
    with pytest.raises(NotImplementedError, match="list_objects not implemented"):
        dummy.list_photos()
    with pytest.raises(NotImplementedError, match="get_object not implemented"):
        dummy.get_photo("x.jpg")
    with pytest.raises(NotImplementedError):
        dummy.put_object("k", b"", "text/plain")
    with pytest.raises(NotImplementedError):
        dummy.delete_object("k")


def test_default_storage_is_filesystem(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    assert isinstance(get_storage_backend(), FileSystemStorage)


def test_blank_override_backend_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "")
    assert isinstance(get_storage_backend(), FileSystemStorage)


def test_override_backend_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "Dropbox")
    assert isinstance(get_storage_backend(), DropboxStorage)


def test_unknown_backend_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "s3")
    with pytest.raises(ValueError, match="Unknown storage backend"):
        get_storage_backend()


def test_list_photos_ignores_accents(tmp_path: pathlib.Path) -> None:
    photos = tmp_path / "photos"
    photos.mkdir()
    for name in ("Étang.jpg", "Ecluse.jpg", "ete.jpg", "Eva.jpg"):
        (photos / name).write_bytes(b"x")
    storage = FileSystemStorage(base_path=str(tmp_path))
    assert storage.list_photos() == ["Ecluse.jpg", "Étang.jpg", "ete.jpg", "Eva.jpg"]
