import json
import logging
import os
from typing import Any

import requests

from phototitler.errors import AssetNotFoundError

from .object_storage import ObjectStorage, StorageError

logger = logging.getLogger(__name__)


class DropboxStorageError(StorageError):
    """Custom exception for DropboxStorage errors."""


class DropboxStorage(ObjectStorage):
    """
    Object storage using Dropbox HTTP API. Keys are paths relative to
    base_path.
    """
    _DROPBOX_TOKEN_URL = "https://api.dropbox.com/oauth2/token"  # noqa: S105
    _DROPBOX_LIST_FOLDER_URL = "https://api.dropboxapi.com/2/files/list_folder"
    _DROPBOX_LIST_FOLDER_CONTINUE_URL = "https://api.dropboxapi.com/2/files/list_folder/continue"
    _DROPBOX_DOWNLOAD_URL = "https://content.dropboxapi.com/2/files/download"
    _DROPBOX_UPLOAD_URL = "https://content.dropboxapi.com/2/files/upload"
    _DROPBOX_DELETE_URL = "https://api.dropboxapi.com/2/files/delete_v2"
    _SUCCESS_CODE = 200
    _NOT_FOUND_CODE = 409
    _TIMEOUT = 10  # seconds
    _TRANSFER_TIMEOUT = 60  # seconds, uploads and downloads

    def __init__(self, base_path: str = "") -> None:
        """
        Args:
            base_path: The Dropbox folder holding the photos/, pdfs/ and audio/
                folders. If not provided, uses DROPBOX_ROOT_PATH env var if set,
                else root (''). Can be specified with or without a leading '/'.
        """
        self.token: str | None = None
        self.app_key = os.getenv("DROPBOX_APP_KEY")
        self.app_secret = os.getenv("DROPBOX_APP_SECRET")
        self.refresh_token = os.getenv("DROPBOX_REFRESH_TOKEN")
        root_env = os.getenv("DROPBOX_ROOT_PATH", "")
        if not base_path:
            base_path = root_env
        base_path = base_path.rstrip("/")
        if base_path and not base_path.startswith("/"):
            base_path = "/" + base_path
        self.base_path = base_path

    def _refresh_token(self) -> None:
        try:
            resp = requests.post(
                self._DROPBOX_TOKEN_URL,
                headers=None,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self.refresh_token,
                    "client_id": self.app_key,
                    "client_secret": self.app_secret,
                },
                timeout=self._TIMEOUT,
            )
        except requests.RequestException as exc:
            error_message = f"Failed to obtain Dropbox access token: {exc}"
            raise DropboxStorageError(error_message) from exc
        if resp.status_code != self._SUCCESS_CODE:
            error_message = (
                f"Failed to obtain Dropbox access token: {resp.status_code} "
                f"{resp.text}"
            )
            raise DropboxStorageError(error_message)
        token_json = resp.json()
        self.token = token_json.get("access_token")
        if not self.token:
            error_message = "Failed to obtain Dropbox access token"
            raise DropboxStorageError(error_message)

    def _ensure_token(self) -> None:
        # acquire access token via refresh token
        if not self.token:
            if not all([self.app_key, self.app_secret, self.refresh_token]):
                error_message = "Dropbox OAuth credentials are not set"
                raise DropboxStorageError(error_message)
            self._refresh_token()

    def _post(self, url: str, timeout: int | None = None, **kwargs: Any) -> requests.Response:  # noqa: ANN401
        self._ensure_token()
        headers = {"Authorization": f"Bearer {self.token}", **kwargs.pop("headers", {})}
        try:
            return requests.post(
                url, headers=headers, timeout=timeout or self._TIMEOUT, **kwargs
            )
        except requests.RequestException as exc:
            error_message = f"Dropbox API request failed: {exc}"
            raise DropboxStorageError(error_message) from exc

    def _raise_for_status(self, resp: requests.Response) -> None:
        if resp.status_code != self._SUCCESS_CODE:
            error_message = f"Dropbox API error: {resp.status_code} {resp.text}"
            raise DropboxStorageError(error_message)

    def _dropbox_path(self, key: str) -> str:
        return f"{self.base_path}/{key.lstrip('/')}"

    def _key_for(self, path_display: str) -> str:
        if self.base_path and path_display.lower().startswith(self.base_path.lower() + "/"):
            path_display = path_display[len(self.base_path):]
        return path_display.lstrip("/")

    def _file_keys(self, result: dict[str, Any], prefix: str) -> list[str]:
        keys = [
            self._key_for(entry.get("path_display", ""))
            for entry in result.get("entries", [])
            if entry.get(".tag") == "file"
        ]
        return [k for k in keys if k.startswith(prefix)]

    def list_objects(self, prefix: str) -> list[str]:
        # Dropbox lists folders, not prefixes: list the prefix's folder
        # recursively and filter the keys.
        folder = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        path = self._dropbox_path(folder).rstrip("/") if folder else self.base_path
        resp = self._post(
            self._DROPBOX_LIST_FOLDER_URL,
            headers={"Content-Type": "application/json"},
            json={"path": path, "recursive": True},
        )
        if resp.status_code == self._NOT_FOUND_CODE:
            logger.info("Dropbox folder %s not found, treating as empty", path)
            return []
        self._raise_for_status(resp)
        result = resp.json()
        keys = self._file_keys(result, prefix)
        while result.get("has_more"):
            resp = self._post(
                self._DROPBOX_LIST_FOLDER_CONTINUE_URL,
                headers={"Content-Type": "application/json"},
                json={"cursor": result["cursor"]},
            )
            self._raise_for_status(resp)
            result = resp.json()
            keys.extend(self._file_keys(result, prefix))
        return keys

    def get_object(self, key: str) -> bytes:
        resp = self._post(
            self._DROPBOX_DOWNLOAD_URL,
            timeout=self._TRANSFER_TIMEOUT,
            headers={"Dropbox-API-Arg": json.dumps({"path": self._dropbox_path(key)})},
        )
        if resp.status_code == self._NOT_FOUND_CODE:
            error_message = f"Object not found: {key}"
            raise AssetNotFoundError(error_message)
        self._raise_for_status(resp)
        return resp.content

    def put_object(self, key: str, data: bytes, content_type: str) -> None:  # noqa: ARG002
        arg = {"path": self._dropbox_path(key), "mode": "overwrite", "mute": True}
        resp = self._post(
            self._DROPBOX_UPLOAD_URL,
            timeout=self._TRANSFER_TIMEOUT,
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(arg),
            },
            data=data,
        )
        self._raise_for_status(resp)

    def delete_object(self, key: str) -> None:
        resp = self._post(
            self._DROPBOX_DELETE_URL,
            headers={"Content-Type": "application/json"},
            json={"path": self._dropbox_path(key)},
        )
        # If the file is already missing, treat as success
        if resp.status_code == self._NOT_FOUND_CODE:
            return
        self._raise_for_status(resp)
