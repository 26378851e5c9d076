"""OneDrive file and folder operations over Microsoft Graph."""

import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from ..exceptions import RemoteStorageError

logger = logging.getLogger(__name__)

GRAPH_DRIVE_URL = "https://graph.microsoft.com/v1.0/me/drive"

# Graph accepts a single PUT up to 4 MiB; larger files need an upload session
SIMPLE_UPLOAD_LIMIT = 4 * 1024 * 1024


class OneDriveGateway:
    """Thin wrapper over the Graph drive endpoints used by the uploader.

    Every method blocks on the network. Lookups return ``None`` when the
    item does not exist; any other failure raises
    :class:`~onedrive_uploader.exceptions.RemoteStorageError`.
    """

    def __init__(self, auth, timeout: float = 60.0, chunk_size: int = 10 * 320 * 1024,
                 session: Optional[requests.Session] = None):
        """Initialize the gateway.

        Args:
            auth: Object providing ``get_auth_headers()``
            timeout: Per-request timeout in seconds
            chunk_size: Upload session chunk size in bytes
            session: Optional requests session (a new one by default)
        """
        self.auth = auth
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()

    def _item_url(self, name: str, parent_id: Optional[str]) -> str:
        """Path-addressed URL of ``name`` inside a folder (root if no parent)."""
        base = f"{GRAPH_DRIVE_URL}/items/{parent_id}" if parent_id else f"{GRAPH_DRIVE_URL}/root"
        return f"{base}:/{quote(name, safe='')}:"

    def _children_url(self, parent_id: Optional[str]) -> str:
        if parent_id:
            return f"{GRAPH_DRIVE_URL}/items/{parent_id}/children"
        return f"{GRAPH_DRIVE_URL}/root/children"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = dict(self.auth.get_auth_headers())
        headers.update(kwargs.pop('headers', None) or {})
        try:
            return self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteStorageError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _check(response: requests.Response, action: str) -> Dict[str, Any]:
        if response.status_code >= 400:
            try:
                error = response.json().get('error', {})
                message = error.get('message') or error.get('code') or response.text
            except ValueError:
                message = response.text
            raise RemoteStorageError(
                f"{action} failed: HTTP {response.status_code}: {message}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}

    def _find_item(self, name: str, parent_id: Optional[str]) -> Optional[Dict[str, Any]]:
        response = self._request('GET', self._item_url(name, parent_id),
                                 params={'$select': 'id,name,file,folder'})
        if response.status_code == 404:
            return None
        return self._check(response, f"Looking up '{name}'")

    def find_file_by_name(self, name: str, parent_folder_id: str) -> Optional[str]:
        """Return the id of file ``name`` inside the folder, or None."""
        item = self._find_item(name, parent_folder_id)
        if item is None or 'file' not in item:
            return None
        return item['id']

    def find_folder_by_name(self, name: str, parent_folder_id: Optional[str] = None) -> Optional[str]:
        """Return the id of folder ``name`` (drive root when no parent), or None."""
        item = self._find_item(name, parent_folder_id)
        if item is None or 'folder' not in item:
            return None
        return item['id']

    def create_folder(self, name: str, parent_folder_id: Optional[str] = None) -> str:
        """Create a folder and return its id."""
        response = self._request('POST', self._children_url(parent_folder_id), json={
            'name': name,
            'folder': {},
            '@microsoft.graph.conflictBehavior': 'fail',
        })
        folder = self._check(response, f"Creating folder '{name}'")
        logger.debug(f"Created folder {name} ({folder.get('id')})")
        return folder['id']

    def create_file(self, name: str, parent_folder_id: str, content_path: str) -> str:
        """Upload a new file into the folder and return its id."""
        size = os.path.getsize(content_path)
        item_url = self._item_url(name, parent_folder_id)

        if size <= SIMPLE_UPLOAD_LIMIT:
            with open(content_path, 'rb') as f:
                response = self._request(
                    'PUT', f"{item_url}/content", data=f,
                    params={'@microsoft.graph.conflictBehavior': 'fail'},
                    headers={'Content-Type': 'application/octet-stream'},
                )
            item = self._check(response, f"Uploading '{name}'")
        else:
            item = self._upload_large(f"{item_url}/createUploadSession", content_path, size, 'fail')

        return item['id']

    def update_file(self, remote_id: str, content_path: str) -> str:
        """Replace the content of an existing file and return its id."""
        size = os.path.getsize(content_path)
        item_url = f"{GRAPH_DRIVE_URL}/items/{remote_id}"

        if size <= SIMPLE_UPLOAD_LIMIT:
            with open(content_path, 'rb') as f:
                response = self._request(
                    'PUT', f"{item_url}/content", data=f,
                    headers={'Content-Type': 'application/octet-stream'},
                )
            item = self._check(response, f"Updating item {remote_id}")
        else:
            item = self._upload_large(f"{item_url}/createUploadSession", content_path, size, 'replace')

        return item['id']

    def _upload_large(self, session_url: str, content_path: str, size: int,
                      conflict_behavior: str) -> Dict[str, Any]:
        """Send a file through a Graph upload session, one chunk at a time."""
        response = self._request('POST', session_url, json={
            'item': {'@microsoft.graph.conflictBehavior': conflict_behavior},
        })
        upload_url = self._check(response, "Creating upload session")['uploadUrl']

        offset = 0
        with open(content_path, 'rb') as f:
            while offset < size:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                end = offset + len(chunk) - 1
                # The pre-authenticated upload URL must not carry a bearer token
                try:
                    response = self.session.put(upload_url, data=chunk, timeout=self.timeout, headers={
                        'Content-Length': str(len(chunk)),
                        'Content-Range': f"bytes {offset}-{end}/{size}",
                    })
                except requests.RequestException as e:
                    self._cancel_session(upload_url)
                    raise RemoteStorageError(f"Chunk upload failed at byte {offset}: {e}") from e

                if response.status_code in (200, 201):
                    return response.json()
                if response.status_code != 202:
                    self._cancel_session(upload_url)
                    self._check(response, f"Uploading bytes {offset}-{end}")
                offset = end + 1

        self._cancel_session(upload_url)
        raise RemoteStorageError(f"Upload session for {content_path} ended without a completed item")

    def _cancel_session(self, upload_url: str):
        try:
            self.session.delete(upload_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Could not cancel upload session: {e}")

    def get_drive_info(self) -> Dict[str, Any]:
        """Fetch drive metadata; used as a connection test."""
        response = self._request('GET', GRAPH_DRIVE_URL)
        return self._check(response, "Reading drive information")
