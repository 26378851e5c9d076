"""Shared fixtures for the uploader tests."""

import itertools
import os
import sys
from pathlib import Path

import pytest

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from onedrive_uploader.config.settings import UploaderConfig
from onedrive_uploader.exceptions import RemoteStorageError


class RecordingLogger:
    """BackupLogger that keeps every message for assertions."""

    def __init__(self):
        self.records = []

    def info(self, message):
        self.records.append(("info", message))

    def warning(self, message):
        self.records.append(("warning", message))

    def error(self, message):
        self.records.append(("error", message))

    def messages(self, level=None):
        return [m for lvl, m in self.records if level is None or lvl == level]


class FakeGateway:
    """In-memory stand-in for OneDriveGateway."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.folders = {}  # (parent_id, name) -> id
        self.files = {}  # (parent_id, name) -> id
        self.contents = {}  # id -> bytes
        self.calls = []
        self.fail_names = set()
        self.fail_lookups = False

    def _next_id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    def find_folder_by_name(self, name, parent_folder_id=None):
        self.calls.append(("find_folder", name, parent_folder_id))
        return self.folders.get((parent_folder_id, name))

    def create_folder(self, name, parent_folder_id=None):
        self.calls.append(("create_folder", name, parent_folder_id))
        folder_id = self._next_id("folder-")
        self.folders[(parent_folder_id, name)] = folder_id
        return folder_id

    def find_file_by_name(self, name, parent_folder_id):
        self.calls.append(("find_file", name, parent_folder_id))
        if self.fail_lookups:
            raise RemoteStorageError("lookup failed", status_code=503)
        return self.files.get((parent_folder_id, name))

    def create_file(self, name, parent_folder_id, content_path):
        self.calls.append(("create_file", name, parent_folder_id))
        if name in self.fail_names:
            raise RemoteStorageError(f"network error uploading {name}")
        file_id = self._next_id("file-")
        self.files[(parent_folder_id, name)] = file_id
        self.contents[file_id] = Path(content_path).read_bytes()
        return file_id

    def update_file(self, remote_id, content_path):
        self.calls.append(("update_file", remote_id))
        name = next(n for (_, n), i in self.files.items() if i == remote_id)
        if name in self.fail_names:
            raise RemoteStorageError(f"network error updating {name}")
        self.contents[remote_id] = Path(content_path).read_bytes()
        return remote_id

    def get_drive_info(self):
        self.calls.append(("drive_info",))
        return {"id": "drive-1", "driveType": "personal"}

    def upload_calls(self):
        return [c for c in self.calls if c[0] in ("create_file", "update_file")]


def set_mtime(path, timestamp):
    os.utime(path, (timestamp, timestamp))


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def data_dir(tmp_path):
    """./data with one new file and one excluded scratch file."""
    data = tmp_path / "data"
    data.mkdir()
    (data / "a.txt").write_text("alpha")
    (data / "b.tmp").write_text("scratch")
    set_mtime(data / "a.txt", 1_700_000_000)
    set_mtime(data / "b.tmp", 1_700_000_000)
    return data


@pytest.fixture
def make_config(tmp_path, recording_logger):
    def _make(**overrides):
        values = {
            "folder_name": "Backups",
            "credentials_file": str(tmp_path / "credentials.json"),
            "token_file": str(tmp_path / "token.json"),
            "logger": recording_logger,
        }
        values.update(overrides)
        return UploaderConfig(**values)
    return _make
