"""Tests for OneDriveClient."""

import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from onedrive_uploader.client import OneDriveClient
from onedrive_uploader.exceptions import (
    AuthenticationError,
    AuthorizationDeniedError,
    ConfigurationError,
    RemoteStorageError,
    SchedulerError,
)


class TestClientConstruction:
    """Validation, authentication and folder resolution at construction."""

    def test_creates_missing_folder_in_root(self, make_config, fake_gateway):
        client = OneDriveClient(make_config(), gateway=fake_gateway)

        assert client.folder_id == fake_gateway.folders[(None, "Backups")]
        assert ("create_folder", "Backups", None) in fake_gateway.calls

    def test_reuses_existing_folder(self, make_config, fake_gateway):
        existing = fake_gateway.create_folder("Backups")
        fake_gateway.calls.clear()

        client = OneDriveClient(make_config(), gateway=fake_gateway)

        assert client.folder_id == existing
        assert fake_gateway.calls == [("find_folder", "Backups", None)]

    def test_invalid_config_fails_before_remote_calls(self, make_config, fake_gateway):
        with pytest.raises(ConfigurationError):
            OneDriveClient(make_config(folder_name=""), gateway=fake_gateway)

        assert fake_gateway.calls == []

    def test_folder_resolution_failure_is_fatal(self, make_config):
        gateway = MagicMock()
        gateway.find_folder_by_name.side_effect = RemoteStorageError("forbidden", status_code=403)

        with pytest.raises(RemoteStorageError) as exc_info:
            OneDriveClient(make_config(), gateway=gateway)

        assert exc_info.value.status_code == 403
        assert "Failed to initialize folder" in str(exc_info.value)

    def test_missing_credentials_file_fails_without_remote_calls(self, make_config):
        config = make_config(open_browser=False)

        with patch("onedrive_uploader.client.OneDriveGateway") as gateway_cls, \
                patch("onedrive_uploader.auth.microsoft_auth.msal") as msal_module:
            with pytest.raises(AuthenticationError):
                OneDriveClient(config, console=MagicMock())

        gateway_cls.assert_not_called()
        msal_module.PublicClientApplication.assert_not_called()

    def test_missing_token_and_denied_authorization_fails(self, make_config, tmp_path):
        (tmp_path / "credentials.json").write_text(json.dumps({"client_id": "app-id"}))
        config = make_config(open_browser=False)

        with patch("onedrive_uploader.client.OneDriveGateway") as gateway_cls, \
                patch("onedrive_uploader.auth.microsoft_auth.msal") as msal_module:
            app = msal_module.PublicClientApplication.return_value
            app.initiate_device_flow.return_value = {
                "user_code": "ABCD-EFGH",
                "verification_uri": "https://microsoft.com/devicelogin",
                "interval": 5,
                "expires_in": 900,
            }
            app.acquire_token_by_device_flow.return_value = {
                "error": "authorization_declined",
                "error_description": "The user declined",
            }

            with pytest.raises(AuthorizationDeniedError):
                OneDriveClient(config, console=MagicMock())

        gateway_cls.assert_not_called()
        assert not (tmp_path / "token.json").exists()

    def test_device_flow_success_saves_token_and_builds_gateway(self, make_config, tmp_path):
        (tmp_path / "credentials.json").write_text(json.dumps({"installed": {"client_id": "app-id"}}))
        config = make_config(open_browser=False)

        with patch("onedrive_uploader.client.OneDriveGateway") as gateway_cls, \
                patch("onedrive_uploader.auth.microsoft_auth.msal") as msal_module:
            app = msal_module.PublicClientApplication.return_value
            app.initiate_device_flow.return_value = {
                "user_code": "ABCD-EFGH",
                "verification_uri": "https://microsoft.com/devicelogin",
                "interval": 5,
            }
            app.acquire_token_by_device_flow.return_value = {
                "access_token": "access-1",
                "refresh_token": "refresh-1",
                "expires_in": 3600,
                "token_type": "Bearer",
            }
            gateway_cls.return_value.find_folder_by_name.return_value = "folder-9"

            client = OneDriveClient(config, console=MagicMock())

        assert client.folder_id == "folder-9"
        assert client.auth.get_access_token() == "access-1"
        saved = json.loads((tmp_path / "token.json").read_text())
        assert saved["refresh_token"] == "refresh-1"


class TestClientFileOperations:
    """Upload, update and folder helpers."""

    @pytest.fixture
    def client(self, make_config, fake_gateway):
        return OneDriveClient(make_config(), gateway=fake_gateway)

    @pytest.fixture
    def local_file(self, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text("v1")
        return path

    def test_upload_file_creates_in_target_folder(self, client, fake_gateway, local_file):
        file_id = client.upload_file(str(local_file))

        assert fake_gateway.files[(client.folder_id, "report.txt")] == file_id
        assert fake_gateway.contents[file_id] == b"v1"

    def test_update_file_overwrites_by_name(self, client, fake_gateway, local_file):
        file_id = client.upload_file(str(local_file))
        local_file.write_text("v2")

        assert client.update_file(str(local_file)) == file_id
        assert fake_gateway.contents[file_id] == b"v2"

    def test_update_missing_file_raises(self, client, local_file):
        with pytest.raises(RemoteStorageError, match="File not found: report.txt"):
            client.update_file(str(local_file))

    def test_upload_or_update_reports_is_new(self, client, local_file):
        first_id, first_new = client.upload_or_update_file(str(local_file))
        second_id, second_new = client.upload_or_update_file(str(local_file))

        assert first_new is True
        assert second_new is False
        assert first_id == second_id

    def test_upload_or_update_propagates_lookup_failure(self, client, fake_gateway, local_file):
        fake_gateway.fail_lookups = True

        with pytest.raises(RemoteStorageError):
            client.upload_or_update_file(str(local_file))

        assert fake_gateway.upload_calls() == []

    def test_create_folder_under_parent(self, client, fake_gateway):
        folder_id = client.create_folder("Sub", client.folder_id)

        assert fake_gateway.folders[(client.folder_id, "Sub")] == folder_id

    def test_folder_id_is_not_re_resolved(self, client, fake_gateway, local_file):
        folder_id = client.folder_id
        fake_gateway.folders.clear()

        client.upload_file(str(local_file))

        assert (folder_id, "report.txt") in fake_gateway.files
        assert [c for c in fake_gateway.calls if c[0] == "find_folder"] == [("find_folder", "Backups", None)]

    def test_test_connection(self, client):
        assert client.test_connection() is True

    def test_test_connection_failure(self, make_config):
        gateway = MagicMock()
        gateway.find_folder_by_name.return_value = "folder-1"
        gateway.get_drive_info.side_effect = RemoteStorageError("unauthorized", status_code=401)
        client = OneDriveClient(make_config(), gateway=gateway)

        assert client.test_connection() is False


class TestClientBackupControl:
    """start_backup / stop_backup."""

    def test_start_backup_requires_enabled(self, make_config, fake_gateway):
        client = OneDriveClient(make_config(), gateway=fake_gateway)

        with pytest.raises(ConfigurationError):
            client.start_backup()

    def test_start_twice_raises_and_stop_allows_restart(self, make_config, fake_gateway, data_dir):
        config = make_config(backup_enabled=True, backup_paths=[str(data_dir)])
        client = OneDriveClient(config, gateway=fake_gateway)

        scheduler = client.start_backup()
        try:
            with pytest.raises(SchedulerError):
                client.start_backup()
        finally:
            client.stop_backup(wait=True)

        assert client.scheduler is None
        assert not scheduler.is_running

        client.start_backup()
        client.stop_backup(wait=True)

    def test_stop_backup_without_start_is_noop(self, make_config, fake_gateway):
        client = OneDriveClient(make_config(), gateway=fake_gateway)

        client.stop_backup()
        client.stop_backup()

        assert client.scheduler is None

    def test_backup_enabled_requires_paths(self, make_config, fake_gateway):
        with pytest.raises(ConfigurationError, match="backup_paths"):
            OneDriveClient(make_config(backup_enabled=True), gateway=fake_gateway)

    def test_restart_waits_for_pass_left_running(self, make_config, fake_gateway, data_dir):
        config = make_config(backup_enabled=True, backup_paths=[str(data_dir)], backup_excludes=["*.tmp"])
        client = OneDriveClient(config, gateway=fake_gateway)
        uploading = threading.Event()
        release = threading.Event()
        active = []
        overlaps = []
        create_file = fake_gateway.create_file

        def slow_create_file(name, parent_folder_id, content_path):
            if active:
                overlaps.append(name)
            active.append(name)
            uploading.set()
            release.wait(5)
            try:
                return create_file(name, parent_folder_id, content_path)
            finally:
                active.remove(name)

        fake_gateway.create_file = slow_create_file

        client.start_backup()
        assert uploading.wait(5)
        client.stop_backup()

        restart = threading.Thread(target=client.start_backup)
        restart.start()
        restart.join(0.2)
        assert restart.is_alive()

        release.set()
        restart.join(5)
        client.stop_backup(wait=True)

        assert not restart.is_alive()
        assert overlaps == []
