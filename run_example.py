#!/usr/bin/env python3
"""
Example script demonstrating how to use the OneDrive Uploader.

This script shows how to:
1. Set up the configuration
2. Create the client (device-flow sign-in on first run)
3. Upload, update and create folders
4. Run scheduled backup with the default and a custom logger

Run it from a directory containing credentials.json (your app registration).
"""

import logging
import sys
import time
from pathlib import Path

# Add src to Python path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent / "src"))

from onedrive_uploader import OneDriveClient, StandardLogger, UploaderConfig
from onedrive_uploader.exceptions import UploaderError
from onedrive_uploader.utils.logging import setup_logging


def load_config() -> UploaderConfig:
    """Load config/config.yaml if present, otherwise use demo defaults."""
    config_path = Path("config/config.yaml")
    if config_path.exists():
        print(f"📝 Loading configuration from {config_path}")
        return UploaderConfig.from_yaml(config_path)

    return UploaderConfig(
        folder_name="My Backups",
        credentials_file="credentials.json",
        token_file="token.json",
    )


def demonstrate_uploads(client: OneDriveClient):
    """Upload, update and upload-or-update a sample file."""
    sample = Path("test.txt")
    sample.write_text(f"OneDrive Uploader example - {time.ctime()}\n", encoding="utf-8")

    print("\n=== Example 1: upload a new file ===")
    try:
        file_id = client.upload_file(str(sample))
        print(f"✅ Uploaded, id: {file_id}")
    except UploaderError as e:
        print(f"❌ Upload failed: {e}")

    print("\n=== Example 2: update an existing file ===")
    try:
        file_id = client.update_file(str(sample))
        print(f"✅ Updated, id: {file_id}")
    except UploaderError as e:
        print(f"❌ Update failed: {e}")

    print("\n=== Example 3: upload or update (recommended) ===")
    file_id, is_new = client.upload_or_update_file(str(sample))
    print(f"✅ {'Created' if is_new else 'Updated'}, id: {file_id}")

    print("\n=== Example 4: create a subfolder ===")
    try:
        folder_id = client.create_folder("Subfolder", client.folder_id)
        print(f"✅ Folder created, id: {folder_id}")
    except UploaderError as e:
        print(f"❌ Folder creation failed: {e}")


def demonstrate_backup(config: UploaderConfig, logger=None):
    """Back up ./data every 10 seconds for half a minute."""
    Path("data").mkdir(exist_ok=True)
    Path("data/a.txt").write_text("hello\n", encoding="utf-8")
    Path("data/b.tmp").write_text("scratch\n", encoding="utf-8")

    backup_config = config.model_copy(update={
        "backup_enabled": True,
        "backup_interval": 10,
        "backup_paths": ["./data"],
        "backup_excludes": ["*.tmp", "*.log", ".DS_Store"],
        "backup_full_mode": False,
        "logger": logger,
    })

    client = OneDriveClient(backup_config)
    client.start_backup()
    try:
        time.sleep(30)
    finally:
        client.stop_backup(wait=True)


def main() -> int:
    """Main example function."""
    print("🚀 OneDrive Uploader - Example Run")
    print("=" * 60)

    setup_logging(log_level="INFO", log_file=Path("logs") / "example_run.log")

    try:
        config = load_config()
        client = OneDriveClient(config)
        print("✅ OneDrive client initialized")
        print(f"📁 Using folder id: {client.folder_id}")

        demonstrate_uploads(client)

        print("\n=== Example 5: scheduled backup ===")
        demonstrate_backup(config)

        print("\n=== Example 6: scheduled backup with a custom logger ===")
        demonstrate_backup(config, StandardLogger(logging.getLogger("example.backup")))

    except UploaderError as e:
        print(f"❌ Error during example run: {e}")
        return 1

    print("\n🎉 Example run completed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
