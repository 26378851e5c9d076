"""Configuration management for the OneDrive uploader."""

from .settings import AppCredentials, UploaderConfig

__all__ = ["AppCredentials", "UploaderConfig"]
