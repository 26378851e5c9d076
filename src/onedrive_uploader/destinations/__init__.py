"""Remote storage backends."""

from .onedrive import OneDriveGateway

__all__ = ["OneDriveGateway"]
