"""
Data Source Selector — local static files vs. an S3 bucket folder.

The choice is persisted in the client state store (cloudMode +
s3FolderPath) and turned into an explicit DataSourceConfig that every
loader receives. There is no mixed state: one reload reads all six
datasets from the same place.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from core.config import Settings
from dashboard.state import (
    CLOUD_MODE_KEY,
    S3_DATA_KEY,
    S3_FOLDER_PATH_KEY,
    ClientStateStore,
)
from ingest.loaders import DataSourceConfig

logger = structlog.get_logger()

ReloadCallback = Callable[[], Awaitable[Any]]
FolderCheck = Callable[[str], Awaitable[None]]


class DataSourceSelector:
    def __init__(
        self,
        state: ClientStateStore,
        settings: Settings,
        on_reload: ReloadCallback | None = None,
    ):
        self.state = state
        self.settings = settings
        self.on_reload = on_reload

    @property
    def cloud_mode(self) -> bool:
        return self.state.get_item(CLOUD_MODE_KEY) == "true"

    @property
    def folder_path(self) -> str:
        return self.state.get_item(S3_FOLDER_PATH_KEY) or ""

    def current_config(self) -> DataSourceConfig:
        return DataSourceConfig(
            cloud_mode=self.cloud_mode,
            folder_path=self.folder_path,
            local_data_dir=self.settings.local_data_dir,
            bucket=self.settings.s3_bucket,
        )

    def data_source_info(self, config: DataSourceConfig | None = None) -> dict[str, str]:
        config = config or self.current_config()
        if config.is_remote:
            return {"type": "s3", "bucket": config.bucket, "folder": config.folder_path}
        return {"type": "local"}

    async def enable_cloud_mode(self, folder_path: str, check: FolderCheck | None = None) -> None:
        """
        Switch every dataset to the given bucket folder and reload.

        Args:
            folder_path: Folder inside the configured bucket (required)
            check: Optional check run before anything is persisted; if it
                raises, cloud mode stays off and the error propagates.
        """
        folder = folder_path.strip()
        if not folder:
            raise ValueError("A folder path is required to enable cloud mode")

        if check is not None:
            await check(folder)

        self.state.remove_item(S3_DATA_KEY)
        self.state.set_item(S3_FOLDER_PATH_KEY, folder)
        self.state.set_item(CLOUD_MODE_KEY, "true")
        logger.info("cloud_mode_enabled", folder=folder, bucket=self.settings.s3_bucket)
        await self._trigger_reload()

    async def disable_cloud_mode(self) -> None:
        self.state.set_item(CLOUD_MODE_KEY, "false")
        self.state.remove_item(S3_DATA_KEY)
        self.state.remove_item(S3_FOLDER_PATH_KEY)
        logger.info("cloud_mode_disabled")
        await self._trigger_reload()

    async def toggle(self, folder_path: str | None = None) -> bool:
        """Flip cloud mode; returns the new state."""
        if self.cloud_mode:
            await self.disable_cloud_mode()
            return False
        await self.enable_cloud_mode(folder_path or "")
        return True

    async def _trigger_reload(self) -> None:
        if self.on_reload is not None:
            await self.on_reload()
