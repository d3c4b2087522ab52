"""
Storefront Sync - Sync Configuration Store
Per-platform synchronization settings persisted under ``{platform_id}_sync_config``.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..core.exceptions import PersistenceError
from ..schemas.models import InventoryPriority, PlatformSyncConfig, SyncResult
from ..storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def sync_config_key(platform_id: str) -> str:
    return f"{platform_id}_sync_config"


class SyncConfigStore:
    """
    Reads and writes PlatformSyncConfig records.

    Missing or unreadable records yield the default configuration.
    """

    def __init__(self, store: KeyValueStore, default_sync_interval: int = 60):
        self.kv_store = store
        self.default_sync_interval = default_sync_interval

    def defaults(self) -> PlatformSyncConfig:
        return PlatformSyncConfig(sync_interval=self.default_sync_interval)

    async def get(self, platform_id: str) -> PlatformSyncConfig:
        try:
            raw = await self.kv_store.get(sync_config_key(platform_id))
        except PersistenceError as e:
            logger.error(f"Failed to retrieve platform sync config for {platform_id}: {e}")
            return self.defaults()

        if raw is None:
            return self.defaults()

        try:
            return PlatformSyncConfig.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Stored sync config for {platform_id} is malformed: {e}")
            return self.defaults()

    async def save(self, platform_id: str, config: PlatformSyncConfig) -> bool:
        """
        Persist a configuration.

        Returns:
            True if the record was written
        """
        try:
            await self.kv_store.set(sync_config_key(platform_id), config.to_json())
            return True
        except PersistenceError as e:
            logger.error(f"Failed to save platform sync config for {platform_id}: {e}")
            return False

    async def record_result(self, platform_id: str, result: SyncResult) -> PlatformSyncConfig:
        """Store ``result`` as the platform's ``last_sync_status``."""
        config = await self.get(platform_id)
        config.last_sync_status = result
        await self.save(platform_id, config)
        return config

    async def update_inventory_settings(
        self,
        platform_id: str,
        sync_inventory_only: Optional[bool] = None,
        inventory_priority: Optional[InventoryPriority] = None,
    ) -> PlatformSyncConfig:
        """Merge inventory settings into the stored configuration."""
        config = await self.get(platform_id)
        if sync_inventory_only is not None:
            config.sync_inventory_only = sync_inventory_only
        if inventory_priority is not None:
            config.inventory_priority = InventoryPriority(inventory_priority).value
        await self.save(platform_id, config)
        return config
