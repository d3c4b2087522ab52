"""
Storefront Sync - Inventory Reconciliation Engine

Keeps the latest inventory reading per (product, source) pair, resolves
conflicts between local and platform quantities, and runs inventory syncs
in the platform's configured direction.

Readings are mirrored to the ``inventory_updates`` log so they survive
restarts; local quantities live under ``inventory_{product_id}``.
"""

import logging
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ..auth.credentials import CredentialStore
from ..core.exceptions import PersistenceError
from ..integrations.registry import AdapterRegistry
from ..schemas.models import (
    LOCAL_SOURCE,
    InventoryPriority,
    InventoryUpdate,
    Platform,
    SyncDetails,
    SyncDirection,
    SyncResult,
)
from ..storage.catalog import ProductCatalog
from ..storage.kv_store import KeyValueStore
from ..utils.clock import now_millis
from .config_store import SyncConfigStore

logger = logging.getLogger(__name__)

INVENTORY_UPDATES_KEY = "inventory_updates"


def inventory_key(product_id: str) -> str:
    return f"inventory_{product_id}"


def sku_key(product_id: str) -> str:
    return f"sku_{product_id}"


def resolve_conflict(
    local_update: Optional[InventoryUpdate],
    platform_update: Optional[InventoryUpdate],
    strategy: InventoryPriority = InventoryPriority.NEWEST,
) -> Optional[InventoryUpdate]:
    """
    Pick the authoritative reading for a product.

    Args:
        local_update: Latest local reading, if any
        platform_update: Latest platform reading, if any
        strategy: ``platform`` and ``local`` always pick their side; ``newest``
            picks the later timestamp, preferring local on a tie

    Returns:
        The winning update, or None when both are absent
    """
    if local_update is None:
        return platform_update
    if platform_update is None:
        return local_update

    strategy = InventoryPriority(strategy)
    if strategy == InventoryPriority.PLATFORM:
        return platform_update
    if strategy == InventoryPriority.LOCAL:
        return local_update
    return platform_update if platform_update.timestamp > local_update.timestamp else local_update


class InventoryReconciliationEngine:
    """
    Inventory state and synchronization across local storage and platforms.
    """

    def __init__(
        self,
        store: KeyValueStore,
        credential_store: CredentialStore,
        registry: AdapterRegistry,
        config_store: SyncConfigStore,
        catalog: ProductCatalog,
        clock: Callable[[], int] = now_millis,
    ):
        """
        Initialize the engine.

        Args:
            store: Key-value store holding local quantities and the update log
            credential_store: Used to check credentials before syncing
            registry: Adapters used to read and write platform inventory
            config_store: Source of sync direction and inventory priority
            catalog: Local product catalog defining the product id set
            clock: Returns the current time in epoch milliseconds
        """
        self.kv_store = store
        self.credential_store = credential_store
        self.registry = registry
        self.config_store = config_store
        self.catalog = catalog
        self.clock = clock
        self._updates: Dict[str, InventoryUpdate] = {}
        self._hydrated = False

    async def _hydrate(self) -> None:
        if self._hydrated:
            return
        self._hydrated = True

        stored = await self.kv_store.get_json(INVENTORY_UPDATES_KEY)
        if not isinstance(stored, list):
            return

        for item in stored:
            try:
                update = InventoryUpdate.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping malformed inventory update: {e}")
                continue
            existing = self._updates.get(update.key)
            if existing is None or update.timestamp > existing.timestamp:
                self._updates[update.key] = update

        logger.debug(f"Loaded {len(self._updates)} inventory updates")

    async def _persist(self) -> None:
        try:
            await self.kv_store.set_json(
                INVENTORY_UPDATES_KEY,
                [update.to_dict() for update in self._updates.values()],
            )
        except PersistenceError as e:
            logger.error(f"Failed to store inventory update: {e}")

    async def record_update(self, update: InventoryUpdate) -> bool:
        """
        Record a reading if it is newer than the stored one for its pair.

        Returns:
            True if the reading replaced the previous one
        """
        await self._hydrate()
        existing = self._updates.get(update.key)
        if existing is not None and update.timestamp <= existing.timestamp:
            return False

        self._updates[update.key] = update
        await self._persist()
        return True

    async def latest_update(self, product_id: str, platform_id: str) -> Optional[InventoryUpdate]:
        await self._hydrate()
        return self._updates.get(f"{product_id}_{platform_id}")

    async def get_pending_updates(self, platform_id: str) -> List[InventoryUpdate]:
        """Latest local readings and readings from ``platform_id``."""
        await self._hydrate()
        return [
            update for update in self._updates.values()
            if update.platform_id in (LOCAL_SOURCE, platform_id)
        ]

    async def get_local_inventory(self, product_id: str) -> Optional[int]:
        try:
            raw = await self.kv_store.get(inventory_key(product_id))
        except PersistenceError as e:
            logger.error(f"Failed to retrieve local inventory for {product_id}: {e}")
            return None

        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Local inventory for {product_id} is not a number: {raw!r}")
            return None

    async def _sku_for(self, product_id: str) -> str:
        try:
            sku = await self.kv_store.get(sku_key(product_id))
        except PersistenceError:
            sku = None
        if sku:
            return sku

        product = await self.catalog.get_product(product_id)
        return (product.sku if product else "") or product_id

    async def save_local_inventory(self, product_id: str, quantity: int) -> None:
        """Set the local quantity and record it as a ``local`` reading."""
        try:
            await self.kv_store.set(inventory_key(product_id), str(quantity))
        except PersistenceError as e:
            logger.error(f"Failed to save local inventory for {product_id}: {e}")
            return

        await self.record_update(InventoryUpdate(
            product_id=product_id,
            sku=await self._sku_for(product_id),
            quantity=quantity,
            platform_id=LOCAL_SOURCE,
            timestamp=self.clock(),
        ))

    async def sync_inventory(self, platform: Platform) -> SyncResult:
        """
        Reconcile inventory with a platform.

        Import pulls platform quantities and overwrites local values where
        the platform reading wins; export pushes current local quantities.

        Args:
            platform: Platform to reconcile with

        Returns:
            Result whose ``inventory_updated`` counts local overwrites plus pushed records
        """
        if not platform.inventory_sync:
            return SyncResult.failed(f"Inventory sync is not supported for {platform.name}")

        if not await self.credential_store.is_valid(platform.id):
            return SyncResult.failed(f"Authentication required for {platform.name}")

        config = await self.config_store.get(platform.id)
        direction = SyncDirection(config.sync_direction)
        strategy = InventoryPriority(config.inventory_priority or InventoryPriority.NEWEST)

        try:
            adapter = self.registry.get(platform.id)
            product_ids = await self.catalog.product_ids()
            overwritten = 0
            pushed = 0
            outgoing: List[InventoryUpdate] = []
            push_details: Optional[SyncDetails] = None

            if direction in (SyncDirection.IMPORT, SyncDirection.BIDIRECTIONAL):
                for platform_update in await adapter.fetch_inventory(product_ids):
                    await self.record_update(platform_update)
                    product_id = platform_update.product_id
                    # Stale fetched readings lose to the stored one for this source
                    platform_latest = await self.latest_update(product_id, platform.id) or platform_update
                    local_update = await self.latest_update(product_id, LOCAL_SOURCE)

                    resolved = resolve_conflict(local_update, platform_latest, strategy)
                    if resolved is not None and resolved.platform_id == platform.id:
                        await self.save_local_inventory(resolved.product_id, resolved.quantity)
                        overwritten += 1

            if direction in (SyncDirection.EXPORT, SyncDirection.BIDIRECTIONAL):
                for product_id in product_ids:
                    quantity = await self.get_local_inventory(product_id)
                    if quantity is not None:
                        outgoing.append(InventoryUpdate(
                            product_id=product_id,
                            sku=await self._sku_for(product_id),
                            quantity=quantity,
                            platform_id=LOCAL_SOURCE,
                            timestamp=self.clock(),
                        ))

                if outgoing:
                    push_result = await adapter.push_inventory(outgoing)
                    if not push_result.success:
                        logger.warning(f"Inventory push to {platform.id} failed: {push_result.message}")
                        return SyncResult.failed(
                            push_result.message,
                            SyncDetails(
                                inventory_updated=overwritten,
                                errors=push_result.details.errors if push_result.details else None,
                            ),
                        )

                    # Partial pushes succeed with a lower count and itemized errors
                    push_details = push_result.details
                    pushed = len(outgoing)
                    if push_details is not None and push_details.inventory_updated is not None:
                        pushed = push_details.inventory_updated

            logger.info(f"Inventory sync with {platform.id}: {overwritten} local updates, {pushed} pushed")
            return SyncResult.succeeded(
                f"Inventory sync with {platform.name} completed successfully",
                SyncDetails(
                    inventory_updated=overwritten + pushed,
                    items_failed=push_details.items_failed if push_details else None,
                    errors=push_details.errors if push_details else None,
                ),
            )

        except Exception as e:
            logger.error(f"Error synchronizing inventory with {platform.name}: {e}")
            return SyncResult.failed(f"Failed to sync inventory with {platform.name}: {e}")
