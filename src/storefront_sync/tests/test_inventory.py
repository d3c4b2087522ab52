"""
Storefront Sync - Inventory Reconciliation Tests
Tests for conflict resolution, the update log and inventory sync runs.
"""

import pytest

from storefront_sync.app.auth.credentials import CredentialStore
from storefront_sync.app.core.exceptions import PlatformApiError
from storefront_sync.app.integrations.base import PlatformAdapter
from storefront_sync.app.integrations.registry import AdapterRegistry
from storefront_sync.app.schemas.models import (
    CatalogProduct,
    InventoryPriority,
    InventoryUpdate,
    PlatformCredentials,
    PlatformSyncConfig,
    SyncDetails,
    SyncDirection,
    SyncResult,
)
from storefront_sync.app.schemas.platforms import platforms_by_id
from storefront_sync.app.storage.catalog import InMemoryProductCatalog
from storefront_sync.app.storage.kv_store import InMemoryKeyValueStore
from storefront_sync.app.sync.config_store import SyncConfigStore
from storefront_sync.app.sync.inventory import (
    INVENTORY_UPDATES_KEY,
    InventoryReconciliationEngine,
    resolve_conflict,
)

NOW = 1_700_000_000_000


def reading(product_id, quantity, timestamp, platform_id="square"):
    return InventoryUpdate(
        product_id=product_id,
        sku=f"SKU-{product_id}",
        quantity=quantity,
        platform_id=platform_id,
        timestamp=timestamp,
    )


class InventoryAdapter(PlatformAdapter):
    """Adapter serving fixed platform readings and recording pushes."""

    def __init__(self, platform_id, readings=None, push_result=None):
        super().__init__(platform_id)
        self.readings = readings or []
        self.push_result = push_result
        self.pushed = []

    async def import_products(self):
        return SyncResult.succeeded("imported")

    async def export_products(self):
        return SyncResult.succeeded("exported")

    async def fetch_inventory(self, product_ids):
        if isinstance(self.readings, Exception):
            raise self.readings
        return [update for update in self.readings if update.product_id in product_ids]

    async def push_inventory(self, updates):
        self.pushed.extend(updates)
        return self.push_result or SyncResult.succeeded(
            "pushed", SyncDetails(inventory_updated=len(updates))
        )


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def platforms():
    return platforms_by_id()


@pytest.fixture
def credential_store(kv):
    return CredentialStore(kv, clock=lambda: NOW)


@pytest.fixture
def config_store(kv):
    return SyncConfigStore(kv)


@pytest.fixture
def catalog():
    return InMemoryProductCatalog([
        CatalogProduct(id="p1", name="Mug", sku="MUG-1"),
        CatalogProduct(id="p2", name="Plate", sku="PLATE-1"),
    ])


@pytest.fixture
def adapter():
    return InventoryAdapter("square")


@pytest.fixture
def engine(kv, credential_store, adapter, config_store, catalog):
    return InventoryReconciliationEngine(
        kv,
        credential_store,
        AdapterRegistry([adapter]),
        config_store,
        catalog,
        clock=lambda: NOW,
    )


async def configure(credential_store, config_store, direction, priority=None):
    await credential_store.store("square", PlatformCredentials(access_token="tok"))
    await config_store.save("square", PlatformSyncConfig(sync_direction=direction, inventory_priority=priority))


class TestResolveConflict:
    """Test the conflict resolution strategies."""

    LOCAL = reading("p1", 5, NOW, platform_id="local")
    OLDER = reading("p1", 8, NOW - 1)
    NEWER = reading("p1", 9, NOW + 1)
    SAME_TIME = reading("p1", 7, NOW)

    @pytest.mark.parametrize("local,platform,strategy,expected", [
        (LOCAL, OLDER, InventoryPriority.PLATFORM, OLDER),
        (LOCAL, NEWER, InventoryPriority.LOCAL, LOCAL),
        (LOCAL, NEWER, InventoryPriority.NEWEST, NEWER),
        (LOCAL, OLDER, InventoryPriority.NEWEST, LOCAL),
        (LOCAL, SAME_TIME, InventoryPriority.NEWEST, LOCAL),
        (None, OLDER, InventoryPriority.LOCAL, OLDER),
        (LOCAL, None, InventoryPriority.PLATFORM, LOCAL),
        (None, None, InventoryPriority.NEWEST, None),
    ])
    def test_strategies(self, local, platform, strategy, expected):
        """Test each strategy and missing sides."""
        assert resolve_conflict(local, platform, strategy) is expected

    def test_default_is_newest(self):
        """Test the default strategy."""
        assert resolve_conflict(self.LOCAL, self.NEWER) is self.NEWER

    def test_accepts_string_strategy(self):
        """Test strategies read back from stored configs."""
        assert resolve_conflict(self.LOCAL, self.NEWER, "local") is self.LOCAL


class TestUpdateLog:
    """Test recording and loading inventory readings."""

    @pytest.mark.asyncio
    async def test_only_newer_readings_replace(self, engine):
        """Test that stale readings are ignored."""
        assert await engine.record_update(reading("p1", 4, NOW)) is True
        assert await engine.record_update(reading("p1", 9, NOW - 10)) is False
        assert await engine.record_update(reading("p1", 6, NOW)) is False

        latest = await engine.latest_update("p1", "square")
        assert latest.quantity == 4

    @pytest.mark.asyncio
    async def test_readings_are_persisted(self, engine, kv):
        """Test the stored log format."""
        await engine.record_update(reading("p1", 4, NOW))

        stored = await kv.get_json(INVENTORY_UPDATES_KEY)
        assert stored == [{
            "productId": "p1",
            "sku": "SKU-p1",
            "quantity": 4,
            "platformId": "square",
            "timestamp": NOW,
        }]

    @pytest.mark.asyncio
    async def test_hydrates_from_stored_log(self, kv, credential_store, config_store, catalog):
        """Test loading readings written by an earlier session."""
        await kv.set_json(INVENTORY_UPDATES_KEY, [
            reading("p1", 3, NOW - 100).to_dict(),
            reading("p1", 5, NOW).to_dict(),
            {"productId": "p2", "quantity": -1},
        ])
        engine = InventoryReconciliationEngine(kv, credential_store, AdapterRegistry(), config_store, catalog)

        assert (await engine.latest_update("p1", "square")).quantity == 5
        assert await engine.latest_update("p2", "square") is None

    @pytest.mark.asyncio
    async def test_pending_updates(self, engine):
        """Test filtering readings by source."""
        await engine.record_update(reading("p1", 1, NOW, platform_id="local"))
        await engine.record_update(reading("p1", 2, NOW))
        await engine.record_update(reading("p1", 3, NOW, platform_id="shopify"))

        pending = await engine.get_pending_updates("square")
        assert sorted(update.platform_id for update in pending) == ["local", "square"]

    @pytest.mark.asyncio
    async def test_local_inventory(self, engine, kv):
        """Test local quantity storage."""
        await engine.save_local_inventory("p1", 12)

        assert await kv.get("inventory_p1") == "12"
        assert await engine.get_local_inventory("p1") == 12
        local = await engine.latest_update("p1", "local")
        assert local.sku == "MUG-1"
        assert local.timestamp == NOW

    @pytest.mark.asyncio
    async def test_unreadable_local_inventory(self, engine, kv):
        """Test non-numeric and missing local quantities."""
        await kv.set("inventory_p1", "lots")
        assert await engine.get_local_inventory("p1") is None
        assert await engine.get_local_inventory("p2") is None


class TestSyncInventory:
    """Test inventory sync runs."""

    @pytest.mark.asyncio
    async def test_platform_without_inventory_sync(self, engine, platforms):
        """Test platforms that do not sync inventory."""
        result = await engine.sync_inventory(platforms["tiktok"])

        assert result.success is False
        assert result.message == "Inventory sync is not supported for TikTok Shop"

    @pytest.mark.asyncio
    async def test_requires_credentials(self, engine, platforms):
        """Test that unauthenticated platforms are rejected."""
        result = await engine.sync_inventory(platforms["square"])

        assert result.success is False
        assert result.message == "Authentication required for Square"

    @pytest.mark.asyncio
    async def test_import_with_platform_priority(self, engine, platforms, adapter, credential_store, config_store):
        """Test that platform readings overwrite local quantities."""
        await configure(credential_store, config_store, SyncDirection.IMPORT, InventoryPriority.PLATFORM)
        adapter.readings = [reading("p1", 7, NOW - 5000), reading("p2", 3, NOW - 5000)]

        result = await engine.sync_inventory(platforms["square"])

        assert result.success is True
        assert result.message == "Inventory sync with Square completed successfully"
        assert result.details.inventory_updated == 2
        assert await engine.get_local_inventory("p1") == 7
        assert await engine.get_local_inventory("p2") == 3
        assert adapter.pushed == []

    @pytest.mark.asyncio
    async def test_import_with_newest_priority(self, engine, platforms, adapter, credential_store, config_store):
        """Test that newer local quantities are kept."""
        await configure(credential_store, config_store, SyncDirection.IMPORT)
        await engine.save_local_inventory("p1", 10)
        adapter.readings = [reading("p1", 7, NOW - 5000), reading("p2", 3, NOW - 5000)]

        result = await engine.sync_inventory(platforms["square"])

        assert result.details.inventory_updated == 1
        assert await engine.get_local_inventory("p1") == 10
        assert await engine.get_local_inventory("p2") == 3

    @pytest.mark.asyncio
    async def test_import_with_local_priority(self, engine, platforms, adapter, credential_store, config_store):
        """Test that local priority only fills in missing quantities."""
        await configure(credential_store, config_store, SyncDirection.IMPORT, InventoryPriority.LOCAL)
        await engine.save_local_inventory("p1", 10)
        adapter.readings = [reading("p1", 7, NOW + 5000)]

        result = await engine.sync_inventory(platforms["square"])

        assert result.details.inventory_updated == 0
        assert await engine.get_local_inventory("p1") == 10

    @pytest.mark.asyncio
    async def test_export_pushes_local_quantities(self, engine, platforms, adapter, credential_store, config_store, kv):
        """Test that products with a local quantity are pushed."""
        await configure(credential_store, config_store, SyncDirection.EXPORT)
        await kv.set("inventory_p1", "5")
        await kv.set("sku_p1", "MUG-BLUE")

        result = await engine.sync_inventory(platforms["square"])

        assert result.success is True
        assert result.details.inventory_updated == 1
        assert [(update.sku, update.quantity) for update in adapter.pushed] == [("MUG-BLUE", 5)]

    @pytest.mark.asyncio
    async def test_bidirectional(self, engine, platforms, adapter, credential_store, config_store):
        """Test import followed by export."""
        await configure(credential_store, config_store, SyncDirection.BIDIRECTIONAL, InventoryPriority.PLATFORM)
        adapter.readings = [reading("p1", 7, NOW - 5000)]

        result = await engine.sync_inventory(platforms["square"])

        assert result.details.inventory_updated == 2
        assert [(update.product_id, update.quantity) for update in adapter.pushed] == [("p1", 7)]

    @pytest.mark.asyncio
    async def test_stale_platform_reading_is_ignored(
        self, engine, platforms, adapter, credential_store, config_store, kv
    ):
        """Test that an older fetched reading does not beat the stored platform reading."""
        await configure(credential_store, config_store, SyncDirection.IMPORT)
        await engine.record_update(reading("p1", 5, NOW))
        await kv.set("inventory_p1", "2")
        await engine.record_update(reading("p1", 2, NOW - 10_000, platform_id="local"))
        adapter.readings = [reading("p1", 9, NOW - 5000)]

        result = await engine.sync_inventory(platforms["square"])

        assert result.details.inventory_updated == 1
        assert await engine.get_local_inventory("p1") == 5
        assert (await engine.latest_update("p1", "square")).quantity == 5

    @pytest.mark.asyncio
    async def test_partial_push(self, engine, platforms, adapter, credential_store, config_store, kv):
        """Test that a partially accepted push reports the platform's count and errors."""
        await configure(credential_store, config_store, SyncDirection.EXPORT)
        await kv.set("inventory_p1", "5")
        await kv.set("inventory_p2", "8")
        adapter.push_result = SyncResult.succeeded(
            "Inventory updated on Square",
            SyncDetails(inventory_updated=1, items_failed=1, errors=["No Square variation for SKU PLATE-1"]),
        )

        result = await engine.sync_inventory(platforms["square"])

        assert result.success is True
        assert len(adapter.pushed) == 2
        assert result.details.inventory_updated == 1
        assert result.details.items_failed == 1
        assert result.details.errors == ["No Square variation for SKU PLATE-1"]

    @pytest.mark.asyncio
    async def test_push_failure(self, engine, platforms, adapter, credential_store, config_store, kv):
        """Test that a rejected push fails the run."""
        await configure(credential_store, config_store, SyncDirection.EXPORT)
        await kv.set("inventory_p1", "5")
        adapter.push_result = SyncResult.failed(
            "Failed to update inventory on Square. Please try again.",
            SyncDetails(inventory_updated=0, errors=["API rate limit exceeded"]),
        )

        result = await engine.sync_inventory(platforms["square"])

        assert result.success is False
        assert result.message == "Failed to update inventory on Square. Please try again."
        assert result.details.errors == ["API rate limit exceeded"]

    @pytest.mark.asyncio
    async def test_adapter_error(self, engine, platforms, adapter, credential_store, config_store):
        """Test that adapter exceptions become failed results."""
        await configure(credential_store, config_store, SyncDirection.IMPORT)
        adapter.readings = PlatformApiError("Square API error: 500", status=500)

        result = await engine.sync_inventory(platforms["square"])

        assert result.success is False
        assert result.message == "Failed to sync inventory with Square: Square API error: 500"
