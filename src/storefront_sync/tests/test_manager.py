"""
Storefront Sync - Integration Manager Tests
End-to-end tests of the wired manager using simulated adapters.
"""

from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlsplit

import pytest
from cryptography.fernet import Fernet

from storefront_sync.app.core.config import Settings
from storefront_sync.app.core.exceptions import ConfigurationError, PlatformNotFoundError
from storefront_sync.app.schemas.models import (
    PlatformCredentials,
    PlatformSyncConfig,
    SyncDirection,
    SyncResult,
)
from storefront_sync.app.schemas.platforms import default_platforms, platforms_by_id
from storefront_sync.app.storage.catalog import create_demo_catalog
from storefront_sync.app.storage.kv_store import InMemoryKeyValueStore
from storefront_sync.app.sync.manager import JUST_NOW, create_integration_manager


def make_settings(**overrides):
    return Settings(_env_file=None, latency_scale=0, fault_seed=11, **overrides)


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def manager(kv, notifier):
    return create_integration_manager(
        settings=make_settings(),
        catalog=create_demo_catalog(),
        notifier=notifier,
        store=kv,
    )


async def connect(manager, platform_id):
    return await manager.connect_with_credentials(platform_id, PlatformCredentials(access_token="tok"))


class TestPlatforms:
    """Test platform listing and lookup."""

    def test_seed_platforms(self, manager):
        """Test the initial platform list."""
        platforms = manager.list_platforms()

        assert len(platforms) == 8
        assert all(platform.status == "not_connected" for platform in platforms)

    def test_unknown_platform(self, manager):
        """Test lookup failures."""
        with pytest.raises(PlatformNotFoundError):
            manager.get_platform("myspace")
        assert manager.find_platform("myspace") is None

    def test_platforms_by_id(self):
        """Test indexing the seed list and a given list."""
        assert list(platforms_by_id()) == [platform.id for platform in default_platforms()]

        square = default_platforms()[3]
        assert platforms_by_id([square]) == {"square": square}


class TestConnections:
    """Test connecting and disconnecting platforms."""

    @pytest.mark.asyncio
    async def test_oauth_connect(self, manager):
        """Test the full authorization flow."""
        url = await manager.start_connect("etsy")
        state = parse_qs(urlsplit(url).query)["state"][0]

        result = await manager.complete_connect({"code": "abc", "state": state, "platform": "etsy"})

        assert result.success is True
        platform = manager.get_platform("etsy")
        assert platform.status == "connected"
        assert platform.last_sync == JUST_NOW
        assert await manager.credential_store.is_valid("etsy") is True

    @pytest.mark.asyncio
    async def test_failed_oauth_connect(self, manager):
        """Test that a denied authorization leaves the platform disconnected."""
        await manager.start_connect("etsy")

        result = await manager.complete_connect({"error": "access_denied", "platform": "etsy"})

        assert result.success is False
        assert manager.get_platform("etsy").status == "not_connected"

    @pytest.mark.asyncio
    async def test_connect_with_credentials(self, manager):
        """Test connecting with directly supplied credentials."""
        result = await connect(manager, "square")

        assert result.success is True
        assert result.message == "Successfully connected to Square!"
        assert manager.get_platform("square").status == "connected"

    @pytest.mark.asyncio
    async def test_disconnect(self, manager):
        """Test that disconnecting clears credentials and auto-sync."""
        await connect(manager, "etsy")
        await manager.save_sync_config("etsy", PlatformSyncConfig(auto_sync=True, sync_interval=30))

        platform = await manager.disconnect("etsy")

        assert platform.status == "not_connected"
        assert platform.last_sync is None
        assert await manager.credential_store.get("etsy") is None
        assert manager.scheduler.is_scheduled("etsy") is False

    @pytest.mark.asyncio
    async def test_encrypted_credentials(self, kv):
        """Test that a configured key encrypts stored credentials."""
        manager = create_integration_manager(
            settings=make_settings(credential_encryption_key=Fernet.generate_key().decode()),
            store=kv,
        )
        await connect(manager, "etsy")

        assert "tok" not in await kv.get("etsy_credentials")
        assert (await manager.credential_store.get("etsy")).access_token == "tok"


class TestSync:
    """Test manual product and inventory syncs."""

    @pytest.mark.asyncio
    async def test_sync_connected_platform(self, manager):
        """Test a successful two-way sync."""
        await connect(manager, "etsy")
        manager.get_platform("etsy").last_sync = None

        result = await manager.sync("etsy")

        assert result.success is True
        assert result.message == "Two-way synchronization completed successfully"
        assert manager.get_platform("etsy").last_sync == JUST_NOW
        assert (await manager.get_sync_config("etsy")).last_sync_status.success is True

    @pytest.mark.asyncio
    async def test_sync_disconnected_platform(self, manager):
        """Test the failure recorded for a platform without credentials."""
        result = await manager.sync("tiktok", SyncDirection.IMPORT)

        assert result.success is False
        assert result.message == "Authentication expired for TikTok Shop. Please reconnect."
        assert (await manager.get_sync_config("tiktok")).last_sync_status.message == result.message
        assert manager.get_platform("tiktok").last_sync is None

    @pytest.mark.asyncio
    async def test_sync_platform_without_adapter(self, manager):
        """Test a connected platform with no API handler."""
        await connect(manager, "amazon")

        result = await manager.sync("amazon")

        assert result.message == "No API handler configured for Amazon"

    @pytest.mark.asyncio
    async def test_inventory_import(self, manager):
        """Test that platform quantities fill in the local inventory."""
        await connect(manager, "square")
        await manager.save_sync_config("square", PlatformSyncConfig(sync_direction=SyncDirection.IMPORT))

        result = await manager.sync_inventory("square")

        assert result.success is True
        assert result.details.inventory_updated == 5
        quantity = await manager.inventory_engine.get_local_inventory("product1")
        assert 1 <= quantity <= 50

    @pytest.mark.asyncio
    async def test_inventory_not_supported(self, manager):
        """Test inventory sync for a platform without it."""
        await connect(manager, "tiktok")
        result = await manager.sync_inventory("tiktok")
        assert result.message == "Inventory sync is not supported for TikTok Shop"

    @pytest.mark.asyncio
    async def test_webhooks(self, manager):
        """Test webhook setup per platform."""
        assert await manager.setup_webhook("tiktok") is True
        assert await manager.setup_webhook("etsy") is False
        assert await manager.setup_webhook("shopify") is False


class TestSyncConfig:
    """Test sync settings through the manager."""

    @pytest.mark.asyncio
    async def test_interval_below_minimum(self, manager):
        """Test that too-frequent syncs are rejected."""
        with pytest.raises(ConfigurationError):
            await manager.save_sync_config("etsy", PlatformSyncConfig(auto_sync=True, sync_interval=5))
        assert manager.scheduler.is_scheduled("etsy") is False

    @pytest.mark.asyncio
    async def test_enabling_and_disabling_auto_sync(self, manager):
        """Test that saving settings arms and cancels the job."""
        await manager.save_sync_config("etsy", PlatformSyncConfig(auto_sync=True, sync_interval=30))
        assert manager.scheduler.is_scheduled("etsy") is True

        await manager.save_sync_config("etsy", PlatformSyncConfig(auto_sync=False, sync_interval=30))
        assert manager.scheduler.is_scheduled("etsy") is False

    @pytest.mark.asyncio
    async def test_last_sync_status_preserved(self, manager):
        """Test that editing settings keeps the last result."""
        await manager.config_store.record_result("etsy", SyncResult.failed("earlier failure"))

        saved = await manager.save_sync_config("etsy", PlatformSyncConfig(sync_interval=45))

        assert saved.last_sync_status.message == "earlier failure"
        assert (await manager.get_sync_config("etsy")).sync_interval == 45

    @pytest.mark.asyncio
    async def test_update_inventory_settings(self, manager):
        """Test inventory settings updates."""
        config = await manager.update_inventory_settings("square", inventory_priority="platform")
        assert config.inventory_priority == "platform"


class TestLifecycle:
    """Test manager startup and shutdown."""

    @pytest.mark.asyncio
    async def test_startup_restores_connections(self, manager):
        """Test that stored credentials mark platforms connected and arm auto-sync."""
        await manager.credential_store.store("etsy", PlatformCredentials(access_token="tok"))
        await manager.credential_store.store("square", PlatformCredentials(access_token="tok"))
        await manager.config_store.save("etsy", PlatformSyncConfig(auto_sync=True, sync_interval=30))

        await manager.startup()
        try:
            assert manager.get_platform("etsy").status == "connected"
            assert manager.get_platform("square").status == "connected"
            assert manager.get_platform("tiktok").status == "not_connected"
            assert manager.scheduler.active_platform_ids() == ["etsy"]

            status = manager.status()
            assert status["platforms"]["etsy"] == "connected"
            assert status["scheduler"]["running"] is True
        finally:
            await manager.shutdown()

        assert manager.scheduler.scheduler.running is False

    @pytest.mark.asyncio
    async def test_scheduled_run_notifies(self, manager, notifier):
        """Test a scheduled run end to end."""
        await connect(manager, "etsy")
        await manager.save_sync_config("etsy", PlatformSyncConfig(auto_sync=True, sync_interval=30))

        result = await manager.scheduler.run_auto_sync(manager.get_platform("etsy"))

        assert result.success is True
        assert notifier.await_args.args[0].title == "Auto-Sync Completed"
