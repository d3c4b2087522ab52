"""
Storefront Sync - Integration Manager

Facade used by the dashboard: owns the platform list and wires the
credential store, OAuth flow, adapters, orchestrator, inventory engine and
auto-sync scheduler together.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..auth.credentials import CredentialStore
from ..auth.oauth import OAuthFlowManager
from ..auth.token_client import create_token_client
from ..core.config import Settings
from ..core.exceptions import ConfigurationError, PersistenceError, PlatformNotFoundError
from ..integrations.registry import AdapterRegistry, create_adapter_registry
from ..schemas.models import (
    InventoryPriority,
    OAuthCallbackResult,
    Platform,
    PlatformCredentials,
    PlatformStatus,
    PlatformSyncConfig,
    SyncDirection,
    SyncResult,
)
from ..schemas.platforms import default_platforms
from ..storage.catalog import InMemoryProductCatalog, ProductCatalog
from ..storage.kv_store import KeyValueStore, create_key_value_store
from ..utils.security import CredentialCipher
from .config_store import SyncConfigStore
from .inventory import InventoryReconciliationEngine
from .orchestrator import SyncOrchestrator
from .scheduler import AutoSyncScheduler, Notifier, log_notification

logger = logging.getLogger(__name__)

JUST_NOW = "Just now"


class IntegrationManager:
    """
    Platform connections and synchronization for the dashboard.
    """

    def __init__(
        self,
        platforms: List[Platform],
        credential_store: CredentialStore,
        oauth_manager: OAuthFlowManager,
        registry: AdapterRegistry,
        config_store: SyncConfigStore,
        orchestrator: SyncOrchestrator,
        inventory_engine: InventoryReconciliationEngine,
        scheduler: AutoSyncScheduler,
        min_sync_interval: int = 15,
    ):
        self.platforms: Dict[str, Platform] = {platform.id: platform for platform in platforms}
        self.credential_store = credential_store
        self.oauth_manager = oauth_manager
        self.registry = registry
        self.config_store = config_store
        self.orchestrator = orchestrator
        self.inventory_engine = inventory_engine
        self.scheduler = scheduler
        self.min_sync_interval = min_sync_interval
        if self.scheduler.platform_lookup is None:
            self.scheduler.platform_lookup = self.find_platform

    def list_platforms(self) -> List[Platform]:
        return list(self.platforms.values())

    def get_platform(self, platform_id: str) -> Platform:
        """
        Look up a platform by id.

        Raises:
            PlatformNotFoundError: If the id is not in the platform list
        """
        platform = self.platforms.get(platform_id)
        if platform is None:
            raise PlatformNotFoundError(f"Unknown platform: {platform_id}")
        return platform

    def find_platform(self, platform_id: str) -> Optional[Platform]:
        return self.platforms.get(platform_id)

    def _mark_connected(self, platform: Platform) -> None:
        platform.status = PlatformStatus.CONNECTED.value
        platform.last_sync = JUST_NOW

    async def startup(self) -> None:
        """Derive connection status from stored credentials and arm auto-sync."""
        self.scheduler.startup()
        for platform in self.platforms.values():
            if await self.credential_store.get(platform.id) is None:
                continue
            platform.status = PlatformStatus.CONNECTED.value
            await self.scheduler.start(platform)

        connected = [p.id for p in self.platforms.values() if p.status == PlatformStatus.CONNECTED]
        logger.info(f"Integration manager started ({len(connected)} connected platforms)")

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.registry.close()
        logger.info("Integration manager stopped")

    async def start_connect(self, platform_id: str) -> str:
        """Begin the OAuth flow and return the authorization URL."""
        return await self.oauth_manager.initiate(self.get_platform(platform_id))

    async def complete_connect(self, query_params: Mapping[str, Optional[str]]) -> OAuthCallbackResult:
        """Handle the OAuth redirect and mark the platform connected on success."""
        result = await self.oauth_manager.handle_callback(query_params)
        if result.success and result.platform_id in self.platforms:
            self._mark_connected(self.platforms[result.platform_id])
        return result

    async def connect_with_credentials(
        self,
        platform_id: str,
        credentials: PlatformCredentials,
    ) -> OAuthCallbackResult:
        """Connect a platform with credentials entered directly by the user."""
        platform = self.get_platform(platform_id)
        try:
            await self.credential_store.store(platform.id, credentials)
        except PersistenceError as e:
            return OAuthCallbackResult(
                success=False,
                platform_id=platform.id,
                platform_name=platform.name,
                message=str(e),
                error_type=type(e).__name__,
            )

        self._mark_connected(platform)
        logger.info(f"Connected {platform.id} with supplied credentials")
        return OAuthCallbackResult(
            success=True,
            platform_id=platform.id,
            platform_name=platform.name,
            message=f"Successfully connected to {platform.name}!",
        )

    async def disconnect(self, platform_id: str) -> Platform:
        """Forget credentials, stop auto-sync and mark the platform disconnected."""
        platform = self.get_platform(platform_id)
        await self.credential_store.clear(platform.id)
        self.scheduler.stop(platform.id)
        platform.status = PlatformStatus.NOT_CONNECTED.value
        platform.last_sync = None
        logger.info(f"Disconnected {platform.id}")
        return platform

    async def sync(self, platform_id: str, direction: Optional[SyncDirection] = None) -> SyncResult:
        platform = self.get_platform(platform_id)
        result = await self.orchestrator.sync_with_platform(platform, direction)
        await self.config_store.record_result(platform.id, result)
        if result.success:
            platform.last_sync = JUST_NOW
        return result

    async def sync_inventory(self, platform_id: str) -> SyncResult:
        platform = self.get_platform(platform_id)
        result = await self.inventory_engine.sync_inventory(platform)
        if result.success:
            platform.last_sync = JUST_NOW
        return result

    async def setup_webhook(self, platform_id: str) -> bool:
        return await self.orchestrator.setup_platform_webhook(self.get_platform(platform_id))

    async def get_sync_config(self, platform_id: str) -> PlatformSyncConfig:
        return await self.config_store.get(self.get_platform(platform_id).id)

    async def save_sync_config(self, platform_id: str, config: PlatformSyncConfig) -> PlatformSyncConfig:
        """
        Persist sync settings and start or stop auto-sync to match them.

        Raises:
            ConfigurationError: If the interval is shorter than the allowed minimum
        """
        platform = self.get_platform(platform_id)
        if config.sync_interval < self.min_sync_interval:
            raise ConfigurationError(
                f"Sync interval must be at least {self.min_sync_interval} minutes"
            )
        if config.last_sync_status is None:
            config.last_sync_status = (await self.config_store.get(platform.id)).last_sync_status
        await self.config_store.save(platform.id, config)

        if config.auto_sync:
            await self.scheduler.start(platform)
        else:
            self.scheduler.stop(platform.id)
        return config

    async def update_inventory_settings(
        self,
        platform_id: str,
        sync_inventory_only: Optional[bool] = None,
        inventory_priority: Optional[InventoryPriority] = None,
    ) -> PlatformSyncConfig:
        platform = self.get_platform(platform_id)
        return await self.config_store.update_inventory_settings(
            platform.id,
            sync_inventory_only=sync_inventory_only,
            inventory_priority=inventory_priority,
        )

    def status(self) -> Dict[str, Any]:
        return {
            "platforms": {p.id: p.status for p in self.platforms.values()},
            "adapters": self.registry.platform_ids(),
            "scheduler": self.scheduler.get_status(),
        }


def create_integration_manager(
    settings: Optional[Settings] = None,
    catalog: Optional[ProductCatalog] = None,
    notifier: Optional[Notifier] = None,
    store: Optional[KeyValueStore] = None,
    url_opener: Optional[Callable[[str], Any]] = None,
) -> IntegrationManager:
    """
    Create a fully wired integration manager.

    Args:
        settings: Library settings (defaults to environment configuration)
        catalog: Local product catalog (empty in-memory catalog if None)
        notifier: Receives auto-sync notifications (logged if None)
        store: Key-value store (selected by settings if None)
        url_opener: Presents authorization URLs to the user

    Returns:
        IntegrationManager instance
    """
    settings = settings or Settings()
    catalog = catalog or InMemoryProductCatalog()
    store = store or create_key_value_store(settings)

    cipher = CredentialCipher(settings.credential_encryption_key) if settings.credential_encryption_key else None
    credential_store = CredentialStore(store, cipher=cipher)
    platforms = default_platforms()

    oauth_manager = OAuthFlowManager(
        credential_store,
        platforms={platform.id: platform for platform in platforms},
        token_client=create_token_client(settings),
        client_id=settings.oauth_client_id,
        redirect_base_url=settings.oauth_redirect_base_url,
        verify_state=settings.oauth_verify_state,
        url_opener=url_opener,
    )
    registry = create_adapter_registry(settings, credential_store, catalog)
    config_store = SyncConfigStore(store, default_sync_interval=settings.default_sync_interval)
    orchestrator = SyncOrchestrator(credential_store, oauth_manager, registry, config_store)
    inventory_engine = InventoryReconciliationEngine(store, credential_store, registry, config_store, catalog)

    scheduler = AutoSyncScheduler(
        orchestrator,
        config_store,
        notifier=notifier or log_notification,
    )

    return IntegrationManager(
        platforms,
        credential_store,
        oauth_manager,
        registry,
        config_store,
        orchestrator,
        inventory_engine,
        scheduler,
        min_sync_interval=settings.min_sync_interval,
    )
