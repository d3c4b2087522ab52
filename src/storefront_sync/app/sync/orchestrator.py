"""
Storefront Sync - Sync Orchestrator

Runs import, export and two-way product synchronization against one
platform: validates (and if needed refreshes) credentials, resolves the
platform adapter and merges the per-leg results.
"""

import logging
from typing import List, Optional

from ..auth.credentials import CredentialStore
from ..auth.oauth import OAuthFlowManager
from ..core.exceptions import CredentialsExpiredError, NoAdapterError
from ..integrations.registry import AdapterRegistry
from ..schemas.models import Platform, SyncDetails, SyncDirection, SyncResult
from .config_store import SyncConfigStore

logger = logging.getLogger(__name__)


def merge_results(import_result: SyncResult, export_result: SyncResult) -> SyncResult:
    """Combine the import and export legs of a two-way sync."""
    import_details = import_result.details or SyncDetails()
    export_details = export_result.details or SyncDetails()

    errors: List[str] = (import_details.errors or []) + (export_details.errors or [])
    return SyncResult.succeeded(
        "Two-way synchronization completed successfully",
        SyncDetails(
            items_synced=(import_details.items_synced or 0) + (export_details.items_synced or 0),
            items_failed=(import_details.items_failed or 0) + (export_details.items_failed or 0),
            errors=errors or None,
        ),
    )


class SyncOrchestrator:
    """
    Product synchronization entry point.

    ``sync_with_platform`` never raises; every failure is reported as a
    failed SyncResult with a message suitable for the user.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        oauth_manager: OAuthFlowManager,
        registry: AdapterRegistry,
        config_store: SyncConfigStore,
    ):
        self.credential_store = credential_store
        self.oauth_manager = oauth_manager
        self.registry = registry
        self.config_store = config_store

    async def ensure_credentials(self, platform: Platform) -> None:
        """
        Make sure the platform has usable credentials, refreshing if allowed.

        Raises:
            CredentialsExpiredError: If credentials are invalid and cannot be refreshed
        """
        if await self.credential_store.is_valid(platform.id):
            return

        if platform.refresh_credentials:
            logger.info(f"Credentials for {platform.id} are not valid, attempting refresh")
            if await self.oauth_manager.refresh(platform) is not None:
                return

        raise CredentialsExpiredError(f"Authentication expired for {platform.name}. Please reconnect.")

    async def sync_with_platform(
        self,
        platform: Platform,
        direction: Optional[SyncDirection] = None,
    ) -> SyncResult:
        """
        Synchronize products with a platform.

        Args:
            platform: Platform to synchronize
            direction: Import, export or both; defaults to the platform's configured direction

        Returns:
            Result of the run
        """
        try:
            await self.ensure_credentials(platform)
        except CredentialsExpiredError as e:
            logger.warning(f"Skipping sync with {platform.id}: {e}")
            return SyncResult.failed(str(e))

        try:
            adapter = self.registry.get(platform.id)
        except NoAdapterError:
            logger.warning(f"No adapter registered for {platform.id}")
            return SyncResult.failed(f"No API handler configured for {platform.name}")

        try:
            if direction is None:
                direction = (await self.config_store.get(platform.id)).sync_direction
            direction = SyncDirection(direction)

            import_result: Optional[SyncResult] = None
            export_result: Optional[SyncResult] = None

            if direction in (SyncDirection.IMPORT, SyncDirection.BIDIRECTIONAL):
                import_result = await adapter.import_products()
                if not import_result.success:
                    logger.warning(f"Import from {platform.id} failed: {import_result.message}")
                    return import_result

            if direction in (SyncDirection.EXPORT, SyncDirection.BIDIRECTIONAL):
                export_result = await adapter.export_products()
                if not export_result.success:
                    logger.warning(f"Export to {platform.id} failed: {export_result.message}")
                    return export_result

            if import_result and export_result:
                result = merge_results(import_result, export_result)
            else:
                result = import_result or export_result

            logger.info(f"Sync with {platform.id} ({direction.value}) completed")
            return result

        except Exception as e:
            logger.error(f"Error synchronizing with {platform.name}: {e}")
            return SyncResult.failed(f"Failed to sync with {platform.name}: {e}")

    async def setup_platform_webhook(self, platform: Platform) -> bool:
        """
        Register a webhook for push updates.

        Returns:
            True if the platform accepted the webhook
        """
        if not platform.webhook_support:
            return False

        if not self.registry.has(platform.id):
            logger.warning(f"No adapter registered for {platform.id}, cannot set up webhook")
            return False

        adapter = self.registry.get(platform.id)
        if not adapter.supports_webhooks:
            return False

        try:
            return await adapter.setup_webhook()
        except Exception as e:
            logger.error(f"Failed to set up webhook for {platform.name}: {e}")
            return False
