"""
Storefront Sync - Adapter Registry
Maps platform ids to the adapter instance that talks to that platform.
"""

import logging
from typing import Callable, Dict, List, Optional

from ..auth.credentials import CredentialStore
from ..core.config import Settings
from ..core.exceptions import NoAdapterError
from ..storage.catalog import ProductCatalog
from ..utils.clock import now_millis
from .base import FaultPolicy, PlatformAdapter
from .shopify import ShopifyAdapter
from .simulated import create_simulated_adapters
from .square import SquareAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry of platform adapters keyed by platform id."""

    def __init__(self, adapters: Optional[List[PlatformAdapter]] = None):
        self._adapters: Dict[str, PlatformAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: PlatformAdapter) -> None:
        """Register an adapter, replacing any adapter for the same platform."""
        if adapter.platform_id in self._adapters:
            logger.info(f"Replacing adapter for {adapter.platform_id}")
        self._adapters[adapter.platform_id] = adapter

    def get(self, platform_id: str) -> PlatformAdapter:
        """
        Look up the adapter for a platform.

        Raises:
            NoAdapterError: If no adapter is registered for the id
        """
        adapter = self._adapters.get(platform_id)
        if adapter is None:
            raise NoAdapterError(f"No API handler configured for {platform_id}")
        return adapter

    def has(self, platform_id: str) -> bool:
        return platform_id in self._adapters

    def platform_ids(self) -> List[str]:
        return list(self._adapters)

    async def close(self) -> None:
        for adapter in self._adapters.values():
            await adapter.close()


def access_token_provider(credential_store: CredentialStore, platform_id: str):
    """Coroutine factory returning the stored access token for a platform."""

    async def provide():
        credentials = await credential_store.get(platform_id)
        return credentials.access_token if credentials else None

    return provide


def create_adapter_registry(
    settings: Settings,
    credential_store: CredentialStore,
    catalog: ProductCatalog,
    clock: Callable[[], int] = now_millis,
) -> AdapterRegistry:
    """
    Create the adapter registry for the configured adapter mode.

    Simulated adapters cover etsy, tiktok, square and instagram. In ``live``
    mode Square is served by the REST adapter and Shopify is added when a
    shop domain is configured.

    Args:
        settings: Library settings
        credential_store: Source of access tokens for live adapters
        catalog: Local product catalog
        clock: Returns the current time in epoch milliseconds

    Returns:
        AdapterRegistry instance
    """
    fault_policy = FaultPolicy(seed=settings.fault_seed, latency_scale=settings.latency_scale)
    registry = AdapterRegistry(create_simulated_adapters(fault_policy, clock=clock))

    if settings.adapter_mode == "live":
        http_options = {
            "timeout_seconds": settings.http_timeout_seconds,
            "max_retries": settings.http_max_retries,
        }
        registry.register(SquareAdapter(
            access_token_provider(credential_store, "square"),
            catalog,
            api_url=settings.square_api_url,
            api_version=settings.square_api_version,
            location_id=settings.square_location_id,
            currency=settings.square_currency,
            webhook_url=settings.webhook_callback_url,
            **http_options,
        ))

        if settings.shopify_shop_domain:
            registry.register(ShopifyAdapter(
                access_token_provider(credential_store, "shopify"),
                catalog,
                shop_domain=settings.shopify_shop_domain,
                api_version=settings.shopify_api_version,
                location_id=settings.shopify_location_id,
                webhook_url=settings.webhook_callback_url,
                **http_options,
            ))
        else:
            logger.warning("Live adapter mode without a Shopify shop domain; Shopify is not available")

    elif settings.adapter_mode != "simulated":
        logger.warning(f"Unknown adapter mode {settings.adapter_mode!r}, using simulated adapters")

    logger.info(f"Adapter registry ready: {', '.join(registry.platform_ids())}")
    return registry
