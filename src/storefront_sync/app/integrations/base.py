"""
Storefront Sync - Platform Adapter Interface
Common interface implemented by every selling-platform integration.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..core.exceptions import PlatformApiError
from ..schemas.models import InventoryUpdate, SyncResult
from ..schemas.platforms import platform_display_name

logger = logging.getLogger(__name__)


class FaultPolicy:
    """
    Source of latency and failure decisions for simulated adapters.

    A seeded policy makes simulated runs reproducible; ``latency_scale=0``
    removes the artificial delays entirely.
    """

    def __init__(self, seed: Optional[int] = None, latency_scale: float = 1.0):
        """
        Initialize fault policy.

        Args:
            seed: Seed for the random generator (None for nondeterministic runs)
            latency_scale: Multiplier applied to every simulated delay
        """
        self.seed = seed
        self.latency_scale = latency_scale
        self.rng = random.Random(seed)

    async def delay(self, seconds: float) -> None:
        scaled = seconds * self.latency_scale
        if scaled > 0:
            await asyncio.sleep(scaled)

    def fails(self, probability: float) -> bool:
        """True with the given probability."""
        return probability > 0 and self.rng.random() < probability

    def between(self, low: int, high: int) -> int:
        """Random integer in the inclusive range."""
        return self.rng.randint(low, high)

    def jitter(self, seconds: float) -> float:
        """Random offset in ``[0, seconds)``."""
        return self.rng.random() * seconds


class PlatformAdapter(ABC):
    """
    Product and inventory operations against one selling platform.

    ``import_products`` and ``export_products`` report partial failures in
    the returned SyncResult. Transport problems may raise PlatformApiError;
    the orchestrator turns those into failed results.
    """

    supports_webhooks: bool = False

    def __init__(self, platform_id: str, platform_name: Optional[str] = None):
        self.platform_id = platform_id
        self.platform_name = platform_name or platform_display_name(platform_id)

    @abstractmethod
    async def import_products(self) -> SyncResult:
        """Fetch remote products into the local catalog."""

    @abstractmethod
    async def export_products(self) -> SyncResult:
        """Push local products to the platform."""

    async def setup_webhook(self) -> bool:
        """Register a push-update channel. Adapters without webhooks return False."""
        return False

    async def fetch_inventory(self, product_ids: Sequence[str]) -> List[InventoryUpdate]:
        """Current platform quantities for the given local product ids."""
        raise PlatformApiError(f"Inventory reads are not available for {self.platform_name}")

    async def push_inventory(self, updates: Sequence[InventoryUpdate]) -> SyncResult:
        """Write local quantities to the platform."""
        raise PlatformApiError(f"Inventory updates are not available for {self.platform_name}")

    async def close(self) -> None:
        """Release network resources held by the adapter."""
        return None
