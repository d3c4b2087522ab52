"""
Storefront Sync - Simulated Platform Adapters

Adapters that model each platform's typical latency, item volumes and
partial failures without network access. They back the dashboard's demo
mode and exercise the error paths of the orchestrator.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..schemas.models import InventoryUpdate, SyncDetails, SyncResult
from ..utils.clock import now_millis
from .base import FaultPolicy, PlatformAdapter

logger = logging.getLogger(__name__)

ONE_DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class AdapterProfile:
    """Simulated behaviour of one platform. Ranges are inclusive."""
    import_latency: float
    import_synced: Tuple[int, int]
    export_latency: float
    export_synced: Tuple[int, int]
    import_failed: Optional[Tuple[int, int]] = None
    export_failure_rate: float = 0.0
    export_failed: Tuple[int, int] = (1, 1)
    export_errors: Tuple[str, ...] = ()
    webhook_latency: Optional[float] = None
    inventory_fetch_latency: float = 1.0
    inventory_push_latency: float = 1.5
    inventory_push_failure_rate: float = 0.1
    inventory_push_errors: Tuple[str, ...] = field(default=("API rate limit exceeded",))


PLATFORM_PROFILES: Dict[str, AdapterProfile] = {
    "etsy": AdapterProfile(
        import_latency=1.5,
        import_synced=(10, 29),
        import_failed=(0, 2),
        export_latency=2.0,
        export_synced=(5, 19),
    ),
    "tiktok": AdapterProfile(
        import_latency=1.2,
        import_synced=(5, 14),
        export_latency=1.8,
        export_synced=(3, 14),
        export_failure_rate=0.2,
        export_failed=(1, 5),
        export_errors=("API rate limit exceeded", "Invalid product data format"),
        webhook_latency=1.0,
    ),
    "square": AdapterProfile(
        import_latency=1.3,
        import_synced=(15, 39),
        export_latency=1.7,
        export_synced=(10, 29),
        webhook_latency=0.8,
    ),
    "instagram": AdapterProfile(
        import_latency=1.6,
        import_synced=(5, 19),
        export_latency=2.2,
        export_synced=(2, 11),
        export_failure_rate=0.1,
        export_failed=(1, 3),
        export_errors=("Media upload failed", "Product catalog not configured"),
    ),
}


class SimulatedPlatformAdapter(PlatformAdapter):
    """
    Profile-driven adapter that never touches the network.
    """

    def __init__(
        self,
        platform_id: str,
        profile: AdapterProfile,
        fault_policy: Optional[FaultPolicy] = None,
        platform_name: Optional[str] = None,
        clock: Callable[[], int] = now_millis,
    ):
        super().__init__(platform_id, platform_name)
        self.profile = profile
        self.faults = fault_policy or FaultPolicy()
        self.clock = clock

    @property
    def supports_webhooks(self) -> bool:
        return self.profile.webhook_latency is not None

    async def import_products(self) -> SyncResult:
        await self.faults.delay(self.profile.import_latency)

        details = SyncDetails(items_synced=self.faults.between(*self.profile.import_synced))
        if self.profile.import_failed:
            details.items_failed = self.faults.between(*self.profile.import_failed)

        logger.debug(f"Simulated import from {self.platform_id}: {details.items_synced} items")
        return SyncResult.succeeded(f"Successfully imported products from {self.platform_name}", details)

    async def export_products(self) -> SyncResult:
        await self.faults.delay(self.profile.export_latency)

        items_synced = self.faults.between(*self.profile.export_synced)
        if self.faults.fails(self.profile.export_failure_rate):
            logger.debug(f"Simulated partial export failure on {self.platform_id}")
            return SyncResult.failed(
                f"Some products failed to export to {self.platform_name}",
                SyncDetails(
                    items_synced=items_synced,
                    items_failed=self.faults.between(*self.profile.export_failed),
                    errors=list(self.profile.export_errors),
                ),
            )

        details = SyncDetails(items_synced=items_synced)
        if self.profile.export_failure_rate:
            details.items_failed = 0
        return SyncResult.succeeded(f"Successfully exported products to {self.platform_name}", details)

    async def setup_webhook(self) -> bool:
        if self.profile.webhook_latency is None:
            return False
        await self.faults.delay(self.profile.webhook_latency)
        logger.info(f"Simulated webhook registered for {self.platform_id}")
        return True

    async def fetch_inventory(self, product_ids: Sequence[str]) -> List[InventoryUpdate]:
        await self.faults.delay(self.profile.inventory_fetch_latency + self.faults.jitter(1.0))

        now = self.clock()
        return [
            InventoryUpdate(
                product_id=product_id,
                sku=f"SKU-{product_id}",
                quantity=self.faults.between(1, 50),
                platform_id=self.platform_id,
                timestamp=now - self.faults.between(0, ONE_DAY_MS - 1),
            )
            for product_id in product_ids
        ]

    async def push_inventory(self, updates: Sequence[InventoryUpdate]) -> SyncResult:
        await self.faults.delay(self.profile.inventory_push_latency + self.faults.jitter(1.5))

        if self.faults.fails(self.profile.inventory_push_failure_rate):
            return SyncResult.failed(
                f"Failed to update inventory on {self.platform_name}. Please try again.",
                SyncDetails(
                    items_synced=0,
                    inventory_updated=0,
                    errors=list(self.profile.inventory_push_errors),
                ),
            )

        return SyncResult.succeeded(
            f"Successfully updated inventory on {self.platform_name}",
            SyncDetails(items_synced=0, inventory_updated=len(updates)),
        )


def create_simulated_adapters(
    fault_policy: Optional[FaultPolicy] = None,
    clock: Callable[[], int] = now_millis,
) -> List[SimulatedPlatformAdapter]:
    """One simulated adapter per profiled platform, sharing a fault policy."""
    fault_policy = fault_policy or FaultPolicy()
    return [
        SimulatedPlatformAdapter(platform_id, profile, fault_policy, clock=clock)
        for platform_id, profile in PLATFORM_PROFILES.items()
    ]
