"""
Storefront Sync - Square Integration

Square REST API v2 adapter: catalog import, SKU-matched export, physical
inventory counts and webhook subscriptions.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from ..core.exceptions import PlatformApiError
from ..schemas.models import CatalogProduct, InventoryUpdate, SyncDetails, SyncResult
from ..utils.clock import parse_millis, utc_isoformat
from .http_adapter import HttpPlatformAdapter

logger = logging.getLogger(__name__)

WEBHOOK_EVENT_TYPES = ["inventory.count.updated", "catalog.version.updated"]


class SquareAdapter(HttpPlatformAdapter):
    """
    Adapter for the Square Catalog and Inventory APIs.

    Local products are matched to Square item variations by SKU.
    """

    supports_webhooks = True

    def __init__(
        self,
        token_provider,
        catalog,
        api_url: str = "https://connect.squareup.com/v2",
        api_version: str = "2023-09-25",
        location_id: Optional[str] = None,
        currency: str = "GBP",
        webhook_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__("square", token_provider, catalog, **kwargs)
        self.api_url = api_url.rstrip("/")
        self.api_version = api_version
        self.location_id = location_id
        self.currency = currency
        self.webhook_url = webhook_url

    @property
    def base_url(self) -> str:
        return self.api_url

    def auth_headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Square-Version": self.api_version,
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    async def get_location_id(self) -> str:
        """Configured location, or the first location of the seller account."""
        if self.location_id:
            return self.location_id

        data = await self._request("GET", "locations")
        locations = data.get("locations", [])
        if not locations:
            raise PlatformApiError("No Square locations are available for inventory")
        self.location_id = locations[0]["id"]
        return self.location_id

    async def list_catalog_items(self) -> List[Dict[str, Any]]:
        """All catalog objects of type ITEM, following pagination cursors."""
        items: List[Dict[str, Any]] = []
        params = {"types": "ITEM"}
        while True:
            data = await self._request("GET", "catalog/list", params=params)
            items.extend(data.get("objects", []))
            cursor = data.get("cursor")
            if not cursor:
                break
            params = {"types": "ITEM", "cursor": cursor}
        return items

    async def find_variation_id(self, sku: str) -> Optional[str]:
        """Catalog id of the item variation with this SKU, if any."""
        data = await self._request("POST", "catalog/search", json={
            "object_types": ["ITEM_VARIATION"],
            "query": {
                "exact_query": {
                    "attribute_name": "sku",
                    "attribute_value": sku,
                },
            },
        })
        objects = data.get("objects") or []
        return objects[0]["id"] if objects else None

    async def create_catalog_item(self, product: CatalogProduct) -> str:
        """Create an item with one fixed-price variation and return the variation id."""
        item_ref = f"#item_{product.id}"
        data = await self._request("POST", "catalog/object", json={
            "idempotency_key": str(uuid.uuid4()),
            "object": {
                "type": "ITEM",
                "id": item_ref,
                "item_data": {
                    "name": product.name,
                    "description": product.description or "",
                    "variations": [
                        {
                            "type": "ITEM_VARIATION",
                            "id": f"#var_{product.id}",
                            "item_variation_data": {
                                "item_id": item_ref,
                                "name": "Regular",
                                "sku": product.sku or product.id,
                                "pricing_type": "FIXED_PRICING",
                                "price_money": {
                                    "amount": round(product.price * 100),
                                    "currency": self.currency,
                                },
                            },
                        }
                    ],
                },
            },
        })
        return data["catalog_object"]["item_data"]["variations"][0]["id"]

    async def set_physical_counts(self, counts: Dict[str, int]) -> Dict[str, Any]:
        """Record PHYSICAL_COUNT changes for variation ids at the active location."""
        location_id = await self.get_location_id()
        occurred_at = utc_isoformat()
        changes = [
            {
                "type": "PHYSICAL_COUNT",
                "physical_count": {
                    "catalog_object_id": variation_id,
                    "location_id": location_id,
                    "quantity": str(quantity),
                    "state": "IN_STOCK",
                    "occurred_at": occurred_at,
                },
            }
            for variation_id, quantity in counts.items()
        ]
        return await self._request("POST", "inventory/changes/batch-create", json={
            "idempotency_key": str(uuid.uuid4()),
            "changes": changes,
        })

    async def import_products(self) -> SyncResult:
        items = await self.list_catalog_items()
        failed = [item for item in items if not item.get("item_data", {}).get("variations")]

        logger.info(f"Imported {len(items)} catalog items from Square")
        details = SyncDetails(items_synced=len(items) - len(failed), items_failed=len(failed))
        if failed:
            details.errors = [f"Item {item.get('id')} has no variations" for item in failed]
        return SyncResult.succeeded("Successfully imported products from Square", details)

    async def export_products(self) -> SyncResult:
        products = await self.catalog.list_products()
        synced = 0
        errors: List[str] = []

        for product in products:
            sku = product.sku or product.id
            try:
                variation_id = await self.find_variation_id(sku)
                if variation_id is None:
                    variation_id = await self.create_catalog_item(product)
                await self.set_physical_counts({variation_id: product.inventory})
                synced += 1
            except (PlatformApiError, KeyError, IndexError) as e:
                logger.error(f"Failed to export {sku} to Square: {e}")
                errors.append(f"{sku}: {e}")

        details = SyncDetails(items_synced=synced, items_failed=len(errors), errors=errors or None)
        if errors:
            return SyncResult.failed("Some products failed to export to Square", details)
        return SyncResult.succeeded("Successfully exported products to Square", details)

    async def setup_webhook(self) -> bool:
        if not self.webhook_url:
            logger.warning("No webhook callback URL configured for Square")
            return False

        try:
            await self._request("POST", "webhooks/subscriptions", json={
                "idempotency_key": str(uuid.uuid4()),
                "subscription": {
                    "name": "Storefront inventory sync",
                    "event_types": WEBHOOK_EVENT_TYPES,
                    "notification_url": self.webhook_url,
                    "api_version": self.api_version,
                },
            })
        except PlatformApiError as e:
            logger.error(f"Failed to register Square webhook: {e}")
            return False

        logger.info("Registered Square webhook subscription")
        return True

    async def _variation_ids_for(self, product_ids: Sequence[str]) -> Dict[str, str]:
        """Map of local product id to Square variation id for products found by SKU."""
        mapping: Dict[str, str] = {}
        for product_id in product_ids:
            product = await self.catalog.get_product(product_id)
            sku = (product.sku if product else "") or product_id
            variation_id = await self.find_variation_id(sku)
            if variation_id:
                mapping[product_id] = variation_id
            else:
                logger.debug(f"No Square variation matches SKU {sku}")
        return mapping

    async def fetch_inventory(self, product_ids: Sequence[str]) -> List[InventoryUpdate]:
        variation_ids = await self._variation_ids_for(product_ids)
        if not variation_ids:
            return []

        location_id = await self.get_location_id()
        data = await self._request("POST", "inventory/counts/batch-retrieve", json={
            "catalog_object_ids": list(variation_ids.values()),
            "location_ids": [location_id],
            "states": ["IN_STOCK"],
        })
        counts = {count["catalog_object_id"]: count for count in data.get("counts", [])}

        updates = []
        for product_id, variation_id in variation_ids.items():
            count = counts.get(variation_id)
            if count is None:
                continue
            product = await self.catalog.get_product(product_id)
            updates.append(InventoryUpdate(
                product_id=product_id,
                sku=(product.sku if product else "") or product_id,
                quantity=max(0, int(float(count.get("quantity", "0")))),
                platform_id=self.platform_id,
                timestamp=parse_millis(count.get("calculated_at")),
            ))
        return updates

    async def push_inventory(self, updates: Sequence[InventoryUpdate]) -> SyncResult:
        counts: Dict[str, int] = {}
        errors: List[str] = []
        for update in updates:
            variation_id = await self.find_variation_id(update.sku)
            if variation_id is None:
                errors.append(f"No Square item matches SKU {update.sku}")
                continue
            counts[variation_id] = update.quantity

        if counts:
            await self.set_physical_counts(counts)

        details = SyncDetails(
            items_synced=0,
            items_failed=len(errors),
            inventory_updated=len(counts),
            errors=errors or None,
        )
        if errors and not counts:
            return SyncResult.failed("Failed to update inventory on Square. Please try again.", details)
        return SyncResult.succeeded("Successfully updated inventory on Square", details)
