"""
Shopify API Integration Module

Adapter for the Shopify Admin REST API: paginated product import, SKU-matched
product export, variant inventory levels and webhook registration.
"""

import logging
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

from ..core.exceptions import PlatformApiError
from ..schemas.models import CatalogProduct, InventoryUpdate, SyncDetails, SyncResult
from ..utils.clock import parse_millis
from .http_adapter import HttpPlatformAdapter

logger = logging.getLogger(__name__)

PAGE_LIMIT = 250
WEBHOOK_TOPICS = ["inventory_levels/update", "products/update"]


class ShopifyAdapter(HttpPlatformAdapter):
    """
    Handles product and inventory synchronization with a Shopify store.
    Local products are matched to Shopify variants by SKU.
    """

    supports_webhooks = True

    def __init__(
        self,
        token_provider,
        catalog,
        shop_domain: str,
        api_version: str = "2024-01",
        location_id: Optional[int] = None,
        webhook_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__("shopify", token_provider, catalog, **kwargs)
        self.shop_domain = shop_domain
        self.api_version = api_version
        self.location_id = location_id
        self.webhook_url = webhook_url

    @property
    def base_url(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}"

    def auth_headers(self, access_token: str) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def get_products(self, limit: int = PAGE_LIMIT) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Fetch products with pagination support

        Args:
            limit: Number of products per page (max 250)

        Yields:
            Product data dictionaries
        """
        params = {"limit": min(limit, PAGE_LIMIT)}

        while True:
            data = await self._request("GET", "products.json", params=params)
            products = data.get("products", [])

            if not products:
                break

            for product in products:
                yield product

            if len(products) < params["limit"]:
                break

            params["since_id"] = products[-1]["id"]

    async def variants_by_sku(self) -> Dict[str, Dict[str, Any]]:
        """All store variants keyed by SKU."""
        variants: Dict[str, Dict[str, Any]] = {}
        async for product in self.get_products():
            for variant in product.get("variants", []):
                if variant.get("sku"):
                    variants[variant["sku"]] = variant
        return variants

    async def get_location_id(self) -> int:
        if self.location_id:
            return self.location_id

        data = await self._request("GET", "locations.json")
        locations = data.get("locations", [])
        if not locations:
            raise PlatformApiError("No Shopify locations are available for inventory")
        self.location_id = locations[0]["id"]
        return self.location_id

    async def create_product(self, product: CatalogProduct) -> Dict[str, Any]:
        data = await self._request("POST", "products.json", json={
            "product": {
                "title": product.name,
                "body_html": product.description or "",
                "status": "active",
                "variants": [
                    {
                        "sku": product.sku or product.id,
                        "price": f"{product.price:.2f}",
                        "inventory_management": "shopify",
                    }
                ],
            }
        })
        return data.get("product", {})

    async def update_variant_price(self, variant_id: int, price: float) -> Dict[str, Any]:
        data = await self._request("PUT", f"variants/{variant_id}.json", json={
            "variant": {"id": variant_id, "price": f"{price:.2f}"}
        })
        return data.get("variant", {})

    async def import_products(self) -> SyncResult:
        synced = 0
        failed = 0
        async for product in self.get_products():
            if product.get("variants"):
                synced += 1
            else:
                failed += 1

        logger.info(f"Imported {synced} products from Shopify ({failed} without variants)")
        return SyncResult.succeeded(
            "Successfully imported products from Shopify",
            SyncDetails(items_synced=synced, items_failed=failed),
        )

    async def export_products(self) -> SyncResult:
        products = await self.catalog.list_products()
        existing = await self.variants_by_sku()
        synced = 0
        errors: List[str] = []

        for product in products:
            sku = product.sku or product.id
            try:
                variant = existing.get(sku)
                if variant:
                    await self.update_variant_price(variant["id"], product.price)
                else:
                    await self.create_product(product)
                synced += 1
            except PlatformApiError as e:
                logger.error(f"Failed to export {sku} to Shopify: {e}")
                errors.append(f"{sku}: {e}")

        details = SyncDetails(items_synced=synced, items_failed=len(errors), errors=errors or None)
        if errors:
            return SyncResult.failed("Some products failed to export to Shopify", details)
        return SyncResult.succeeded("Successfully exported products to Shopify", details)

    async def setup_webhook(self) -> bool:
        if not self.webhook_url:
            logger.warning("No webhook callback URL configured for Shopify")
            return False

        try:
            for topic in WEBHOOK_TOPICS:
                await self._request("POST", "webhooks.json", json={
                    "webhook": {"topic": topic, "address": self.webhook_url, "format": "json"}
                })
        except PlatformApiError as e:
            logger.error(f"Failed to register Shopify webhooks: {e}")
            return False

        logger.info(f"Registered Shopify webhooks for {self.shop_domain}")
        return True

    async def _sku_for(self, product_id: str) -> str:
        product = await self.catalog.get_product(product_id)
        return (product.sku if product else "") or product_id

    async def fetch_inventory(self, product_ids: Sequence[str]) -> List[InventoryUpdate]:
        variants = await self.variants_by_sku()
        items: Dict[int, Dict[str, str]] = {}
        for product_id in product_ids:
            sku = await self._sku_for(product_id)
            variant = variants.get(sku)
            if variant and variant.get("inventory_item_id"):
                items[variant["inventory_item_id"]] = {"product_id": product_id, "sku": sku}

        if not items:
            return []

        location_id = await self.get_location_id()
        data = await self._request("GET", "inventory_levels.json", params={
            "inventory_item_ids": ",".join(str(item_id) for item_id in items),
            "location_ids": str(location_id),
        })

        updates = []
        for level in data.get("inventory_levels", []):
            item = items.get(level.get("inventory_item_id"))
            if item is None:
                continue
            updates.append(InventoryUpdate(
                product_id=item["product_id"],
                sku=item["sku"],
                quantity=max(0, level.get("available") or 0),
                platform_id=self.platform_id,
                timestamp=parse_millis(level.get("updated_at")),
            ))
        return updates

    async def push_inventory(self, updates: Sequence[InventoryUpdate]) -> SyncResult:
        variants = await self.variants_by_sku()
        location_id = await self.get_location_id()
        updated = 0
        errors: List[str] = []

        for update in updates:
            variant = variants.get(update.sku)
            if not variant or not variant.get("inventory_item_id"):
                errors.append(f"No Shopify variant matches SKU {update.sku}")
                continue
            try:
                await self._request("POST", "inventory_levels/set.json", json={
                    "location_id": location_id,
                    "inventory_item_id": variant["inventory_item_id"],
                    "available": update.quantity,
                })
                updated += 1
            except PlatformApiError as e:
                errors.append(f"{update.sku}: {e}")

        details = SyncDetails(
            items_synced=0,
            items_failed=len(errors),
            inventory_updated=updated,
            errors=errors or None,
        )
        if errors and not updated:
            return SyncResult.failed("Failed to update inventory on Shopify. Please try again.", details)
        return SyncResult.succeeded("Successfully updated inventory on Shopify", details)
