"""
Storefront Sync - Product Catalog
Read access to the local product catalog used by exports and inventory sync.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from ..schemas.models import CatalogProduct

DEMO_PRODUCT_IDS = ["product1", "product2", "product3", "product4", "product5"]


class ProductCatalog(ABC):
    """The set of local products known to the dashboard."""

    @abstractmethod
    async def list_products(self) -> List[CatalogProduct]:
        """Return all local products."""

    async def get_product(self, product_id: str) -> Optional[CatalogProduct]:
        for product in await self.list_products():
            if product.id == product_id:
                return product
        return None

    async def product_ids(self) -> List[str]:
        return [product.id for product in await self.list_products()]


class InMemoryProductCatalog(ProductCatalog):
    """Catalog held in process memory, keyed by product id."""

    def __init__(self, products: Optional[Iterable[CatalogProduct]] = None):
        self._products: Dict[str, CatalogProduct] = {}
        for product in products or []:
            self.add_product(product)

    async def list_products(self) -> List[CatalogProduct]:
        return list(self._products.values())

    async def get_product(self, product_id: str) -> Optional[CatalogProduct]:
        return self._products.get(product_id)

    def add_product(self, product: CatalogProduct) -> None:
        self._products[product.id] = product

    def remove_product(self, product_id: str) -> None:
        self._products.pop(product_id, None)


def create_demo_catalog() -> InMemoryProductCatalog:
    """Catalog with the placeholder products the dashboard ships with."""
    return InMemoryProductCatalog(
        CatalogProduct(id=product_id, name=f"Product {index}", sku=f"SKU-{product_id}")
        for index, product_id in enumerate(DEMO_PRODUCT_IDS, start=1)
    )
