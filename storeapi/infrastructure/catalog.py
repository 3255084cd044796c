"""Product catalog.

Products priced new line items and supply SKUs to responses. The catalog
is read-only at runtime and can be seeded from a JSON file.
"""

import json
from pathlib import Path

import structlog

from storeapi.application.ports import Product
from storeapi.domain.formatting import to_decimal

logger = structlog.get_logger()


class InMemoryProductCatalog:
    """Product lookup backed by a dict."""

    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[int, Product] = {}
        for product in products or []:
            self.add(product)

    def add(self, product: Product) -> None:
        """Register or replace a product."""
        self._products[product.id] = product

    def get(self, product_id: int) -> Product | None:
        """Get a product by ID."""
        return self._products.get(product_id)

    def sku_for(self, product_id: int) -> str | None:
        """Get the SKU of a product, None when unknown."""
        product = self._products.get(product_id)
        return product.sku if product is not None else None

    def __len__(self) -> int:
        return len(self._products)

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryProductCatalog":
        """Load a catalog from a JSON list of products.

        Args:
            path: File holding ``[{"id", "name", "price", "sku"?}, ...]``.

        Returns:
            Catalog with every listed product.
        """
        records = json.loads(Path(path).read_text(encoding="utf-8"))
        catalog = cls(
            [
                Product(
                    id=int(record["id"]),
                    name=str(record.get("name", "")),
                    price=to_decimal(record.get("price")),
                    sku=str(record.get("sku", "")),
                )
                for record in records
            ]
        )
        logger.info("Product catalog loaded", path=str(path), products=len(catalog))
        return catalog
