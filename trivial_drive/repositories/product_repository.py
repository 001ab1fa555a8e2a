"""Product repository - loads and provides access to product definitions.

Loads from config/products.yaml and provides lookup methods.
"""

from typing import Dict, List, Optional

from trivial_drive.config import Config
from trivial_drive.models import ProductDefinition, ProductType


class ProductNotFoundError(Exception):
    """Raised when a SKU is not in the catalog."""

    pass


class ProductRepository:
    """Repository for product and subscription definitions.

    Loads product definitions from configuration and provides fast lookup.
    """

    def __init__(self, config: Config):
        """Initialize product repository.

        Args:
            config: Configuration instance
        """
        self._config = config
        self._products_by_id: Dict[str, ProductDefinition] = {}
        self._load_products()

    def _load_products(self) -> None:
        """Load product definitions from configuration into indexed dictionary."""
        self._products_by_id.clear()

        for product in self._config.products.products:
            self._products_by_id[product.id] = product

        for product in self._config.products.subscriptions:
            self._products_by_id[product.id] = product

    def find_by_id(self, product_id: str) -> Optional[ProductDefinition]:
        """Find product definition by SKU (returns None if not found)."""
        return self._products_by_id.get(product_id)

    def get_all(self) -> List[ProductDefinition]:
        """Get all product and subscription definitions."""
        return list(self._products_by_id.values())

    def get_all_ids(self) -> List[str]:
        """Get all SKUs."""
        return list(self._products_by_id.keys())

    def is_subscription(self, product_id: str) -> bool:
        product = self._products_by_id.get(product_id)
        return product is not None and product.type == ProductType.SUBSCRIPTION

    def is_consumable(self, product_id: str) -> bool:
        product = self._products_by_id.get(product_id)
        return product is not None and product.type == ProductType.CONSUMABLE

    def __len__(self) -> int:
        return len(self._products_by_id)

