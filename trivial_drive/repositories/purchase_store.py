"""Purchase store - in-memory storage for purchases made through the local billing source.

Thread-safe dictionary-based storage.
"""

import threading
from typing import Dict, List

from trivial_drive.models.purchase import PurchaseRecord


class PurchaseStore:
    """In-memory storage for purchases, keyed by purchase token."""

    def __init__(self):
        self._purchases: Dict[str, PurchaseRecord] = {}
        self._lock = threading.RLock()

    def add(self, purchase: PurchaseRecord) -> None:
        """Add a purchase to the store.

        Raises:
            ValueError: If purchase token already exists
        """
        with self._lock:
            if purchase.token in self._purchases:
                raise ValueError(f"Purchase with token '{purchase.token}' already exists")
            self._purchases[purchase.token] = purchase

    def get_active_by_product_id(self, product_id: str) -> List[PurchaseRecord]:
        """Get completed, unconsumed purchases for a SKU."""
        with self._lock:
            return [
                p for p in self._purchases.values() if p.product_id == product_id and p.is_active
            ]

    def clear(self) -> None:
        """Remove all purchases."""
        with self._lock:
            self._purchases.clear()

    def count(self) -> int:
        with self._lock:
            return len(self._purchases)

    def __len__(self) -> int:
        return self.count()
