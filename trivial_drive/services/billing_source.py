"""Billing source - purchase state, billing flows and purchase events.

Responsibilities:
- Publish per-SKU "is purchased" / "can purchase" observables
- Publish new-purchase and consumed-purchase event streams
- Launch billing flows, including subscription upgrade/downgrade
- Consume purchases of consumable SKUs
- Expose SKU title, price and description

``BillingSource`` is the capability surface the entitlement aggregator relies
on. ``LocalBillingSource`` implements it in-process on top of the product
catalog and the purchase store; flows are completed through the control API
or automatically when ``billing.auto_complete_purchases`` is set.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from trivial_drive.logging_config import get_logger
from trivial_drive.models import (
    AUTO_CONSUME_SKUS,
    BillingConfig,
    ConsumedEvent,
    PurchaseEvent,
    PurchaseRecord,
    PurchaseState,
)
from trivial_drive.repositories.product_repository import ProductNotFoundError, ProductRepository
from trivial_drive.repositories.purchase_store import PurchaseStore
from trivial_drive.state_logger import log_billing_flow_change, log_entitlement_change
from trivial_drive.utils.observable import (
    BroadcastChannel,
    Observable,
    ObservableValue,
    Subscription,
)
from trivial_drive.utils.token_generator import generate_order_id, generate_purchase_token

logger = get_logger(__name__)


class BillingSource(ABC):
    """Capability surface of a billing backend."""

    @abstractmethod
    def new_purchases(self) -> Subscription[PurchaseEvent]:
        """Stream of completed purchases, one event per purchase."""

    @abstractmethod
    def consumed_purchases(self) -> Subscription[ConsumedEvent]:
        """Stream of consumed purchases."""

    @abstractmethod
    def is_purchased(self, sku: str) -> Observable[bool]:
        """Whether the SKU is currently owned."""

    @abstractmethod
    def can_purchase(self, sku: str) -> Observable[bool]:
        """Whether a billing flow for the SKU may be started."""

    @abstractmethod
    async def launch_billing_flow(
        self, context: Any, sku: str, upgrade_sku: Optional[str] = None
    ) -> bool:
        """Start a billing flow.

        Args:
            context: Caller context (screen, session) the flow is attached to
            sku: SKU to buy
            upgrade_sku: Subscription SKU being replaced, if any

        Returns:
            True if the flow was started; the outcome arrives as a purchase event
        """

    @abstractmethod
    def billing_flow_in_process(self) -> Observable[bool]:
        """Whether a billing flow is currently running."""

    @abstractmethod
    def get_sku_title(self, sku: str) -> Observable[str]: ...

    @abstractmethod
    def get_sku_price(self, sku: str) -> Observable[str]: ...

    @abstractmethod
    def get_sku_description(self, sku: str) -> Observable[str]: ...

    @abstractmethod
    async def consume_inapp_purchase(self, sku: str) -> None:
        """Consume the owned purchase of an in-app SKU."""

    @abstractmethod
    async def refresh_purchases(self) -> None:
        """Re-read purchase state from the backend."""


class LocalBillingSource(BillingSource):
    """In-process billing source backed by the purchase store.

    One billing flow at a time: launching a flow records a pending purchase
    and sets ``billing_flow_in_process``; completing it grants the SKU,
    revokes the replaced subscription tier in the same step, emits a purchase
    event and auto-consumes consumables.
    """

    def __init__(
        self,
        product_repository: ProductRepository,
        purchase_store: Optional[PurchaseStore] = None,
        settings: Optional[BillingConfig] = None,
    ):
        """Initialize local billing source.

        Args:
            product_repository: Catalog of known SKUs
            purchase_store: Purchase store (a fresh one if not provided)
            settings: Billing settings (defaults if not provided)
        """
        self._products = product_repository
        self._store = purchase_store if purchase_store is not None else PurchaseStore()
        self._settings = settings or BillingConfig()
        self._lock = asyncio.Lock()

        self._purchase_events: BroadcastChannel[PurchaseEvent] = BroadcastChannel()
        self._consumed_events: BroadcastChannel[ConsumedEvent] = BroadcastChannel()
        self._flow_in_process = ObservableValue(False)
        self._pending: Optional[PurchaseRecord] = None

        self._purchased: Dict[str, ObservableValue[bool]] = {}
        self._can_purchase: Dict[str, Observable[bool]] = {}
        self._titles: Dict[str, ObservableValue[str]] = {}
        self._prices: Dict[str, ObservableValue[str]] = {}
        self._descriptions: Dict[str, ObservableValue[str]] = {}

        for product in self._products.get_all():
            owned = ObservableValue(bool(self._store.get_active_by_product_id(product.id)))
            self._purchased[product.id] = owned
            self._can_purchase[product.id] = owned.map(lambda is_owned: not is_owned)
            self._titles[product.id] = ObservableValue(product.title)
            self._prices[product.id] = ObservableValue(product.formatted_price)
            self._descriptions[product.id] = ObservableValue(product.description)

        logger.info(
            "billing_source_initialized",
            skus=self._products.get_all_ids(),
            auto_complete=self._settings.auto_complete_purchases,
        )

    def _lookup(self, table: Dict[str, Any], sku: str) -> Any:
        try:
            return table[sku]
        except KeyError:
            raise ProductNotFoundError(f"Product not found: {sku}") from None

    # Streams

    def new_purchases(self) -> Subscription[PurchaseEvent]:
        return self._purchase_events.subscribe()

    def consumed_purchases(self) -> Subscription[ConsumedEvent]:
        return self._consumed_events.subscribe()

    # Observables

    def is_purchased(self, sku: str) -> Observable[bool]:
        return self._lookup(self._purchased, sku)

    def can_purchase(self, sku: str) -> Observable[bool]:
        return self._lookup(self._can_purchase, sku)

    def billing_flow_in_process(self) -> Observable[bool]:
        return self._flow_in_process

    def get_sku_title(self, sku: str) -> Observable[str]:
        return self._lookup(self._titles, sku)

    def get_sku_price(self, sku: str) -> Observable[str]:
        return self._lookup(self._prices, sku)

    def get_sku_description(self, sku: str) -> Observable[str]:
        return self._lookup(self._descriptions, sku)

    @property
    def pending_purchase(self) -> Optional[PurchaseRecord]:
        """Purchase whose billing flow is in process, if any."""
        return self._pending

    def _set_owned(self, sku: str, owned: bool, reason: str) -> None:
        if self._purchased[sku].set(owned):
            log_entitlement_change(product_id=sku, owned=owned, reason=reason)

    def _now_millis(self) -> int:
        return int(time.time() * 1000)

    # Billing flows

    async def launch_billing_flow(
        self, context: Any, sku: str, upgrade_sku: Optional[str] = None
    ) -> bool:
        product = self._products.find_by_id(sku)
        if product is None:
            logger.warning("billing_flow_unknown_sku", product_id=sku)
            return False

        async with self._lock:
            if self._flow_in_process.value:
                logger.warning(
                    "billing_flow_already_in_process",
                    product_id=sku,
                    pending_product_id=self._pending.product_id if self._pending else None,
                )
                return False

            if self._purchased[sku].value:
                logger.warning("billing_flow_already_owned", product_id=sku)
                return False

            replaced_sku = None
            if upgrade_sku is not None:
                held = self._store.get_active_by_product_id(upgrade_sku)
                if not self._products.is_subscription(upgrade_sku):
                    logger.error("billing_flow_invalid_upgrade_sku", product_id=sku, upgrade_sku=upgrade_sku)
                    return False
                if held:
                    replaced_sku = upgrade_sku

            purchase = PurchaseRecord(
                token=generate_purchase_token(prefix=self._settings.token_prefix),
                product_id=sku,
                order_id=generate_order_id(),
                purchase_state=PurchaseState.PENDING,
                purchase_time_millis=self._now_millis(),
                price_amount_micros=product.price_micros,
                price_currency_code=product.currency,
                replaced_product_id=replaced_sku,
            )
            self._store.add(purchase)
            self._pending = purchase
            self._flow_in_process.set(True)

            log_billing_flow_change(
                product_id=sku,
                in_process=True,
                replaced_product_id=replaced_sku,
                context=str(context) if context is not None else None,
            )

        if self._settings.auto_complete_purchases:
            await self.complete_pending_purchase()
        return True

    async def complete_pending_purchase(self) -> Optional[PurchaseRecord]:
        """Finish the running billing flow successfully.

        Returns:
            The completed purchase, or None if no flow was in process
        """
        async with self._lock:
            purchase = self._pending
            if purchase is None:
                logger.info("billing_flow_nothing_pending")
                return None
            self._pending = None

            purchase.set_purchase_state(PurchaseState.PURCHASED, reason="billing_flow_completed")

            # Replace the other subscription tier in the same step so both are never held.
            if purchase.replaced_product_id:
                for held in self._store.get_active_by_product_id(purchase.replaced_product_id):
                    held.set_purchase_state(
                        PurchaseState.CANCELED, reason=f"replaced_by_{purchase.product_id}"
                    )
                self._set_owned(purchase.replaced_product_id, False, reason="replaced")

            self._set_owned(purchase.product_id, True, reason="purchase")
            self._flow_in_process.set(False)
            log_billing_flow_change(product_id=purchase.product_id, in_process=False, outcome="purchased")

            self._purchase_events.send(
                PurchaseEvent(
                    product_id=purchase.product_id,
                    purchase_token=purchase.token,
                    order_id=purchase.order_id,
                    event_time_millis=self._now_millis(),
                )
            )

            if purchase.product_id in AUTO_CONSUME_SKUS and self._products.is_consumable(
                purchase.product_id
            ):
                self._consume(purchase)

            return purchase

    async def cancel_pending_purchase(self) -> Optional[PurchaseRecord]:
        """Abort the running billing flow (user cancelled).

        Returns:
            The cancelled purchase, or None if no flow was in process
        """
        async with self._lock:
            purchase = self._pending
            if purchase is None:
                logger.info("billing_flow_nothing_pending")
                return None
            self._pending = None
            purchase.set_purchase_state(PurchaseState.CANCELED, reason="user_canceled")
            self._flow_in_process.set(False)
            log_billing_flow_change(product_id=purchase.product_id, in_process=False, outcome="canceled")
            return purchase

    # Consumption

    def _consume(self, purchase: PurchaseRecord) -> None:
        purchase.consume()
        still_owned = bool(self._store.get_active_by_product_id(purchase.product_id))
        self._set_owned(purchase.product_id, still_owned, reason="consumed")
        self._consumed_events.send(
            ConsumedEvent(
                product_id=purchase.product_id,
                purchase_token=purchase.token,
                event_time_millis=self._now_millis(),
            )
        )

    async def consume_inapp_purchase(self, sku: str) -> None:
        if self._products.is_subscription(sku):
            logger.warning("consume_subscription_refused", product_id=sku)
            return

        async with self._lock:
            held = self._store.get_active_by_product_id(sku)
            if not held:
                logger.warning("consume_nothing_owned", product_id=sku)
                return
            for purchase in held:
                self._consume(purchase)

    async def refresh_purchases(self) -> None:
        async with self._lock:
            for sku in self._purchased:
                owned = bool(self._store.get_active_by_product_id(sku))
                self._set_owned(sku, owned, reason="refresh")
            logger.info("purchases_refreshed", purchases=self._store.count())

    async def reset(self) -> None:
        """Forget every purchase and abort any running flow."""
        async with self._lock:
            self._store.clear()
            self._pending = None
            self._flow_in_process.set(False)
            for sku in self._purchased:
                self._set_owned(sku, False, reason="reset")
            logger.info("billing_source_reset")

    def shutdown(self) -> None:
        """End all event streams."""
        self._purchase_events.close()
        self._consumed_events.close()
        logger.info("billing_source_shutdown_complete")
