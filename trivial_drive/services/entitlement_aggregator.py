"""Entitlement aggregator - unified game state for the presentation layer.

Combines the billing source with the game state store:
- Effective gas tank level (infinite while a subscription is active)
- Purchasability of each SKU, with gas blocked on a full tank
- Drive / buy / consume commands
- Purchase and consumption listeners that post messages and refill the tank

Commands and listener handlers run one at a time under the aggregator's lock,
so a drive's read-then-write of the gas level is never interleaved.
"""

import asyncio
from collections import deque
from contextlib import aclosing
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from trivial_drive.logging_config import bind_context, get_logger
from trivial_drive.models import (
    SKU_GAS,
    SKU_INFINITE_GAS_MONTHLY,
    SKU_INFINITE_GAS_YEARLY,
    SKU_PREMIUM,
    ConsumedEvent,
    GameConfig,
    MessagesConfig,
    PurchaseEvent,
)
from trivial_drive.repositories.game_state_store import GameStateStore
from trivial_drive.services.billing_source import BillingSource
from trivial_drive.services.message_channel import MessageChannel
from trivial_drive.utils.observable import Observable, ObservableValue, Subscription, combine_latest

logger = get_logger(__name__)

NEW_PURCHASES_LISTENER = "new_purchases"
CONSUMED_PURCHASES_LISTENER = "consumed_purchases"

# Purchase tokens remembered for de-duplication; older ones are forgotten.
DEFAULT_DEDUPLICATION_WINDOW = 1024

# Subscription tiers replace each other on purchase.
SUBSCRIPTION_REPLACEMENTS = {
    SKU_INFINITE_GAS_MONTHLY: SKU_INFINITE_GAS_YEARLY,
    SKU_INFINITE_GAS_YEARLY: SKU_INFINITE_GAS_MONTHLY,
}


class ListenerStatus(str, Enum):
    """Lifecycle of a background billing listener."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class EntitlementAggregator:
    """Merges billing and game state into the values the UI shows.

    Owns two listener tasks for its lifetime: one turns new purchases into
    messages, the other refills the tank when gas is consumed. Use
    ``start()`` / ``shutdown()`` or ``async with``.

    Args:
        billing_source: Billing backend
        game_state_store: Persisted gas level
        message_channel: Channel messages are posted to (a new one if missing)
        messages: Message texts (defaults if missing)
        game_settings: Gas tank bounds (defaults if missing)
        deduplicate_purchases: Ignore purchase events whose token was already handled
        deduplication_window: Number of recent purchase tokens remembered
    """

    def __init__(
        self,
        billing_source: BillingSource,
        game_state_store: GameStateStore,
        message_channel: Optional[MessageChannel] = None,
        messages: Optional[MessagesConfig] = None,
        game_settings: Optional[GameConfig] = None,
        deduplicate_purchases: bool = True,
        deduplication_window: int = DEFAULT_DEDUPLICATION_WINDOW,
    ) -> None:
        if deduplication_window < 1:
            raise ValueError("deduplication_window must be at least 1")
        self._billing = billing_source
        self._game_state = game_state_store
        self._messages = message_channel if message_channel is not None else MessageChannel()
        self._texts = messages or MessagesConfig()
        self._settings = game_settings or GameConfig()
        self._deduplicate_purchases = deduplicate_purchases

        self._lock = asyncio.Lock()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._streams: list[Subscription[Any]] = []
        self._handled_tokens: set[str] = set()
        self._token_order: deque[str] = deque(maxlen=deduplication_window)
        self._listener_status: Dict[str, ObservableValue[ListenerStatus]] = {
            NEW_PURCHASES_LISTENER: ObservableValue(ListenerStatus.STOPPED),
            CONSUMED_PURCHASES_LISTENER: ObservableValue(ListenerStatus.STOPPED),
        }

        self._purchase_messages = {
            SKU_GAS: self._texts.more_gas_acquired,
            SKU_PREMIUM: self._texts.premium,
            SKU_INFINITE_GAS_MONTHLY: self._texts.subscribed,
        }

        self._gas_tank_level = combine_latest(
            self._game_state.gas_tank_level(),
            self._billing.is_purchased(SKU_INFINITE_GAS_MONTHLY),
            self._billing.is_purchased(SKU_INFINITE_GAS_YEARLY),
            transform=self._effective_gas_level,
        )

    # Lifecycle

    async def start(self) -> None:
        """Start the purchase and consumption listeners."""
        if self._tasks:
            return

        # Subscribe before the tasks run so no event is missed in between.
        self._spawn_listener(
            NEW_PURCHASES_LISTENER, self._billing.new_purchases(), self._on_new_purchase
        )
        self._spawn_listener(
            CONSUMED_PURCHASES_LISTENER,
            self._billing.consumed_purchases(),
            self._on_consumed_purchase,
        )
        # Let the listener tasks reach their first await.
        await asyncio.sleep(0)
        logger.info("entitlement_aggregator_started", listeners=list(self._tasks))

    async def shutdown(self) -> None:
        """Cancel the listeners and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for stream in self._streams:
            await stream.aclose()
        self._streams.clear()
        for status in self._listener_status.values():
            if status.value in (ListenerStatus.STARTING, ListenerStatus.RUNNING):
                status.set(ListenerStatus.STOPPED)
        logger.info("entitlement_aggregator_stopped")

    async def __aenter__(self) -> "EntitlementAggregator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    def _spawn_listener(
        self,
        name: str,
        events: Subscription[Any],
        handler: Callable[[Any], Awaitable[None]],
    ) -> None:
        self._streams.append(events)
        self._listener_status[name].set(ListenerStatus.STARTING)
        self._tasks[name] = asyncio.create_task(
            self._run_listener(name, events, handler), name=f"trivial-drive-{name}"
        )

    async def _run_listener(
        self,
        name: str,
        events: Subscription[Any],
        handler: Callable[[Any], Awaitable[None]],
    ) -> None:
        # Each task runs in its own context copy, so the binding stays local to it.
        bind_context(listener=name)
        status = self._listener_status[name]
        status.set(ListenerStatus.RUNNING)
        logger.debug("listener_started")
        try:
            async with aclosing(events):
                async for event in events:
                    await handler(event)
        except asyncio.CancelledError:
            status.set(ListenerStatus.STOPPED)
            logger.debug("listener_cancelled")
            raise
        except Exception as e:
            # The listener is not restarted; the failure is visible through its status.
            status.set(ListenerStatus.FAILED)
            logger.error(
                "listener_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return
        status.set(ListenerStatus.STOPPED)
        logger.info("listener_completed")

    def listener_status(self, name: str) -> Observable[ListenerStatus]:
        """Observable status of a listener (``new_purchases`` or ``consumed_purchases``)."""
        return self._listener_status[name]

    def listener_statuses(self) -> Dict[str, ListenerStatus]:
        """Current status of every listener."""
        return {name: status.value for name, status in self._listener_status.items()}

    @property
    def is_healthy(self) -> bool:
        """True while both listeners are running."""
        return all(status.value == ListenerStatus.RUNNING for status in self._listener_status.values())

    # Listener handlers

    async def _on_new_purchase(self, event: PurchaseEvent) -> None:
        logger.debug("purchase_event_received", product_id=event.product_id, order_id=event.order_id)
        async with self._lock:
            if self._deduplicate_purchases:
                if event.purchase_token in self._handled_tokens:
                    logger.info(
                        "purchase_event_duplicate",
                        product_id=event.product_id,
                        token=event.purchase_token[:20] + "...",
                    )
                    return
                self._remember_token(event.purchase_token)

            message = self._purchase_messages.get(event.product_id)
            if message is None:
                logger.debug("purchase_event_unrecognized", product_id=event.product_id)
                return
            self._messages.send(message)

    def _remember_token(self, token: str) -> None:
        if len(self._token_order) == self._token_order.maxlen:
            self._handled_tokens.discard(self._token_order[0])
        self._token_order.append(token)
        self._handled_tokens.add(token)

    async def _on_consumed_purchase(self, event: ConsumedEvent) -> None:
        if event.product_id != SKU_GAS:
            return
        async with self._lock:
            added = await self._game_state.increment_gas(self._settings.gas_tank_max)
            logger.info("gas_refilled", added=added, token=event.purchase_token[:20] + "...")

    # Derived values

    def _effective_gas_level(self, gas_level: int, monthly: bool, yearly: bool) -> int:
        if monthly or yearly:
            return self._settings.gas_tank_infinite
        return gas_level

    def gas_tank_level(self) -> Observable[int]:
        """Gas level as shown to the player; the infinite sentinel while subscribed."""
        return self._gas_tank_level

    def is_purchased(self, sku: str) -> Observable[bool]:
        return self._billing.is_purchased(sku)

    def can_purchase(self, sku: str) -> Observable[bool]:
        """Whether the SKU can be bought now.

        Gas additionally needs room in the tank: it is blocked on a full tank
        and while a subscription gives infinite gas.
        """
        if sku == SKU_GAS:
            return combine_latest(
                self._billing.can_purchase(sku),
                self._gas_tank_level,
                transform=lambda can_purchase, level: can_purchase
                and level < self._settings.gas_tank_max,
            )
        return self._billing.can_purchase(sku)

    def billing_flow_in_process(self) -> Observable[bool]:
        return self._billing.billing_flow_in_process()

    def get_sku_title(self, sku: str) -> Observable[str]:
        return self._billing.get_sku_title(sku)

    def get_sku_price(self, sku: str) -> Observable[str]:
        return self._billing.get_sku_price(sku)

    def get_sku_description(self, sku: str) -> Observable[str]:
        return self._billing.get_sku_description(sku)

    # Commands

    async def drive(self) -> str:
        """Use one unit of gas unless subscribed.

        Returns:
            The message posted for this drive
        """
        async with self._lock:
            gas_level = await self._gas_tank_level.first()
            if gas_level == self._settings.gas_tank_infinite:
                message = self._texts.infinite_drive
            elif gas_level == self._settings.gas_tank_min:
                message = self._texts.out_of_gas
            else:
                used = await self._game_state.decrement_gas(1)
                new_level = gas_level - used
                logger.debug("drove", old_level=gas_level, new_level=new_level)
                if new_level == self._settings.gas_tank_min:
                    message = self._texts.out_of_gas
                else:
                    message = self._texts.you_drove
            self._messages.send(message)
            return message

    @staticmethod
    def replacement_for(sku: str) -> Optional[str]:
        """Subscription tier a purchase of ``sku`` replaces, if any."""
        return SUBSCRIPTION_REPLACEMENTS.get(sku)

    async def buy_sku(self, context: Any, sku: str) -> bool:
        """Launch a billing flow, upgrading/downgrading between subscription tiers.

        Returns:
            Whether the flow was launched (the purchase itself arrives later)
        """
        old_sku = self.replacement_for(sku)
        async with self._lock:
            try:
                if old_sku is None:
                    launched = await self._billing.launch_billing_flow(context, sku)
                else:
                    launched = await self._billing.launch_billing_flow(context, sku, old_sku)
            except Exception as e:
                logger.error(
                    "billing_flow_launch_failed",
                    product_id=sku,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return False
        logger.info("billing_flow_requested", product_id=sku, replaced_sku=old_sku, launched=launched)
        return launched

    async def refresh_purchases(self) -> None:
        await self._billing.refresh_purchases()

    async def debug_consume_premium(self) -> None:
        """Consume the premium upgrade so it can be bought again (testing only)."""
        async with self._lock:
            await self._billing.consume_inapp_purchase(SKU_PREMIUM)

    # Messages

    @property
    def messages(self) -> MessageChannel:
        return self._messages

    def send_message(self, message: str) -> None:
        self._messages.send(message)
