"""Purchase view model - what the product screen needs from the aggregator.

Echoes aggregator observables per SKU and adds the static icon of each product.
"""

from typing import Any

from trivial_drive.models import (
    SKU_GAS,
    SKU_INFINITE_GAS_MONTHLY,
    SKU_INFINITE_GAS_YEARLY,
    SKU_PREMIUM,
    SUBSCRIPTION_SKUS,
    GameStateResponse,
    SkuDetailsResponse,
)
from trivial_drive.repositories.product_repository import ProductNotFoundError
from trivial_drive.services.entitlement_aggregator import EntitlementAggregator
from trivial_drive.utils.observable import Observable

SKU_ICONS = {
    SKU_GAS: "buy_gas",
    SKU_PREMIUM: "upgrade_app",
    SKU_INFINITE_GAS_MONTHLY: "get_infinite_gas",
    SKU_INFINITE_GAS_YEARLY: "get_infinite_gas",
}


class SkuDetails:
    """Observable title, description and price of one SKU, plus its icon."""

    def __init__(self, sku: str, aggregator: EntitlementAggregator):
        if sku not in SKU_ICONS:
            raise ProductNotFoundError(f"Product not found: {sku}")
        self.sku = sku
        self.title: Observable[str] = aggregator.get_sku_title(sku)
        self.description: Observable[str] = aggregator.get_sku_description(sku)
        self.price: Observable[str] = aggregator.get_sku_price(sku)
        self.icon = SKU_ICONS[sku]


class PurchaseViewModel:
    """Business logic of the product screen on top of the entitlement aggregator."""

    def __init__(self, aggregator: EntitlementAggregator):
        self._aggregator = aggregator

    @property
    def skus(self) -> list[str]:
        return list(SKU_ICONS)

    def get_sku_details(self, sku: str) -> SkuDetails:
        return SkuDetails(sku, self._aggregator)

    def can_buy_sku(self, sku: str) -> Observable[bool]:
        return self._aggregator.can_purchase(sku)

    async def buy_sku(self, context: Any, sku: str) -> bool:
        """Start a billing flow for the SKU.

        Returns:
            Whether the flow could be started
        """
        return await self._aggregator.buy_sku(context, sku)

    @property
    def billing_flow_in_process(self) -> Observable[bool]:
        return self._aggregator.billing_flow_in_process()

    def send_message(self, message: str) -> None:
        self._aggregator.send_message(message)

    async def sku_details_snapshot(self, sku: str) -> SkuDetailsResponse:
        """Current details of a SKU for one-shot callers (HTTP)."""
        details = self.get_sku_details(sku)
        return SkuDetailsResponse(
            sku=sku,
            title=await details.title.first(),
            description=await details.description.first(),
            price=await details.price.first(),
            icon=details.icon,
            can_purchase=await self.can_buy_sku(sku).first(),
            is_purchased=await self._aggregator.is_purchased(sku).first(),
        )

    async def game_state(self) -> GameStateResponse:
        """Current gas level and entitlements."""
        gas_tank_level = await self._aggregator.gas_tank_level().first()
        subscriptions = [
            sku for sku in SUBSCRIPTION_SKUS if await self._aggregator.is_purchased(sku).first()
        ]
        return GameStateResponse(
            gas_tank_level=gas_tank_level,
            gas_tank_infinite=bool(subscriptions),
            is_premium=await self._aggregator.is_purchased(SKU_PREMIUM).first(),
            subscriptions=subscriptions,
            billing_flow_in_process=await self.billing_flow_in_process.first(),
        )
