"""Product, game and billing configuration models.

Models from products.yaml configuration, plus the SKU constants shared by the
billing source and the entitlement aggregator.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator

# Gas tank bounds. INFINITE is a display value only, it is never persisted.
GAS_TANK_MIN = 0
GAS_TANK_MAX = 4
GAS_TANK_INFINITE = 5

# SKUs for non-subscription purchases
SKU_PREMIUM = "premium"
SKU_GAS = "gas"

# SKUs for subscription purchases (infinite gas)
SKU_INFINITE_GAS_MONTHLY = "infinite_gas_monthly"
SKU_INFINITE_GAS_YEARLY = "infinite_gas_yearly"

SUBSCRIPTION_SKUS = (SKU_INFINITE_GAS_MONTHLY, SKU_INFINITE_GAS_YEARLY)
AUTO_CONSUME_SKUS = (SKU_GAS,)


class ProductType(str, Enum):
    """Kind of purchasable item."""

    CONSUMABLE = "consumable"
    NON_CONSUMABLE = "non_consumable"
    SUBSCRIPTION = "subscription"


class ProductDefinition(BaseModel):
    """Product or subscription definition from configuration."""

    id: str = Field(..., description="SKU")
    type: ProductType = Field(..., description="consumable, non_consumable or subscription")
    title: str = Field(..., description="Human-readable title")
    description: str = Field(..., description="Product description")
    price_micros: int = Field(..., description="Price in micros (1,000,000 = $1.00)")
    currency: str = Field(default="USD", description="ISO 4217 currency code")
    billing_period: Optional[str] = Field(None, description="ISO 8601 duration (e.g., P1Y, P1M)")

    @property
    def formatted_price(self) -> str:
        """Price rendered for display, e.g. "$0.99" or "19.99 EUR"."""
        amount = self.price_micros / 1_000_000
        if self.currency == "USD":
            return f"${amount:.2f}"
        return f"{amount:.2f} {self.currency}"

    class Config:
        json_schema_extra = {
            "example": {
                "id": "infinite_gas_monthly",
                "type": "subscription",
                "title": "Infinite gas (monthly)",
                "description": "Never run out of gas. Billed monthly.",
                "price_micros": 1990000,
                "currency": "USD",
                "billing_period": "P1M",
            }
        }


class GameConfig(BaseModel):
    """Gas tank settings for the local game state."""

    gas_tank_min: int = Field(default=GAS_TANK_MIN, description="Empty tank level")
    gas_tank_max: int = Field(default=GAS_TANK_MAX, description="Full tank level")
    gas_tank_infinite: int = Field(
        default=GAS_TANK_INFINITE, description="Sentinel level shown while subscribed"
    )
    initial_gas_level: int = Field(default=GAS_TANK_MAX, description="Level of a new game")
    state_path: Optional[str] = Field(
        None, description="JSON file the gas level is persisted to; in-memory if unset"
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "GameConfig":
        if self.gas_tank_min >= self.gas_tank_max:
            raise ValueError("gas_tank_min must be lower than gas_tank_max")
        if self.gas_tank_infinite <= self.gas_tank_max:
            raise ValueError("gas_tank_infinite must be above gas_tank_max")
        if not self.gas_tank_min <= self.initial_gas_level <= self.gas_tank_max:
            raise ValueError("initial_gas_level must be within the tank bounds")
        return self


class MessagesConfig(BaseModel):
    """User-facing message texts."""

    more_gas_acquired: str = Field(default="Your gas tank is now full!")
    premium: str = Field(default="Thank you for upgrading to premium!")
    subscribed: str = Field(default="You have infinite gas now!")
    infinite_drive: str = Field(default="Vroooom! You have infinite gas, so you can drive forever.")
    out_of_gas: str = Field(default="Oh, no! You are out of gas! Buy some gas to keep driving.")
    you_drove: str = Field(default="Vroooom, you drove a few miles.")


class BillingConfig(BaseModel):
    """Local billing source behaviour."""

    auto_complete_purchases: bool = Field(
        default=False, description="Complete billing flows as soon as they are launched"
    )
    token_prefix: str = Field(default="trivialdrive", description="Prefix for purchase tokens")
    deduplicate_purchases: bool = Field(
        default=True, description="Ignore purchase events whose token was already handled"
    )
    deduplication_window: int = Field(
        default=1024, ge=1, description="Number of recent purchase tokens remembered for de-duplication"
    )


class ProductsConfig(BaseModel):
    """Complete products.yaml configuration."""

    products: list[ProductDefinition] = Field(default_factory=list, description="One-time product definitions")
    subscriptions: list[ProductDefinition] = Field(default_factory=list, description="Subscription definitions")
    default_package_name: str = Field(..., description="Application package name")
    game: GameConfig = Field(default_factory=GameConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)
    billing: BillingConfig = Field(default_factory=BillingConfig)
