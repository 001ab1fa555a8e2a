"""Billing event models.

Emitted by the billing source and consumed by the entitlement aggregator.
"""

from pydantic import BaseModel, ConfigDict, Field


class PurchaseEvent(BaseModel):
    """A completed purchase transition for a single SKU."""

    model_config = ConfigDict(frozen=True)

    product_id: str = Field(..., description="SKU that was purchased")
    purchase_token: str = Field(..., description="Unique purchase token")
    order_id: str = Field(..., description="Order ID")
    event_time_millis: int = Field(..., description="Event timestamp (Unix millis)")


class ConsumedEvent(BaseModel):
    """A consumable purchase that has been consumed."""

    model_config = ConfigDict(frozen=True)

    product_id: str = Field(..., description="SKU that was consumed")
    purchase_token: str = Field(..., description="Token of the consumed purchase")
    event_time_millis: int = Field(..., description="Event timestamp (Unix millis)")
