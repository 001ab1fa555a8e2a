"""Purchase models - purchases held by the local billing source.

Represents pending and completed purchases and their state.
"""

from enum import IntEnum
from typing import Optional
from pydantic import BaseModel, Field


class PurchaseState(IntEnum):
    """Purchase state."""

    PURCHASED = 0  # Purchase completed
    CANCELED = 1  # Purchase canceled or replaced
    PENDING = 2  # Billing flow launched, not yet completed


class ConsumptionState(IntEnum):
    """Consumption state for one-time products."""

    NOT_CONSUMED = 0
    CONSUMED = 1


class PurchaseRecord(BaseModel):
    """Internal record for a purchase made through the local billing source."""

    token: str = Field(..., description="Unique purchase token")
    product_id: str = Field(..., description="SKU")
    order_id: str = Field(..., description="Unique order ID")

    purchase_state: PurchaseState = Field(default=PurchaseState.PENDING, description="Purchase state")
    consumption_state: ConsumptionState = Field(
        default=ConsumptionState.NOT_CONSUMED, description="Consumption state"
    )

    purchase_time_millis: int = Field(..., description="Purchase time (Unix millis)")
    price_amount_micros: int = Field(..., description="Price paid in micros")
    price_currency_code: str = Field(default="USD", description="Currency code")

    # Subscription tier this purchase replaces (upgrade/downgrade)
    replaced_product_id: Optional[str] = Field(None, description="SKU replaced by this purchase")

    @property
    def is_active(self) -> bool:
        """True for a completed purchase that still grants its entitlement."""
        return (
            self.purchase_state == PurchaseState.PURCHASED
            and self.consumption_state == ConsumptionState.NOT_CONSUMED
        )

    def set_purchase_state(self, new_state: PurchaseState, reason: Optional[str] = None) -> None:
        """Change purchase state and log the transition.

        Args:
            new_state: New purchase state
            reason: Reason for state change
        """
        from trivial_drive.state_logger import log_purchase_state_change

        old_state = self.purchase_state
        if old_state != new_state:
            self.purchase_state = new_state
            log_purchase_state_change(
                token=self.token,
                product_id=self.product_id,
                old_state=old_state.name,
                new_state=new_state.name,
                reason=reason,
            )

    def consume(self) -> None:
        """Mark purchase as consumed."""
        from trivial_drive.state_logger import log_consumption_change

        old_state = self.consumption_state
        if old_state != ConsumptionState.CONSUMED:
            self.consumption_state = ConsumptionState.CONSUMED
            log_consumption_change(
                token=self.token,
                product_id=self.product_id,
                old_state=old_state.name,
                new_state=ConsumptionState.CONSUMED.name,
            )

    class Config:
        json_schema_extra = {
            "example": {
                "token": "trivialdrive_purchase_a1b2c3d4e5f6a7b8_1700000000000",
                "product_id": "gas",
                "order_id": "GPA.1234-5678-9012-3456",
                "purchase_state": PurchaseState.PURCHASED,
                "consumption_state": ConsumptionState.NOT_CONSUMED,
                "purchase_time_millis": 1700000000000,
                "price_amount_micros": 990000,
                "price_currency_code": "USD",
            }
        }
