"""Request/response models for the game, product and control APIs."""

from typing import Optional
from pydantic import BaseModel, Field


class GameStateResponse(BaseModel):
    """Snapshot of the game as shown to the player."""

    gas_tank_level: int = Field(..., description="Effective gas level (infinite sentinel while subscribed)")
    gas_tank_infinite: bool = Field(..., description="True while an infinite gas subscription is active")
    is_premium: bool = Field(..., description="Premium upgrade owned")
    subscriptions: list[str] = Field(default_factory=list, description="Active subscription SKUs")
    billing_flow_in_process: bool = Field(..., description="A billing flow is currently running")

    class Config:
        json_schema_extra = {
            "example": {
                "gas_tank_level": 3,
                "gas_tank_infinite": False,
                "is_premium": False,
                "subscriptions": [],
                "billing_flow_in_process": False,
            }
        }


class DriveResponse(BaseModel):
    """Result of a drive command."""

    gas_tank_level: int = Field(..., description="Effective gas level after driving")
    message: str = Field(..., description="Message emitted by the drive")


class SkuDetailsResponse(BaseModel):
    """Product details for display."""

    sku: str
    title: str
    description: str
    price: str
    icon: str = Field(..., description="Drawable name of the product icon")
    can_purchase: bool
    is_purchased: bool


class BuyRequest(BaseModel):
    """Request to launch a billing flow."""

    context: Optional[str] = Field(
        None, description="Opaque caller context handed to the billing source (e.g. a screen id)"
    )


class BuyResponse(BaseModel):
    """Result of launching a billing flow."""

    sku: str
    launched: bool = Field(..., description="Whether the billing flow was started")
    replaced_sku: Optional[str] = Field(None, description="Subscription tier being replaced")
    message: str


class SendMessageRequest(BaseModel):
    """Request to broadcast a message to listeners."""

    message: str = Field(..., min_length=1, description="Message text")


class PurchaseFlowResponse(BaseModel):
    """Result of completing or cancelling a pending billing flow."""

    sku: Optional[str] = Field(None, description="SKU of the flow, null if none was pending")
    token: Optional[str] = Field(None, description="Purchase token")
    order_id: Optional[str] = Field(None, description="Order ID")
    completed: bool
    message: str


class StatusResponse(BaseModel):
    """Generic acknowledgement."""

    status: str
    message: str


class ErrorResponse(BaseModel):
    """Error body returned by the HTTP layer."""

    error: str
    message: str
