"""Pydantic models for configuration, billing events, purchases and the HTTP API."""

# Product configuration models and SKU constants
from .product import (
    AUTO_CONSUME_SKUS,
    GAS_TANK_INFINITE,
    GAS_TANK_MAX,
    GAS_TANK_MIN,
    SKU_GAS,
    SKU_INFINITE_GAS_MONTHLY,
    SKU_INFINITE_GAS_YEARLY,
    SKU_PREMIUM,
    SUBSCRIPTION_SKUS,
    BillingConfig,
    GameConfig,
    MessagesConfig,
    ProductDefinition,
    ProductsConfig,
    ProductType,
)

# Purchase models
from .purchase import (
    ConsumptionState,
    PurchaseRecord,
    PurchaseState,
)

# Billing events
from .events import (
    ConsumedEvent,
    PurchaseEvent,
)

# API models
from .api import (
    BuyRequest,
    BuyResponse,
    DriveResponse,
    ErrorResponse,
    GameStateResponse,
    PurchaseFlowResponse,
    SendMessageRequest,
    SkuDetailsResponse,
    StatusResponse,
)

__all__ = [
    # Constants
    "GAS_TANK_MIN",
    "GAS_TANK_MAX",
    "GAS_TANK_INFINITE",
    "SKU_GAS",
    "SKU_PREMIUM",
    "SKU_INFINITE_GAS_MONTHLY",
    "SKU_INFINITE_GAS_YEARLY",
    "SUBSCRIPTION_SKUS",
    "AUTO_CONSUME_SKUS",
    # Product configuration
    "ProductType",
    "ProductDefinition",
    "GameConfig",
    "MessagesConfig",
    "BillingConfig",
    "ProductsConfig",
    # Purchase
    "PurchaseState",
    "ConsumptionState",
    "PurchaseRecord",
    # Events
    "PurchaseEvent",
    "ConsumedEvent",
    # API
    "GameStateResponse",
    "DriveResponse",
    "SkuDetailsResponse",
    "BuyRequest",
    "BuyResponse",
    "SendMessageRequest",
    "PurchaseFlowResponse",
    "StatusResponse",
    "ErrorResponse",
]
