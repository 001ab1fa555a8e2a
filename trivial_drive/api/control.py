"""Control API for test orchestration of the local billing source.

Implements:
- POST /emulator/purchases/complete - Complete the running billing flow
- POST /emulator/purchases/cancel - Cancel the running billing flow
- POST /emulator/debug/consume-premium - Consume the premium upgrade
- POST /emulator/refresh - Re-publish purchase state
- POST /emulator/reset - Forget all purchases and refill the tank
"""

from typing import Optional

from fastapi import APIRouter, Depends

from trivial_drive.api.dependencies import get_services
from trivial_drive.container import ServiceContainer
from trivial_drive.logging_config import get_logger
from trivial_drive.models import PurchaseFlowResponse, PurchaseRecord, StatusResponse

logger = get_logger(__name__)
router = APIRouter(tags=["Control API"], prefix="/emulator")


def _flow_response(purchase: Optional[PurchaseRecord], completed: bool, action: str) -> PurchaseFlowResponse:
    if purchase is None:
        return PurchaseFlowResponse(completed=False, message="No billing flow in process")
    return PurchaseFlowResponse(
        sku=purchase.product_id,
        token=purchase.token,
        order_id=purchase.order_id,
        completed=completed,
        message=f"Billing flow {action}",
    )


@router.post(
    "/purchases/complete",
    response_model=PurchaseFlowResponse,
    summary="Complete pending purchase",
)
async def complete_purchase(
    services: ServiceContainer = Depends(get_services),
) -> PurchaseFlowResponse:
    """Simulate the user finishing the billing flow successfully."""
    purchase = await services.billing_source.complete_pending_purchase()
    if purchase is not None:
        logger.info(
            "complete_purchase_success",
            product_id=purchase.product_id,
            token=purchase.token[:20] + "...",
            order_id=purchase.order_id,
        )
    return _flow_response(purchase, completed=purchase is not None, action="completed")


@router.post(
    "/purchases/cancel",
    response_model=PurchaseFlowResponse,
    summary="Cancel pending purchase",
)
async def cancel_purchase(
    services: ServiceContainer = Depends(get_services),
) -> PurchaseFlowResponse:
    """Simulate the user backing out of the billing flow."""
    purchase = await services.billing_source.cancel_pending_purchase()
    return _flow_response(purchase, completed=False, action="canceled")


@router.post(
    "/debug/consume-premium",
    response_model=StatusResponse,
    summary="Consume premium upgrade",
)
async def consume_premium(
    services: ServiceContainer = Depends(get_services),
) -> StatusResponse:
    """Consume the premium upgrade so it can be bought again."""
    await services.aggregator.debug_consume_premium()
    return StatusResponse(status="ok", message="Premium consumed")


@router.post("/refresh", response_model=StatusResponse, summary="Refresh purchases")
async def refresh_purchases(
    services: ServiceContainer = Depends(get_services),
) -> StatusResponse:
    """Re-publish ownership of every SKU from the purchase store."""
    await services.aggregator.refresh_purchases()
    return StatusResponse(status="ok", message="Purchases refreshed")


@router.post("/reset", response_model=StatusResponse, summary="Reset state")
async def reset_state(
    services: ServiceContainer = Depends(get_services),
) -> StatusResponse:
    """Forget every purchase and restore the initial gas level."""
    await services.billing_source.reset()
    await services.game_state_store.reset()
    logger.info("emulator_reset")
    return StatusResponse(status="ok", message="All purchases and game state reset")
