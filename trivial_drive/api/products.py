"""Products API - SKU details and purchases.

Implements:
- GET /products - Details of every SKU
- GET /products/{sku} - Details of one SKU
- POST /products/{sku}/buy - Launch a billing flow
"""

from typing import Optional

from fastapi import APIRouter, Depends

from trivial_drive.api.dependencies import get_view_model, product_not_found
from trivial_drive.logging_config import get_logger
from trivial_drive.models import BuyRequest, BuyResponse, SkuDetailsResponse
from trivial_drive.repositories.product_repository import ProductNotFoundError
from trivial_drive.services.entitlement_aggregator import EntitlementAggregator
from trivial_drive.services.purchase_view_model import PurchaseViewModel

logger = get_logger(__name__)
router = APIRouter(tags=["Products API"], prefix="/products")


@router.get("", response_model=list[SkuDetailsResponse], summary="List products")
async def list_products(
    view_model: PurchaseViewModel = Depends(get_view_model),
) -> list[SkuDetailsResponse]:
    """Title, price, description and purchasability of every SKU."""
    return [await view_model.sku_details_snapshot(sku) for sku in view_model.skus]


@router.get("/{sku}", response_model=SkuDetailsResponse, summary="Get product")
async def get_product(
    sku: str,
    view_model: PurchaseViewModel = Depends(get_view_model),
) -> SkuDetailsResponse:
    """Details of a single SKU.

    Raises:
        404: Product not found
    """
    try:
        return await view_model.sku_details_snapshot(sku)
    except ProductNotFoundError:
        logger.warning("product_not_found", product_id=sku)
        raise product_not_found(sku)


@router.post("/{sku}/buy", response_model=BuyResponse, summary="Buy product")
async def buy_product(
    sku: str,
    request: Optional[BuyRequest] = None,
    view_model: PurchaseViewModel = Depends(get_view_model),
) -> BuyResponse:
    """Launch a billing flow for the SKU.

    Buying one infinite gas tier replaces the other. The purchase completes
    asynchronously; watch the game state or the message stream.

    Raises:
        404: Product not found
    """
    if sku not in view_model.skus:
        logger.warning("product_not_found", product_id=sku)
        raise product_not_found(sku)

    context = request.context if request else None
    launched = await view_model.buy_sku(context, sku)
    return BuyResponse(
        sku=sku,
        launched=launched,
        replaced_sku=EntitlementAggregator.replacement_for(sku),
        message="Billing flow launched" if launched else "Billing flow could not be launched",
    )
