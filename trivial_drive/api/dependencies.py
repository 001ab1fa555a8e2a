"""FastAPI dependencies - hand the application's services to route handlers."""

from fastapi import Depends, HTTPException, Request

from trivial_drive.container import ServiceContainer
from trivial_drive.services.entitlement_aggregator import EntitlementAggregator
from trivial_drive.services.purchase_view_model import PurchaseViewModel


def get_services(request: Request) -> ServiceContainer:
    """Services built by the application lifespan."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=503,
            detail={"error": "Service unavailable", "message": "Services are not started"},
        )
    return services


def get_aggregator(services: ServiceContainer = Depends(get_services)) -> EntitlementAggregator:
    return services.aggregator


def get_view_model(services: ServiceContainer = Depends(get_services)) -> PurchaseViewModel:
    return services.view_model


def product_not_found(sku: str) -> HTTPException:
    """404 for an unknown SKU."""
    return HTTPException(
        status_code=404,
        detail={
            "error": "Product not found",
            "message": f"Product '{sku}' does not exist in the catalog",
        },
    )
