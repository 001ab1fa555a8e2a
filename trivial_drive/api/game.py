"""Game API - the presentation layer's view of the car.

Implements:
- GET /game/state - Gas level and entitlements
- POST /game/drive - Drive (uses one unit of gas unless subscribed)
- POST /game/messages - Broadcast a message to listeners
- GET /game/messages/stream - Server-sent events of game messages
"""

import json
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from trivial_drive.api.dependencies import get_aggregator, get_view_model
from trivial_drive.logging_config import get_logger
from trivial_drive.models import (
    DriveResponse,
    GameStateResponse,
    SendMessageRequest,
    StatusResponse,
)
from trivial_drive.services.entitlement_aggregator import EntitlementAggregator
from trivial_drive.services.purchase_view_model import PurchaseViewModel
from trivial_drive.utils.observable import Subscription

logger = get_logger(__name__)
router = APIRouter(tags=["Game API"], prefix="/game")


@router.get("/state", response_model=GameStateResponse, summary="Get game state")
async def get_game_state(
    view_model: PurchaseViewModel = Depends(get_view_model),
) -> GameStateResponse:
    """Current effective gas level and owned entitlements."""
    return await view_model.game_state()


@router.post("/drive", response_model=DriveResponse, summary="Drive")
async def drive(
    aggregator: EntitlementAggregator = Depends(get_aggregator),
) -> DriveResponse:
    """Drive the car.

    Uses one unit of gas unless an infinite gas subscription is active.
    The message is also broadcast to message stream listeners.
    """
    message = await aggregator.drive()
    gas_tank_level = await aggregator.gas_tank_level().first()
    logger.info("drive_request_completed", gas_tank_level=gas_tank_level)
    return DriveResponse(gas_tank_level=gas_tank_level, message=message)


@router.post(
    "/messages",
    response_model=StatusResponse,
    status_code=202,
    summary="Send message",
)
async def send_message(
    request: SendMessageRequest,
    aggregator: EntitlementAggregator = Depends(get_aggregator),
) -> StatusResponse:
    """Broadcast a message; it is dropped if nobody is listening."""
    aggregator.send_message(request.message)
    return StatusResponse(status="accepted", message="Message broadcast")


async def _message_events(subscription: Subscription[str]) -> AsyncIterator[str]:
    async with subscription:
        async for message in subscription:
            yield f"data: {json.dumps({'message': message})}\n\n"


@router.get("/messages/stream", summary="Stream messages")
async def stream_messages(
    aggregator: EntitlementAggregator = Depends(get_aggregator),
) -> StreamingResponse:
    """Server-sent events carrying every message posted from now on."""
    subscription = aggregator.messages.subscribe()
    logger.info("message_stream_opened", listeners=aggregator.messages.listener_count)
    return StreamingResponse(_message_events(subscription), media_type="text/event-stream")
