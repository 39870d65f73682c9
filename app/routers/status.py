"""
Status routes - read-only server information.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.config import Settings
from app.dependencies import get_dispatcher, get_registry, get_settings
from app.dispatcher import RelayDispatcher
from app.models import (
    DefaultConfigResponse,
    FailureResponse,
    SensorReadingResponse,
    StatusResponse,
)
from app.registry import ConnectionRegistry

router = APIRouter(tags=["Status"])


@router.get("/status", response_model=StatusResponse)
async def get_status(
    registry: ConnectionRegistry = Depends(get_registry),
) -> StatusResponse:
    """Server liveness and number of authenticated relay connections."""
    return StatusResponse(
        active_ws_clients=await registry.count(),
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/api/default", response_model=DefaultConfigResponse)
async def get_default_config(
    settings: Settings = Depends(get_settings),
) -> DefaultConfigResponse:
    """Default sensor configuration for boards without their own."""
    return DefaultConfigResponse(
        default_volt_threshold=settings.default_volt_threshold,
        default_board_id=settings.default_board_id,
    )


@router.get(
    "/api/sensor",
    response_model=SensorReadingResponse,
    responses={400: {"model": FailureResponse}, 404: {"model": FailureResponse}},
)
async def get_sensor_reading(
    boardId: Optional[str] = None,
    dispatcher: RelayDispatcher = Depends(get_dispatcher),
):
    """Latest voltage relayed for a board since the server started."""
    if not boardId:
        return JSONResponse(
            status_code=400, content=FailureResponse(msg="Missing boardId").model_dump()
        )

    latest = dispatcher.latest_reading(boardId)
    if latest is None:
        return JSONResponse(
            status_code=404,
            content=FailureResponse(msg="No reading for boardId").model_dump(),
        )

    return SensorReadingResponse(
        board_id=latest.board_id,
        last_volt=latest.voltage,
        timestamp=latest.received_at,
    )
