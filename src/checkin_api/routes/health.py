"""Health check endpoint."""

import datetime as dt
from typing import Any

from fastapi import APIRouter, Depends

from checkin.services.checkin_service import CheckinService
from checkin_api.dependencies import get_checkin_service, storage_backend

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Service health",
    description="Reports configured storage backend and which notification channels are enabled.",
)
async def health(
    service: CheckinService = Depends(get_checkin_service),
) -> dict[str, Any]:
    dispatcher = service.dispatcher
    return {
        "status": "ok",
        "service": "visitor-checkin",
        "timestamp": dt.datetime.now(dt.UTC).isoformat(),
        "storage": storage_backend(),
        "channels": {
            "sms": dispatcher.sms is not None,
            "slack": dispatcher.slack is not None,
        },
    }
