"""Audit log endpoint."""

from fastapi import APIRouter, Depends, Query

from checkin.services.checkin_service import CheckinService
from checkin_api.dependencies import get_checkin_service
from checkin_api.models.guests import AuditLogResponse

router = APIRouter(tags=["audit"])


@router.get(
    "/audit-log",
    summary="Audit trail",
    description="Most recent audit records first, optionally for one guest.",
    response_model=AuditLogResponse,
)
async def audit_log(
    guest_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    service: CheckinService = Depends(get_checkin_service),
) -> AuditLogResponse:
    records = await service.audit_log(guest_id=guest_id, limit=limit)
    return AuditLogResponse(records=records, count=len(records))
