"""Guest endpoints for reception and dashboard use.

Provides REST endpoints for:
- Listing guests (all, today's, currently in office)
- Dashboard statistics
- Manual guest registration
- Status changes, check-in and check-out
- Per-guest audit trail

Static paths (/today, /checked-in, /stats) are declared before
/{guest_id} so they are not captured as IDs.
"""

from fastapi import APIRouter, Depends, Query, Request
from starlette.status import HTTP_201_CREATED

from checkin.models.enums import GuestStatus, PerformedBy
from checkin.models.errors import ErrorResponse
from checkin.models.guest import GuestCreate, GuestStatusUpdate
from checkin.services.checkin_service import CheckinService, StatusChangeOutcome
from checkin_api.dependencies import get_checkin_service
from checkin_api.models.guests import (
    AuditLogResponse,
    GuestCreatedResponse,
    GuestListResponse,
    GuestResponse,
    GuestStatsResponse,
    StatusChangeResponse,
)

router = APIRouter(tags=["guests"])

NOT_FOUND = {404: {"description": "Guest not found", "model": ErrorResponse}}


def client_ip(request: Request) -> str | None:
    """Caller address for audit records."""
    return request.client.host if request.client else None


def _status_response(outcome: StatusChangeOutcome) -> StatusChangeResponse:
    return StatusChangeResponse(
        guest=outcome.guest,
        previous_status=outcome.event.previous_status,
        new_status=outcome.event.new_status,
        notifications=outcome.dispatch.results,
    )


@router.get(
    "/guests",
    summary="List guests",
    response_model=GuestListResponse,
)
async def list_guests(
    status: GuestStatus | None = Query(default=None, description="Filter by status"),
    limit: int | None = Query(default=None, ge=1, le=1000),
    service: CheckinService = Depends(get_checkin_service),
) -> GuestListResponse:
    guests = await service.list_guests(status=status, limit=limit)
    return GuestListResponse(guests=guests, count=len(guests))


@router.get(
    "/guests/today",
    summary="Guests visiting today",
    response_model=GuestListResponse,
)
async def todays_guests(
    service: CheckinService = Depends(get_checkin_service),
) -> GuestListResponse:
    guests = await service.todays_guests()
    return GuestListResponse(guests=guests, count=len(guests))


@router.get(
    "/guests/checked-in",
    summary="Guests currently in the office",
    response_model=GuestListResponse,
)
async def checked_in_guests(
    service: CheckinService = Depends(get_checkin_service),
) -> GuestListResponse:
    guests = await service.checked_in_guests()
    return GuestListResponse(guests=guests, count=len(guests))


@router.get(
    "/guests/stats",
    summary="Dashboard statistics",
    response_model=GuestStatsResponse,
)
async def guest_stats(
    service: CheckinService = Depends(get_checkin_service),
) -> GuestStatsResponse:
    return GuestStatsResponse(stats=await service.guest_stats())


@router.post(
    "/guests",
    summary="Register a guest at reception",
    description="""
Create a guest record manually. SMS consent is taken from the request and
recorded once; the guest and host are notified as for a form submission.
""",
    status_code=HTTP_201_CREATED,
    response_model=GuestCreatedResponse,
)
async def create_guest(
    data: GuestCreate,
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
) -> GuestCreatedResponse:
    outcome = await service.create_guest(data, ip_address=client_ip(request))
    return GuestCreatedResponse(guest=outcome.guest, notifications=outcome.dispatch.results)


@router.get(
    "/guests/{guest_id}",
    summary="Get a guest",
    response_model=GuestResponse,
    responses=NOT_FOUND,
)
async def get_guest(
    guest_id: str,
    service: CheckinService = Depends(get_checkin_service),
) -> GuestResponse:
    return GuestResponse(guest=await service.get_guest(guest_id))


@router.put(
    "/guests/{guest_id}/status",
    summary="Change a guest's status",
    description="""
Move a guest to any status. The source status is not validated, so
administrative corrections are allowed. Notification failures are reported
per channel and never undo the change.
""",
    response_model=StatusChangeResponse,
    responses=NOT_FOUND,
)
async def update_status(
    guest_id: str,
    update: GuestStatusUpdate,
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
) -> StatusChangeResponse:
    outcome = await service.update_status(
        guest_id,
        update.status,
        notes=update.notes,
        performed_by=PerformedBy.API,
        ip_address=client_ip(request),
    )
    return _status_response(outcome)


@router.post(
    "/guests/{guest_id}/check-in",
    summary="Check a guest in",
    response_model=StatusChangeResponse,
    responses=NOT_FOUND,
)
async def check_in(
    guest_id: str,
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
) -> StatusChangeResponse:
    return _status_response(await service.check_in(guest_id, ip_address=client_ip(request)))


@router.post(
    "/guests/{guest_id}/check-out",
    summary="Check a guest out",
    response_model=StatusChangeResponse,
    responses=NOT_FOUND,
)
async def check_out(
    guest_id: str,
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
) -> StatusChangeResponse:
    return _status_response(await service.check_out(guest_id, ip_address=client_ip(request)))


@router.get(
    "/guests/{guest_id}/audit",
    summary="Audit trail for one guest",
    response_model=AuditLogResponse,
    responses=NOT_FOUND,
)
async def guest_audit(
    guest_id: str,
    limit: int = Query(default=100, ge=1, le=1000),
    service: CheckinService = Depends(get_checkin_service),
) -> AuditLogResponse:
    await service.get_guest(guest_id)
    records = await service.audit_log(guest_id=guest_id, limit=limit)
    return AuditLogResponse(records=records, count=len(records))
