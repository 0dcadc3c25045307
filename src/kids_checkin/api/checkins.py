"""Check-in request endpoints for parents and staff.

Identity headers are set by the upstream gateway after authentication.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, assert_never
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Header, HTTPException, Request, status

from kids_checkin.api.checkin_models import (
    ApproveCheckInBody,
    CheckInApprovalResponse,
    CheckInRejectionResponse,
    CheckInRequestDetailsResponse,
    CheckInRequestResponse,
    CreateCheckInRequestBody,
    RejectCheckInBody,
)
from kids_checkin.domain.checkins import CheckInErrorKind, CheckInFailure

if TYPE_CHECKING:
    from kids_checkin.containers import AppContainer

router = APIRouter(prefix="/api/kids/checkin-requests", tags=["checkin-requests"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def status_for(kind: CheckInErrorKind) -> int:
    """Map a failure kind to its HTTP status code."""
    match kind:
        case CheckInErrorKind.NOT_AUTHORIZED:
            return status.HTTP_403_FORBIDDEN
        case CheckInErrorKind.NOT_FOUND:
            return status.HTTP_404_NOT_FOUND
        case CheckInErrorKind.WINDOW_CLOSED | CheckInErrorKind.AGE_INELIGIBLE:
            return status.HTTP_400_BAD_REQUEST
        case (
            CheckInErrorKind.CAPACITY_EXCEEDED
            | CheckInErrorKind.ALREADY_CHECKED_IN
            | CheckInErrorKind.INVALID_STATE
        ):
            return status.HTTP_409_CONFLICT
        case CheckInErrorKind.EXPIRED:
            return status.HTTP_410_GONE
        case _:
            assert_never(kind)


def _raise_failure(failure: CheckInFailure) -> NoReturn:
    raise HTTPException(
        status_code=status_for(failure.kind),
        detail={"error": failure.kind.value, "message": failure.message},
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_check_in_request(
    body: CreateCheckInRequestBody,
    request: Request,
    x_parent_id: UUID = Header(),
) -> CheckInRequestResponse:
    """Create a check-in request, or return the child's pending one."""
    service = _container(request).checkin_service
    result = service.create(x_parent_id, body.child_id, body.service_id, body.notes)
    if isinstance(result, CheckInFailure):
        _raise_failure(result)
    return CheckInRequestResponse.from_request(result, service.clock())


@router.get("/active")
async def list_active_requests(
    request: Request, x_parent_id: UUID = Header()
) -> list[CheckInRequestResponse]:
    """Return the parent's pending check-in requests."""
    service = _container(request).checkin_service
    now = service.clock()
    return [
        CheckInRequestResponse.from_request(item, now)
        for item in service.list_active(x_parent_id)
    ]


@router.get("/services/{service_id}/pending")
async def list_pending_for_service(
    service_id: UUID, request: Request, x_staff_id: UUID = Header()
) -> list[CheckInRequestResponse]:
    """Return the queue of pending requests for one kids service."""
    service = _container(request).checkin_service
    result = service.list_pending_for_service(service_id, x_staff_id)
    if isinstance(result, CheckInFailure):
        _raise_failure(result)
    now = service.clock()
    return [CheckInRequestResponse.from_request(item, now) for item in result]


@router.get("/token/{token}")
async def get_request_by_token(
    token: str, request: Request
) -> CheckInRequestDetailsResponse:
    """Return the request behind a scanned QR code."""
    result = _container(request).checkin_service.resolve_by_token(token)
    if isinstance(result, CheckInFailure):
        _raise_failure(result)
    return CheckInRequestDetailsResponse.from_details(result)


@router.post("/token/{token}/approve")
async def approve_check_in(
    token: str,
    request: Request,
    body: ApproveCheckInBody | None = None,
    x_staff_id: UUID = Header(),
) -> CheckInApprovalResponse:
    """Approve a pending request and check the child in."""
    notes = body.notes if body else None
    result = _container(request).checkin_service.approve(token, x_staff_id, notes)
    if isinstance(result, CheckInFailure):
        _raise_failure(result)
    return CheckInApprovalResponse.from_approval(result)


@router.post("/token/{token}/reject")
async def reject_check_in(
    token: str,
    body: RejectCheckInBody,
    request: Request,
    x_staff_id: UUID = Header(),
) -> CheckInRejectionResponse:
    """Reject a pending request with a reason."""
    result = _container(request).checkin_service.reject(
        token, x_staff_id, body.reason
    )
    if isinstance(result, CheckInFailure):
        _raise_failure(result)
    return CheckInRejectionResponse.from_rejection(result)


@router.delete("/{request_id}")
async def cancel_check_in_request(
    request_id: UUID, request: Request, x_parent_id: UUID = Header()
) -> CheckInRequestResponse:
    """Cancel a pending request on behalf of the parent."""
    service = _container(request).checkin_service
    result = service.cancel(request_id, x_parent_id)
    if isinstance(result, CheckInFailure):
        _raise_failure(result)
    return CheckInRequestResponse.from_request(result, service.clock())
