"""Pydantic models for check-in request payloads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from kids_checkin.domain.checkins import (
    CheckInApproval,
    CheckInRejection,
    CheckInRequest,
    CheckInRequestDetails,
)


class CreateCheckInRequestBody(BaseModel):
    """Parent payload for requesting a check-in."""

    child_id: UUID
    service_id: UUID
    notes: str | None = Field(default=None, max_length=1000)


class ApproveCheckInBody(BaseModel):
    """Staff payload for approving a check-in."""

    notes: str | None = Field(default=None, max_length=1000)


class RejectCheckInBody(BaseModel):
    """Staff payload for rejecting a check-in."""

    reason: str = Field(min_length=1, max_length=1000)


class CheckInRequestResponse(BaseModel):
    """Check-in request as shown to the parent; the token is the QR payload."""

    id: UUID
    token: str
    qr_code_data: str
    child_id: UUID
    service_id: UUID
    requested_by: UUID
    status: str
    created_at: datetime
    expires_at: datetime
    expires_in_seconds: int
    is_expired: bool

    @classmethod
    def from_request(
        cls, request: CheckInRequest, now: datetime
    ) -> "CheckInRequestResponse":
        return cls(
            id=request.id,
            token=request.token,
            qr_code_data=request.token,
            child_id=request.child_id,
            service_id=request.service_id,
            requested_by=request.requested_by,
            status=request.status.value,
            created_at=request.created_at,
            expires_at=request.expires_at,
            expires_in_seconds=request.seconds_until_expiration(now),
            is_expired=request.is_expired(now),
        )


class CheckInRequestDetailsResponse(BaseModel):
    """What staff see after scanning a QR code."""

    id: UUID
    status: str
    child_id: UUID
    child_name: str
    service_id: UUID
    service_name: str
    requested_by: str | None
    created_at: datetime
    expires_at: datetime
    notes: str | None
    medical_notes: str | None
    allergies: str | None
    special_needs: str | None
    is_expired: bool
    can_be_processed: bool
    has_medical_alerts: bool
    has_allergies: bool
    has_special_needs: bool

    @classmethod
    def from_details(
        cls, details: CheckInRequestDetails
    ) -> "CheckInRequestDetailsResponse":
        request, child = details.request, details.child
        return cls(
            id=request.id,
            status=request.status.value,
            child_id=child.id,
            child_name=child.full_name,
            service_id=details.service.id,
            service_name=details.service.name,
            requested_by=(
                details.requested_by.full_name if details.requested_by else None
            ),
            created_at=request.created_at,
            expires_at=request.expires_at,
            notes=request.notes,
            medical_notes=child.medical_notes,
            allergies=child.allergies,
            special_needs=child.special_needs,
            is_expired=details.is_expired,
            can_be_processed=details.can_be_processed,
            has_medical_alerts=details.has_medical_alerts,
            has_allergies=details.has_allergies,
            has_special_needs=details.has_special_needs,
        )


class CheckInApprovalResponse(BaseModel):
    request_id: UUID
    attendance_id: UUID
    approved_by: str
    check_in_time: datetime
    message: str = "Check-in approved successfully"

    @classmethod
    def from_approval(cls, approval: CheckInApproval) -> "CheckInApprovalResponse":
        return cls(
            request_id=approval.request_id,
            attendance_id=approval.attendance_id,
            approved_by=approval.approved_by,
            check_in_time=approval.check_in_time,
        )


class CheckInRejectionResponse(BaseModel):
    request_id: UUID
    rejected_by: str
    reason: str
    message: str = "Check-in request has been rejected"

    @classmethod
    def from_rejection(
        cls, rejection: CheckInRejection
    ) -> "CheckInRejectionResponse":
        return cls(
            request_id=rejection.request_id,
            rejected_by=rejection.rejected_by,
            reason=rejection.reason,
        )
