from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.permissions import Feature
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import require_capability
from app.schemas.leave import ApproveRequest, CalendarLeave, LeaveApplicationResponse, RejectRequest
from app.services import leave_service

router = APIRouter(
    prefix="/leave",
    tags=["leave-manager"]
)

approver = require_capability(Feature.LEAVE_APPROVALS)


@router.get("/approvals/pending", response_model=List[LeaveApplicationResponse])
def get_pending_approvals(
    db: Session = Depends(get_db),
    current_user: User = Depends(approver)
):
    """Applications waiting at the caller's approval stage."""
    return leave_service.list_pending_for(db, current_user)


@router.post("/approvals/{application_id}/approve", response_model=LeaveApplicationResponse)
def approve_leave(
    application_id: int,
    payload: ApproveRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(approver)
):
    return leave_service.approve(db, current_user, application_id, payload.comments, payload.version)


@router.post("/approvals/{application_id}/reject", response_model=LeaveApplicationResponse)
def reject_leave(
    application_id: int,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(approver)
):
    return leave_service.reject(db, current_user, application_id, payload.reason, payload.version)


@router.get("/calendar", response_model=List[CalendarLeave])
def get_leave_calendar(
    start: date,
    end: date,
    institution_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Feature.LEAVE_APPROVALS, Feature.OFFICER_MANAGEMENT))
):
    """Approved leave overlapping [start, end]."""
    applications = leave_service.approved_calendar(db, start, end, institution_id)
    return [
        CalendarLeave(
            id=app.id,
            officer_id=app.officer_id,
            officer_name=app.officer_name,
            applicant_type=app.applicant_type,
            institution_id=app.institution_id,
            start_date=app.start_date,
            end_date=app.end_date,
            leave_type=app.leave_type,
            total_days=app.total_days,
            days_in_range=leave_service.leave_days_in_range(app, start, end),
        )
        for app in applications
    ]


@router.get("/on-leave", response_model=List[CalendarLeave])
def get_officers_on_leave(
    on_date: Optional[date] = None,
    institution_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Feature.LEAVE_APPROVALS, Feature.OFFICER_MANAGEMENT))
):
    on_date = on_date or date.today()
    applications = leave_service.officers_on_leave(db, on_date, institution_id)
    return [
        CalendarLeave(
            id=app.id,
            officer_id=app.officer_id,
            officer_name=app.officer_name,
            applicant_type=app.applicant_type,
            institution_id=app.institution_id,
            start_date=app.start_date,
            end_date=app.end_date,
            leave_type=app.leave_type,
            total_days=app.total_days,
            days_in_range=[on_date],
        )
        for app in applications
    ]
