from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.exceptions import AccessDeniedError
from app.core.permissions import Feature, has_capability
from app.database import get_db
from app.models.payroll import PayeeType
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_capability
from app.schemas.payroll import (
    AttendanceResponse,
    AttendanceSummaryResponse,
    OfficerAttendanceMark,
    StaffAttendanceMark,
)
from app.services import attendance_service, payroll_service

router = APIRouter(
    prefix="/attendance",
    tags=["attendance"]
)


def _can_see_attendance(user: User) -> bool:
    return (has_capability(user, Feature.PAYROLL_MANAGEMENT)
            or has_capability(user, Feature.OFFICER_MANAGEMENT))


@router.post("/officers", response_model=AttendanceResponse)
def mark_officer_attendance(
    payload: OfficerAttendanceMark,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    own = current_user.officer_profile is not None and current_user.officer_profile.id == payload.officer_id
    if not (own or _can_see_attendance(current_user)):
        raise AccessDeniedError("You cannot mark attendance for this officer")
    return attendance_service.upsert_officer_attendance(db, payload)


@router.post("/staff", response_model=AttendanceResponse)
def mark_staff_attendance(
    payload: StaffAttendanceMark,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not (current_user.id == payload.user_id or _can_see_attendance(current_user)):
        raise AccessDeniedError("You cannot mark attendance for this staff member")
    return attendance_service.upsert_staff_attendance(db, payload)


@router.get("/officers/{officer_id}/summary", response_model=AttendanceSummaryResponse)
def get_officer_summary(
    officer_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Feature.PAYROLL_MANAGEMENT, Feature.OFFICER_MANAGEMENT))
):
    return payroll_service.monthly_attendance_summary(db, PayeeType.OFFICER, officer_id, year, month)


@router.get("/staff/{user_id}/summary", response_model=AttendanceSummaryResponse)
def get_staff_summary(
    user_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Feature.PAYROLL_MANAGEMENT))
):
    return payroll_service.monthly_attendance_summary(db, PayeeType.STAFF, user_id, year, month)
