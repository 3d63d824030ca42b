from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.exceptions import AccessDeniedError
from app.core.permissions import Feature, has_capability
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user
from app.schemas.substitute import AffectedSlot, AvailableSubstitute
from app.services import substitute_service

router = APIRouter(
    prefix="/substitutes",
    tags=["substitutes"]
)


def _check_officer_access(user: User, officer_id: int) -> None:
    own = user.officer_profile is not None and user.officer_profile.id == officer_id
    if not (own
            or has_capability(user, Feature.LEAVE_APPROVALS)
            or has_capability(user, Feature.OFFICER_MANAGEMENT)):
        raise AccessDeniedError("You cannot view another officer's timetable")


def _check_institution_access(user: User, institution_id: int) -> None:
    officer = user.officer_profile
    assigned = officer is not None and institution_id in officer.assigned_institution_ids
    if not (assigned
            or has_capability(user, Feature.LEAVE_APPROVALS)
            or has_capability(user, Feature.OFFICER_MANAGEMENT)):
        raise AccessDeniedError("You cannot list officers of this institution")


@router.get("/affected-slots", response_model=List[AffectedSlot])
def get_affected_slots(
    officer_id: int,
    institution_id: int,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Timetable slots the officer holds between start_date and end_date, inclusive."""
    _check_officer_access(current_user, officer_id)
    return substitute_service.get_affected_slots(db, officer_id, institution_id, start_date, end_date)


@router.get("/available", response_model=List[AvailableSubstitute])
def get_available_substitutes(
    institution_id: int,
    day: str,
    period_id: int,
    exclude_officer_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Officers with a class at this day/period are listed with is_available=false."""
    _check_institution_access(current_user, institution_id)
    return substitute_service.get_available_substitutes(db, institution_id, day, period_id, exclude_officer_id)


@router.get("/officers", response_model=List[AvailableSubstitute])
def get_institution_officers(
    institution_id: int,
    exclude_officer_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _check_institution_access(current_user, institution_id)
    return substitute_service.get_all_institution_officers(db, institution_id, exclude_officer_id)
