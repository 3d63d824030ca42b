import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.attendance import OfficerAttendance, StaffAttendance
from app.models.officer import Officer
from app.models.user import User

logger = logging.getLogger(__name__)

_FIELDS = ("status", "check_in_time", "check_out_time", "hours_worked", "overtime_hours", "notes")


def _apply(row, payload) -> None:
    data = payload.model_dump()
    for name in _FIELDS:
        value = data.get(name)
        if hasattr(value, "value"):
            value = value.value
        setattr(row, name, value if value is not None else getattr(row, name))


def upsert_officer_attendance(db: Session, payload) -> OfficerAttendance:
    """One row per officer per day; a second mark for the same day overwrites the first."""
    officer = db.query(Officer).filter(Officer.id == payload.officer_id).first()
    if not officer:
        raise NotFoundError("Officer not found")

    row = db.query(OfficerAttendance).filter(
        OfficerAttendance.officer_id == payload.officer_id,
        OfficerAttendance.date == payload.date,
    ).first()
    if row is None:
        row = OfficerAttendance(officer_id=payload.officer_id, date=payload.date, hours_worked=0.0, overtime_hours=0.0)
        db.add(row)

    institution_id: Optional[int] = payload.institution_id
    if institution_id is None and officer.home_institution:
        institution_id = officer.home_institution.id
    row.institution_id = institution_id
    _apply(row, payload)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    return row


def upsert_staff_attendance(db: Session, payload) -> StaffAttendance:
    if not db.query(User).filter(User.id == payload.user_id).first():
        raise NotFoundError("Staff member not found")

    row = db.query(StaffAttendance).filter(
        StaffAttendance.user_id == payload.user_id,
        StaffAttendance.date == payload.date,
    ).first()
    if row is None:
        row = StaffAttendance(user_id=payload.user_id, date=payload.date, hours_worked=0.0, overtime_hours=0.0)
        db.add(row)
    _apply(row, payload)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    return row
