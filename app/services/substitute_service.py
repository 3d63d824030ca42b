"""
Substitute Slot Resolver

Finds the timetable slots an officer holds during a leave window and lists
replacement officers for them. Availability is advisory: an officer who
already teaches at the same day/period is flagged, never excluded, and may
still be assigned.
"""
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from app.models.institution import Institution, InstitutionPeriod, TimetableAssignment
from app.models.leave_application import (
    ApplicantType,
    LeaveApplication,
    LeaveStatus,
    LeaveSubstituteAssignment,
)
from app.models.officer import Officer, OfficerStatus, officer_institutions

logger = logging.getLogger(__name__)

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DAY_ALIASES = {
    "mon": "monday",
    "tue": "tuesday",
    "tues": "tuesday",
    "wed": "wednesday",
    "thu": "thursday",
    "thur": "thursday",
    "thurs": "thursday",
    "fri": "friday",
    "sat": "saturday",
    "sun": "sunday",
}

DEFAULT_PERIOD_LABEL = "Period"
BUSY_SUFFIX = " (Has class)"


def normalize_day(day: Optional[str]) -> str:
    """'Mon', 'monday' and 'MONDAY' all become 'monday'. Unknown input is only lower-cased."""
    cleaned = (day or "").strip().lower()
    return DAY_ALIASES.get(cleaned, cleaned)


def weekday_name(d: date) -> str:
    return WEEKDAYS[d.weekday()]


def _slot_roles(officer_id: int):
    return or_(
        TimetableAssignment.teacher_id == officer_id,
        TimetableAssignment.secondary_officer_id == officer_id,
        TimetableAssignment.backup_officer_id == officer_id,
    )


def _role_of(assignment: TimetableAssignment, officer_id: int) -> str:
    if assignment.teacher_id == officer_id:
        return "primary"
    if assignment.secondary_officer_id == officer_id:
        return "secondary"
    return "backup"


def _period_lookup(db: Session, period_ids: Iterable[int]) -> Dict[int, InstitutionPeriod]:
    # Fetched separately from the assignments; a period id with no row just misses the dict
    ids = {pid for pid in period_ids if pid is not None}
    if not ids:
        return {}
    rows = db.query(InstitutionPeriod).filter(InstitutionPeriod.id.in_(ids)).all()
    return {row.id: row for row in rows}


def _format_period_time(start: Optional[str], end: Optional[str]) -> str:
    if start and end:
        return f"{start} - {end}"
    return start or end or ""


def get_affected_slots(
    db: Session,
    officer_id: int,
    institution_id: int,
    start_date: date,
    end_date: date,
) -> List[Dict[str, Any]]:
    """
    Every (date, timetable assignment) pair the officer holds in [start_date, end_date].

    Slots are sorted by date, then period start time. A missing period row
    leaves the label as "Period" with empty times.
    """
    if end_date < start_date:
        raise ValidationError("end_date must be on or after start_date")

    assignments = db.query(TimetableAssignment).filter(
        TimetableAssignment.institution_id == institution_id,
        _slot_roles(officer_id),
    ).all()
    if not assignments:
        return []

    by_day = defaultdict(list)
    for assignment in assignments:
        by_day[normalize_day(assignment.day)].append(assignment)

    periods = _period_lookup(db, (a.period_id for a in assignments))

    slots = []
    current = start_date
    while current <= end_date:
        day = weekday_name(current)
        for assignment in by_day.get(day, []):
            period = periods.get(assignment.period_id)
            start_time = period.start_time if period else ""
            end_time = period.end_time if period else ""
            slots.append({
                "slot_id": assignment.id,
                "day": day,
                "date": current,
                "period_id": assignment.period_id,
                "period_label": period.label if period and period.label else DEFAULT_PERIOD_LABEL,
                "period_time": _format_period_time(start_time, end_time),
                "start_time": start_time or "",
                "end_time": end_time or "",
                "class_id": assignment.class_id,
                "class_name": assignment.class_name,
                "subject": assignment.subject,
                "room": assignment.room,
                "officer_role": _role_of(assignment, officer_id),
            })
        current += timedelta(days=1)

    slots.sort(key=lambda s: (s["date"], s["start_time"]))
    return slots


def serialize_slots(slots: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """JSON-column form of resolved slots (dates as ISO strings)."""
    return [
        {**slot, "date": slot["date"].isoformat() if isinstance(slot["date"], date) else slot["date"]}
        for slot in slots
    ]


def _get_institution(db: Session, institution_id: int) -> Institution:
    institution = db.query(Institution).filter(Institution.id == institution_id).first()
    if not institution:
        raise NotFoundError("Institution not found")
    return institution


def _institution_officers(db: Session, institution_id: int, exclude_officer_id: Optional[int]) -> List[Officer]:
    query = db.query(Officer).join(
        officer_institutions, officer_institutions.c.officer_id == Officer.id
    ).filter(
        officer_institutions.c.institution_id == institution_id,
        Officer.status == OfficerStatus.ACTIVE.value,
    )
    if exclude_officer_id is not None:
        query = query.filter(Officer.id != exclude_officer_id)
    return query.order_by(Officer.full_name).all()


def busy_officer_ids(db: Session, institution_id: int, day: str, period_id: int) -> set:
    """Officers holding any role in a class at this institution/day/period."""
    normalized = normalize_day(day)
    rows = db.query(TimetableAssignment).filter(
        TimetableAssignment.institution_id == institution_id,
        TimetableAssignment.period_id == period_id,
    ).all()
    busy = set()
    for row in rows:
        if normalize_day(row.day) != normalized:
            continue
        busy.update(
            oid for oid in (row.teacher_id, row.secondary_officer_id, row.backup_officer_id)
            if oid is not None
        )
    return busy


def get_available_substitutes(
    db: Session,
    institution_id: int,
    day: str,
    period_id: int,
    exclude_officer_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    institution = _get_institution(db, institution_id)
    officers = _institution_officers(db, institution_id, exclude_officer_id)
    busy = busy_officer_ids(db, institution_id, day, period_id)

    candidates = []
    for officer in officers:
        is_busy = officer.id in busy
        name = f"{officer.full_name} ({institution.name})"
        candidates.append({
            "officer_id": officer.id,
            "officer_name": name + BUSY_SUFFIX if is_busy else name,
            "skills": officer.skills or [],
            "is_available": not is_busy,
        })
    return candidates


def get_all_institution_officers(
    db: Session,
    institution_id: int,
    exclude_officer_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Every active officer of the institution, without the timetable check."""
    institution = _get_institution(db, institution_id)
    return [
        {
            "officer_id": officer.id,
            "officer_name": f"{officer.full_name} ({institution.name})",
            "skills": officer.skills or [],
            "is_available": True,
        }
        for officer in _institution_officers(db, institution_id, exclude_officer_id)
    ]


def assign_substitutes(
    db: Session,
    application: LeaveApplication,
    picks: Iterable[Any],
    assigned_by: Optional[str] = None,
    commit: bool = True,
) -> List[LeaveSubstituteAssignment]:
    """
    Record substitute picks for an officer's leave.

    Each pick (slot_id, date, substitute_officer_id) must match an affected slot.
    A second pick for the same slot/date replaces the first. With commit=True the
    whole batch is committed at once, or rolled back on any error.
    """
    if application.applicant_type != ApplicantType.INNOVATION_OFFICER.value:
        raise ValidationError("Substitutes only apply to innovation officer leave")
    if application.status not in (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value):
        raise InvalidTransitionError(f"Cannot assign substitutes to a {application.status} application")

    slots = {(slot["slot_id"], slot["date"]): slot for slot in (application.affected_slots or [])}
    existing = {(a.slot_id, a.date.isoformat()): a for a in application.substitute_assignments}
    touched = []

    try:
        for pick in picks:
            key = (pick.slot_id, pick.date.isoformat())
            slot = slots.get(key)
            if slot is None:
                raise ValidationError(
                    f"Slot {pick.slot_id} on {pick.date.isoformat()} is not affected by this leave"
                )
            if pick.substitute_officer_id == application.officer_id:
                raise ValidationError("An officer cannot substitute for their own leave")

            substitute = db.query(Officer).filter(Officer.id == pick.substitute_officer_id).first()
            if not substitute:
                raise NotFoundError(f"Officer {pick.substitute_officer_id} not found")

            has_class = substitute.id in busy_officer_ids(
                db, application.institution_id, slot["day"], slot["period_id"]
            )
            fields = dict(
                date=pick.date,
                class_id=slot["class_id"],
                class_name=slot["class_name"],
                period_id=slot["period_id"],
                period_label=slot["period_label"],
                period_time=slot.get("period_time") or "",
                subject=slot["subject"],
                original_officer_id=application.officer_id,
                original_officer_name=application.officer_name,
                substitute_officer_id=substitute.id,
                substitute_officer_name=substitute.full_name,
                substitute_has_class=has_class,
                assigned_by=assigned_by,
            )

            assignment = existing.get(key)
            if assignment is None:
                assignment = LeaveSubstituteAssignment(slot_id=pick.slot_id, **fields)
                application.substitute_assignments.append(assignment)
                existing[key] = assignment
            else:
                for name, value in fields.items():
                    setattr(assignment, name, value)
            if has_class:
                logger.info(
                    f"Substitute {substitute.id} already has a class at slot {pick.slot_id} on {key[1]}",
                    extra={"leave_application_id": application.id},
                )
            touched.append(assignment)

        if commit:
            db.commit()
            for assignment in touched:
                db.refresh(assignment)
    except Exception:
        if commit:
            db.rollback()
        raise

    return touched
