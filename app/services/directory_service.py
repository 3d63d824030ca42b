"""
Institutions, officers, periods, timetable assignments and holidays.
"""
from datetime import date
from typing import List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.institution import Holiday, Institution, InstitutionPeriod, TimetableAssignment
from app.models.officer import Officer, officer_institutions
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def _commit(db: Session, obj):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error on {type(obj).__name__}: {e.orig}")
        raise ConflictError(f"{type(obj).__name__} conflicts with an existing record")
    except Exception:
        db.rollback()
        raise
    db.refresh(obj)
    return obj


def get_institution(db: Session, institution_id: int) -> Institution:
    institution = db.query(Institution).filter(Institution.id == institution_id).first()
    if not institution:
        raise NotFoundError("Institution not found")
    return institution


def create_institution(db: Session, payload) -> Institution:
    if db.query(Institution).filter(Institution.slug == payload.slug).first():
        raise ConflictError(f"Institution slug '{payload.slug}' is taken")
    institution = Institution(name=payload.name, slug=payload.slug, is_active=True)
    db.add(institution)
    return _commit(db, institution)


def list_institutions(db: Session, user: User) -> List[Institution]:
    query = db.query(Institution)
    # Institution-bound roles only see their own institution
    if user.role in (UserRole.INSTITUTION_ADMIN, UserRole.STUDENT):
        query = query.filter(Institution.id == user.institution_id)
    elif user.role == UserRole.OFFICER and user.officer_profile:
        ids = user.officer_profile.assigned_institution_ids or [-1]
        query = query.filter(Institution.id.in_(ids))
    return query.order_by(Institution.name).all()


def create_officer(db: Session, payload) -> Officer:
    institutions = []
    for institution_id in payload.institution_ids:
        institutions.append(get_institution(db, institution_id))

    if payload.user_id is not None:
        user = db.query(User).filter(User.id == payload.user_id).first()
        if not user:
            raise NotFoundError("User not found")
        if db.query(Officer).filter(Officer.user_id == user.id).first():
            raise ConflictError("User already has an officer profile")

    officer = Officer(
        user_id=payload.user_id,
        full_name=payload.full_name,
        email=payload.email,
        skills=payload.skills,
        status=payload.status.value,
        monthly_salary=payload.monthly_salary,
        hourly_rate=payload.hourly_rate,
        overtime_multiplier=payload.overtime_multiplier,
    )
    officer.assigned_institutions.extend(institutions)
    db.add(officer)
    return _commit(db, officer)


def list_officers(db: Session, institution_id: Optional[int] = None) -> List[Officer]:
    query = db.query(Officer)
    if institution_id is not None:
        query = query.join(
            officer_institutions, officer_institutions.c.officer_id == Officer.id
        ).filter(officer_institutions.c.institution_id == institution_id)
    return query.order_by(Officer.full_name).all()


def create_period(db: Session, payload) -> InstitutionPeriod:
    get_institution(db, payload.institution_id)
    period = InstitutionPeriod(**payload.model_dump())
    db.add(period)
    return _commit(db, period)


def list_periods(db: Session, institution_id: int) -> List[InstitutionPeriod]:
    return db.query(InstitutionPeriod).filter(
        InstitutionPeriod.institution_id == institution_id
    ).order_by(InstitutionPeriod.display_order, InstitutionPeriod.start_time).all()


def create_assignment(db: Session, payload) -> TimetableAssignment:
    get_institution(db, payload.institution_id)
    officer_ids = [oid for oid in (payload.teacher_id, payload.secondary_officer_id, payload.backup_officer_id) if oid]
    if officer_ids:
        found = db.query(Officer.id).filter(Officer.id.in_(officer_ids)).all()
        missing = set(officer_ids) - {row[0] for row in found}
        if missing:
            raise ValidationError(f"Unknown officer id(s): {sorted(missing)}")
    assignment = TimetableAssignment(**payload.model_dump())
    db.add(assignment)
    return _commit(db, assignment)


def list_assignments(db: Session, institution_id: int, officer_id: Optional[int] = None) -> List[TimetableAssignment]:
    query = db.query(TimetableAssignment).filter(TimetableAssignment.institution_id == institution_id)
    if officer_id is not None:
        query = query.filter(
            (TimetableAssignment.teacher_id == officer_id)
            | (TimetableAssignment.secondary_officer_id == officer_id)
            | (TimetableAssignment.backup_officer_id == officer_id)
        )
    return query.order_by(TimetableAssignment.day, TimetableAssignment.period_id).all()


def create_holiday(db: Session, payload) -> Holiday:
    if payload.institution_id is not None:
        get_institution(db, payload.institution_id)
    holiday = Holiday(**payload.model_dump())
    db.add(holiday)
    return _commit(db, holiday)


def list_holidays(
    db: Session,
    institution_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Holiday]:
    """Company holidays when institution_id is None."""
    query = db.query(Holiday)
    if institution_id is None:
        query = query.filter(Holiday.institution_id.is_(None))
    else:
        query = query.filter(Holiday.institution_id == institution_id)
    if start:
        query = query.filter(Holiday.date >= start)
    if end:
        query = query.filter(Holiday.date <= end)
    return query.order_by(Holiday.date).all()
