from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.permissions import Feature
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_capability
from app.schemas.directory import (
    HolidayCreate,
    HolidayResponse,
    InstitutionCreate,
    InstitutionResponse,
    OfficerCreate,
    OfficerResponse,
    PeriodCreate,
    PeriodResponse,
    TimetableAssignmentCreate,
    TimetableAssignmentResponse,
)
from app.services import directory_service

router = APIRouter(tags=["directory"])

manage_institutions = require_capability(Feature.INSTITUTION_MANAGEMENT)


@router.post("/institutions", response_model=InstitutionResponse, status_code=201)
def create_institution(
    payload: InstitutionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_institutions)
):
    return directory_service.create_institution(db, payload)


@router.get("/institutions", response_model=List[InstitutionResponse])
def list_institutions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return directory_service.list_institutions(db, current_user)


@router.post("/officers", response_model=OfficerResponse, status_code=201)
def create_officer(
    payload: OfficerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Feature.OFFICER_MANAGEMENT))
):
    return directory_service.create_officer(db, payload)


@router.get("/officers", response_model=List[OfficerResponse])
def list_officers(
    institution_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return directory_service.list_officers(db, institution_id)


@router.post("/timetable/periods", response_model=PeriodResponse, status_code=201)
def create_period(
    payload: PeriodCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_institutions)
):
    return directory_service.create_period(db, payload)


@router.get("/timetable/periods", response_model=List[PeriodResponse])
def list_periods(
    institution_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return directory_service.list_periods(db, institution_id)


@router.post("/timetable/assignments", response_model=TimetableAssignmentResponse, status_code=201)
def create_assignment(
    payload: TimetableAssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(manage_institutions)
):
    return directory_service.create_assignment(db, payload)


@router.get("/timetable/assignments", response_model=List[TimetableAssignmentResponse])
def list_assignments(
    institution_id: int,
    officer_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return directory_service.list_assignments(db, institution_id, officer_id)


@router.post("/holidays", response_model=HolidayResponse, status_code=201)
def create_holiday(
    payload: HolidayCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Feature.COMPANY_HOLIDAYS, Feature.INSTITUTION_MANAGEMENT))
):
    return directory_service.create_holiday(db, payload)


@router.get("/holidays", response_model=List[HolidayResponse])
def list_holidays(
    institution_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Company holidays unless institution_id is given."""
    return directory_service.list_holidays(db, institution_id, start, end)
