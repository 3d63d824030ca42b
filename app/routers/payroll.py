from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.permissions import Feature
from app.database import get_db
from app.models.payroll import PayeeType, PayrollStatus
from app.models.user import User
from app.routers.auth_deps import require_capability
from app.schemas.payroll import (
    PayrollGenerateRequest,
    PayrollPreviewRequest,
    PayrollPreviewResponse,
    PayrollRecordResponse,
    PayrollStatusUpdate,
)
from app.services import payroll_service

router = APIRouter(
    prefix="/payroll",
    tags=["payroll"]
)

payroll_admin = require_capability(Feature.PAYROLL_MANAGEMENT)


@router.post("/preview", response_model=PayrollPreviewResponse)
def preview_payroll(
    payload: PayrollPreviewRequest,
    current_user: User = Depends(payroll_admin)
):
    """Pure computation; nothing is stored."""
    if payload.monthly_salary is not None:
        config = payroll_service.SalaryConfig(
            monthly_salary=payload.monthly_salary,
            hourly_rate=payload.hourly_rate or 0.0,
            overtime_multiplier=payload.overtime_multiplier,
        )
    else:
        config = payroll_service.STAFF_SALARY_CONFIG[payload.position]
    return payroll_service.compute_payroll(
        config, payload.present_days, payload.total_days, payload.overtime_hours
    )


@router.post("/generate", response_model=PayrollRecordResponse)
def generate_payroll(
    payload: PayrollGenerateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(payroll_admin)
):
    return payroll_service.generate_monthly_payroll(
        db,
        payee_type=payload.payee_type,
        payee_id=payload.payee_id,
        month=payload.month,
        year=payload.year,
        basis=payload.proration_basis,
        total_days=payload.total_days,
        actor=current_user,
    )


@router.get("/records", response_model=List[PayrollRecordResponse])
def list_payroll_records(
    month: Optional[int] = None,
    year: Optional[int] = None,
    payee_type: Optional[PayeeType] = None,
    status: Optional[PayrollStatus] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(payroll_admin)
):
    return payroll_service.list_payroll_records(db, month, year, payee_type, status)


@router.get("/records/{record_id}", response_model=PayrollRecordResponse)
def get_payroll_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(payroll_admin)
):
    return payroll_service.get_payroll_record(db, record_id)


@router.patch("/records/{record_id}/status", response_model=PayrollRecordResponse)
def update_payroll_status(
    record_id: int,
    payload: PayrollStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(payroll_admin)
):
    """draft -> approved -> paid; anything else is rejected with 409."""
    return payroll_service.update_payroll_status(db, record_id, payload.status, actor=current_user)
