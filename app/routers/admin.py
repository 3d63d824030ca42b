"""
Privileged account handlers.

Each handler authenticates the bearer token, checks the caller's role against
an allow-list, performs its writes in one transaction and answers with the
ApiResponse envelope.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.audit_log import AuditLog
from app.models.user import User, UserRole
from app.routers.auth_deps import require_role
from app.schemas.account import CreatedStudent, CreatedUser, InstitutionAdminCreate, StudentCreate
from app.services import accounts

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
)


class AuditLogResponse(BaseModel):
    id: int
    action: str
    entity_type: str
    entity_id: Optional[int]
    user_id: Optional[int]
    user_role: Optional[str]
    details: Optional[dict]
    timestamp: Optional[datetime]
    before_state: Optional[dict]
    after_state: Optional[dict]

    model_config = ConfigDict(from_attributes=True)


@router.post("/institution-admins", status_code=201)
def create_institution_admin(
    payload: InstitutionAdminCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([UserRole.SUPER_ADMIN, UserRole.SYSTEM_ADMIN])),
):
    user = accounts.create_institution_admin(db, current_user, payload)
    return ApiResponse.ok(CreatedUser.model_validate(user)).to_dict()


@router.post("/students", status_code=201)
def create_student_user(
    payload: StudentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([
        UserRole.SUPER_ADMIN, UserRole.SYSTEM_ADMIN, UserRole.INSTITUTION_ADMIN
    ])),
):
    user, student = accounts.create_student(db, current_user, payload)
    data = CreatedStudent(
        user=CreatedUser.model_validate(user),
        student_id=student.id,
        class_id=student.class_id,
        roll_number=student.roll_number,
    )
    return ApiResponse.ok(data).to_dict()


@router.get("/audit-logs", response_model=List[AuditLogResponse])
def list_audit_logs(
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([UserRole.SUPER_ADMIN])),
):
    query = db.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.id.desc()).limit(limit).all()
