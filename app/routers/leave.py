from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user
from app.schemas.leave import (
    CancelRequest,
    ComposeEmailResponse,
    LeaveApplicationCreate,
    LeaveApplicationResponse,
    TimelineStep,
)
from app.schemas.substitute import SubstituteAssignRequest, SubstituteAssignmentResponse
from app.services import leave_service, leave_workflow

router = APIRouter(
    prefix="/leave/applications",
    tags=["leave"]
)

@router.post("", response_model=LeaveApplicationResponse, status_code=201)
def submit_leave_application(
    payload: LeaveApplicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Apply for leave. Officers start at manager approval, meta staff at CEO approval.
    Overlapping requests are accepted and flagged with conflict_detected.
    """
    return leave_service.submit_leave(db, current_user, payload)

@router.get("/mine", response_model=List[LeaveApplicationResponse])
def list_my_applications(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return leave_service.list_mine(db, current_user, status)

@router.get("/{application_id}", response_model=LeaveApplicationResponse)
def get_application(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return leave_service.get_visible_application(db, current_user, application_id)

@router.get("/{application_id}/timeline", response_model=List[TimelineStep])
def get_application_timeline(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    application = leave_service.get_visible_application(db, current_user, application_id)
    return leave_workflow.build_timeline(application)

@router.post("/{application_id}/cancel", response_model=LeaveApplicationResponse)
def cancel_application(
    application_id: int,
    payload: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    version = payload.version if payload else None
    return leave_service.cancel(db, current_user, application_id, version)

@router.get("/{application_id}/compose-email", response_model=ComposeEmailResponse)
def compose_decision_email(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return leave_service.compose_decision_email(db, current_user, application_id)

@router.post("/{application_id}/substitutes", response_model=List[SubstituteAssignmentResponse])
def assign_substitutes(
    application_id: int,
    payload: SubstituteAssignRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Busy substitutes are accepted; substitute_has_class reports the clash."""
    return leave_service.assign_substitutes(db, current_user, application_id, payload.assignments)

@router.get("/{application_id}/substitutes", response_model=List[SubstituteAssignmentResponse])
def list_substitutes(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    application = leave_service.get_visible_application(db, current_user, application_id)
    return application.substitute_assignments
