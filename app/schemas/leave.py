from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from app.models.leave_application import LeaveType
from app.schemas.substitute import SubstitutePick, SubstituteAssignmentResponse

class LeaveApplicationCreate(BaseModel):
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str = Field(..., min_length=1)
    # Officers assigned to several institutions pick one; defaults to the home institution
    institution_id: Optional[int] = None
    substitutes: List[SubstitutePick] = Field(default_factory=list)

class LeaveApplicationResponse(BaseModel):
    id: int
    officer_id: Optional[int] = None
    applicant_user_id: Optional[int] = None
    officer_name: str
    applicant_type: str
    institution_id: Optional[int] = None
    institution_name: Optional[str] = None
    start_date: date
    end_date: date
    leave_type: str
    reason: str
    total_days: float
    conflict_detected: bool
    status: str
    approval_stage: str
    applied_at: Optional[datetime] = None

    approved_by_manager: Optional[str] = None
    approved_by_manager_at: Optional[datetime] = None
    manager_comments: Optional[str] = None
    approved_by_agm: Optional[str] = None
    approved_by_agm_at: Optional[datetime] = None
    agm_comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    admin_comments: Optional[str] = None

    rejection_reason: Optional[str] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_stage: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    affected_slots: Optional[List[Dict[str, Any]]] = None
    substitute_assignments: List[SubstituteAssignmentResponse] = Field(default_factory=list)
    version: int

    model_config = ConfigDict(from_attributes=True)

class ApproveRequest(BaseModel):
    comments: Optional[str] = None
    version: int

class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    version: int

class CancelRequest(BaseModel):
    version: Optional[int] = None

class TimelineStep(BaseModel):
    key: str
    label: str
    status: str  # completed | current | rejected | upcoming
    actor: Optional[str] = None
    at: Optional[datetime] = None
    comments: Optional[str] = None

class CalendarLeave(BaseModel):
    id: int
    officer_id: Optional[int] = None
    officer_name: str
    applicant_type: str
    institution_id: Optional[int] = None
    start_date: date
    end_date: date
    leave_type: str
    total_days: float
    days_in_range: List[date] = Field(default_factory=list)

class ComposeEmailResponse(BaseModel):
    to: str
    subject: str
    body: str
    compose_url: str
