from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional

class AffectedSlot(BaseModel):
    slot_id: int
    day: str
    date: date
    period_id: int
    period_label: str
    period_time: str = ""
    start_time: str = ""
    end_time: str = ""
    class_id: str
    class_name: str
    subject: str
    room: Optional[str] = None
    officer_role: str

class AvailableSubstitute(BaseModel):
    officer_id: int
    officer_name: str
    skills: List[str] = Field(default_factory=list)
    is_available: bool

class SubstitutePick(BaseModel):
    slot_id: int
    date: date
    substitute_officer_id: int

class SubstituteAssignRequest(BaseModel):
    assignments: List[SubstitutePick] = Field(..., min_length=1)

class SubstituteAssignmentResponse(BaseModel):
    id: int
    slot_id: int
    date: date
    class_id: str
    class_name: str
    period_id: int
    period_label: str
    period_time: Optional[str] = None
    subject: str
    original_officer_id: int
    original_officer_name: str
    substitute_officer_id: int
    substitute_officer_name: str
    substitute_has_class: bool
    assigned_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
