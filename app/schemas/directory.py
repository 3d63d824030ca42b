from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import date
from typing import List, Optional

from app.models.officer import OfficerStatus

class InstitutionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, pattern=r"^[a-z0-9-]+$")

class InstitutionResponse(BaseModel):
    id: int
    name: str
    slug: str
    admin_user_id: Optional[int] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class OfficerCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    user_id: Optional[int] = None
    institution_ids: List[int] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    status: OfficerStatus = OfficerStatus.ACTIVE
    monthly_salary: float = Field(default=0.0, ge=0)
    hourly_rate: float = Field(default=0.0, ge=0)
    overtime_multiplier: float = Field(default=1.5, gt=0)

class OfficerResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    full_name: str
    email: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    status: str
    assigned_institution_ids: List[int] = Field(default_factory=list)
    monthly_salary: Optional[float] = None
    hourly_rate: Optional[float] = None
    overtime_multiplier: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)

class PeriodCreate(BaseModel):
    institution_id: int
    label: str = Field(..., min_length=1)
    start_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    end_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    display_order: int = 0

class PeriodResponse(PeriodCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)

class TimetableAssignmentCreate(BaseModel):
    institution_id: int
    period_id: int
    day: str = Field(..., min_length=1)
    class_id: str
    class_name: str
    subject: str
    room: Optional[str] = None
    teacher_id: Optional[int] = None
    secondary_officer_id: Optional[int] = None
    backup_officer_id: Optional[int] = None

class TimetableAssignmentResponse(TimetableAssignmentCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)

class HolidayCreate(BaseModel):
    institution_id: Optional[int] = None
    date: date
    name: str = Field(..., min_length=1)

class HolidayResponse(HolidayCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)
