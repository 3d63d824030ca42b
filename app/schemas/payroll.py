from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Dict, List, Optional

from app.models.attendance import AttendanceStatus
from app.models.payroll import PayeeType, PayrollStatus, ProrationBasis
from app.models.user import StaffPosition

# --- Attendance ---

class AttendanceMarkBase(BaseModel):
    date: date
    status: AttendanceStatus
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    hours_worked: Optional[float] = Field(default=None, ge=0)
    overtime_hours: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None

class OfficerAttendanceMark(AttendanceMarkBase):
    officer_id: int
    institution_id: Optional[int] = None

class StaffAttendanceMark(AttendanceMarkBase):
    user_id: int

class AttendanceResponse(BaseModel):
    id: int
    date: date
    status: str
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    hours_worked: Optional[float] = None
    overtime_hours: Optional[float] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class AttendanceSummaryResponse(BaseModel):
    working_days: int
    present_days: float
    absent_days: float
    leave_days: float
    half_days: int
    hours_worked: float
    overtime_hours: float
    records: int
    by_status: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

# --- Payroll ---

class PayrollPreviewRequest(BaseModel):
    """Either a staff position or explicit rates."""
    position: Optional[StaffPosition] = None
    monthly_salary: Optional[float] = Field(default=None, gt=0)
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    overtime_multiplier: float = Field(default=1.5, gt=0)
    present_days: float = Field(..., ge=0)
    total_days: float = Field(..., gt=0)
    overtime_hours: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def check_rates(self):
        if self.position is None and self.monthly_salary is None:
            raise ValueError("Provide either position or monthly_salary")
        return self

class PayrollGenerateRequest(BaseModel):
    payee_type: PayeeType
    payee_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    proration_basis: ProrationBasis = ProrationBasis.WORKING_DAYS
    total_days: Optional[float] = Field(default=None, gt=0)

class PayrollStatusUpdate(BaseModel):
    status: PayrollStatus

class ComponentResponse(BaseModel):
    component_type: str
    amount: float
    kind: str
    is_taxable: bool = True
    calculation_type: str

    model_config = ConfigDict(from_attributes=True)

class PayrollPreviewResponse(BaseModel):
    earnings: List[ComponentResponse]
    deductions: List[ComponentResponse]
    gross_salary: float
    total_deductions: float
    net_pay: float

    model_config = ConfigDict(from_attributes=True)

class PayrollRecordResponse(BaseModel):
    id: int
    payee_type: str
    payee_id: int
    payee_name: str
    position: Optional[str] = None
    month: int
    year: int
    working_days: int
    present_days: float
    absent_days: float
    leave_days: float
    overtime_hours: float
    proration_basis: str
    proration_divisor: float
    monthly_salary: float
    gross_salary: float
    total_deductions: float
    net_pay: float
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    components: List[ComponentResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
