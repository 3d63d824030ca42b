from sqlalchemy import Column, Integer, String, Float, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum

class PayrollStatus(str, enum.Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"

class PayeeType(str, enum.Enum):
    OFFICER = "officer"
    STAFF = "staff"

class ProrationBasis(str, enum.Enum):
    """Which day count divides present days when pro-rating salary components."""
    WORKING_DAYS = "working_days"
    CALENDAR_DAYS = "calendar_days"

class PayrollRecord(Base):
    __tablename__ = "payroll_records"
    __table_args__ = (UniqueConstraint("payee_type", "payee_id", "month", "year", name="uq_payroll_period"),)

    id = Column(Integer, primary_key=True, index=True)
    payee_type = Column(String, nullable=False)
    payee_id = Column(Integer, nullable=False, index=True)  # officer id or user id
    payee_name = Column(String, nullable=False)
    position = Column(String, nullable=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    working_days = Column(Integer, nullable=False)
    present_days = Column(Float, nullable=False)
    absent_days = Column(Float, default=0.0)
    leave_days = Column(Float, default=0.0)
    overtime_hours = Column(Float, default=0.0)
    proration_basis = Column(String, nullable=False)
    proration_divisor = Column(Float, nullable=False)

    monthly_salary = Column(Float, nullable=False)
    gross_salary = Column(Float, nullable=False)
    total_deductions = Column(Float, nullable=False)
    net_pay = Column(Float, nullable=False)

    status = Column(String, default=PayrollStatus.DRAFT.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    components = relationship("SalaryComponent", back_populates="payroll", cascade="all, delete-orphan")
