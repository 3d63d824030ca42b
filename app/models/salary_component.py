from sqlalchemy import Column, Integer, String, Float, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from app.database import Base
import enum

class ComponentKind(str, enum.Enum):
    EARNING = "earning"
    DEDUCTION = "deduction"

class SalaryComponent(Base):
    __tablename__ = "salary_components"

    id = Column(Integer, primary_key=True, index=True)
    payroll_id = Column(Integer, ForeignKey("payroll_records.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String, nullable=False)  # Store enum value as string
    component_type = Column(String, nullable=False)  # basic_pay, hra, pf, tds, ...
    amount = Column(Float, nullable=False)
    is_taxable = Column(Boolean, default=True)
    calculation_type = Column(String, nullable=False)  # fixed, computed, statutory

    payroll = relationship("PayrollRecord", back_populates="components")
