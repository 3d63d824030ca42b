from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, Table
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base

class OfficerStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

officer_institutions = Table(
    "officer_institutions",
    Base.metadata,
    Column("officer_id", Integer, ForeignKey("officers.id", ondelete="CASCADE"), primary_key=True),
    Column("institution_id", Integer, ForeignKey("institutions.id", ondelete="CASCADE"), primary_key=True),
)

class Officer(Base):
    __tablename__ = "officers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    skills = Column(JSON, default=list)
    status = Column(String, default=OfficerStatus.ACTIVE.value, nullable=False)

    # Pay rates (officers are not covered by the staff position table)
    monthly_salary = Column(Float, default=0.0)
    hourly_rate = Column(Float, default=0.0)
    overtime_multiplier = Column(Float, default=1.5)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="officer_profile")
    # Ordered by id so the first assignment is the home institution
    assigned_institutions = relationship(
        "Institution",
        secondary=officer_institutions,
        order_by="Institution.id",
    )

    @property
    def assigned_institution_ids(self):
        return [inst.id for inst in self.assigned_institutions]

    @property
    def home_institution(self):
        return self.assigned_institutions[0] if self.assigned_institutions else None
