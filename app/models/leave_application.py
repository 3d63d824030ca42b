from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime, Text, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
import enum

class ApplicantType(str, enum.Enum):
    INNOVATION_OFFICER = "innovation_officer"
    META_STAFF = "meta_staff"

class LeaveType(str, enum.Enum):
    SICK = "sick"
    CASUAL = "casual"
    EARNED = "earned"

class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

class ApprovalStage(str, enum.Enum):
    MANAGER_PENDING = "manager_pending"
    AGM_PENDING = "agm_pending"
    CEO_PENDING = "ceo_pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ApproverRole(str, enum.Enum):
    """Actor for a pending stage; also the value stored in rejection_stage."""
    MANAGER = "manager"
    AGM = "agm"
    CEO = "ceo"


class LeaveApplication(Base):
    __tablename__ = "leave_applications"

    id = Column(Integer, primary_key=True, index=True)
    # officer_id is set for innovation officers; meta staff are identified by applicant_user_id
    officer_id = Column(Integer, ForeignKey("officers.id"), nullable=True, index=True)
    applicant_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    officer_name = Column(String, nullable=False)
    applicant_type = Column(String, nullable=False, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=True, index=True)
    institution_name = Column(String, nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    leave_type = Column(String, nullable=False)
    reason = Column(Text, nullable=False)
    total_days = Column(Float, nullable=False)
    conflict_detected = Column(Boolean, default=False, nullable=False)

    status = Column(String, default=LeaveStatus.PENDING.value, nullable=False, index=True)
    approval_stage = Column(String, nullable=False, index=True)
    applied_at = Column(DateTime(timezone=True), server_default=func.now())

    # Manager stage (innovation officers only)
    approved_by_manager = Column(String, nullable=True)
    approved_by_manager_at = Column(DateTime(timezone=True), nullable=True)
    manager_comments = Column(Text, nullable=True)
    # AGM stage (innovation officers only)
    approved_by_agm = Column(String, nullable=True)
    approved_by_agm_at = Column(DateTime(timezone=True), nullable=True)
    agm_comments = Column(Text, nullable=True)
    # Final reviewer (AGM for officers, CEO for meta staff)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    admin_comments = Column(Text, nullable=True)

    rejection_reason = Column(Text, nullable=True)
    rejected_by = Column(String, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_stage = Column(String, nullable=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    affected_slots = Column(JSON, nullable=True)

    # Incremented on every write; a concurrent stale write fails at flush
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    officer = relationship("Officer")
    substitute_assignments = relationship(
        "LeaveSubstituteAssignment",
        back_populates="leave_application",
        cascade="all, delete-orphan",
        order_by="LeaveSubstituteAssignment.date",
    )


class LeaveSubstituteAssignment(Base):
    __tablename__ = "leave_substitute_assignments"

    id = Column(Integer, primary_key=True, index=True)
    leave_application_id = Column(Integer, ForeignKey("leave_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    slot_id = Column(Integer, nullable=False)  # timetable assignment id
    date = Column(Date, nullable=False)
    class_id = Column(String, nullable=False)
    class_name = Column(String, nullable=False)
    period_id = Column(Integer, nullable=False)
    period_label = Column(String, nullable=False)
    period_time = Column(String, nullable=True)
    subject = Column(String, nullable=False)
    original_officer_id = Column(Integer, ForeignKey("officers.id"), nullable=False)
    original_officer_name = Column(String, nullable=False)
    substitute_officer_id = Column(Integer, ForeignKey("officers.id"), nullable=False)
    substitute_officer_name = Column(String, nullable=False)
    # Advisory only: the substitute already teaches at this day/period
    substitute_has_class = Column(Boolean, default=False, nullable=False)
    assigned_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    leave_application = relationship("LeaveApplication", back_populates="substitute_assignments")
