from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base

class Institution(Base):
    __tablename__ = "institutions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    admin_user_id = Column(Integer, ForeignKey("users.id", use_alter=True, name="fk_institution_admin_user_id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    periods = relationship("InstitutionPeriod", back_populates="institution", cascade="all, delete-orphan")


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=False, index=True)
    student_name = Column(String, nullable=False)
    class_id = Column(String, nullable=True)
    roll_number = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class InstitutionPeriod(Base):
    __tablename__ = "institution_periods"

    id = Column(Integer, primary_key=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=False, index=True)
    label = Column(String, nullable=False)  # "Period 1", "Lab", ...
    start_time = Column(String, nullable=True)  # "09:00"
    end_time = Column(String, nullable=True)
    display_order = Column(Integer, default=0)

    institution = relationship("Institution", back_populates="periods")


class TimetableAssignment(Base):
    """A recurring weekly teaching slot. `day` is stored as entered ("Mon", "monday", ...)."""
    __tablename__ = "institution_timetable_assignments"

    id = Column(Integer, primary_key=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=False, index=True)
    # Plain column: period rows are resolved with a separate lookup
    period_id = Column(Integer, nullable=False, index=True)
    day = Column(String, nullable=False)
    class_id = Column(String, nullable=False)
    class_name = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    room = Column(String, nullable=True)

    teacher_id = Column(Integer, ForeignKey("officers.id"), nullable=True, index=True)
    secondary_officer_id = Column(Integer, ForeignKey("officers.id"), nullable=True, index=True)
    backup_officer_id = Column(Integer, ForeignKey("officers.id"), nullable=True, index=True)


class Holiday(Base):
    """Non-working day. institution_id NULL means a company holiday."""
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    name = Column(String, nullable=False)
