from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base

class JobPosting(Base):
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    job_title = Column(String, index=True, nullable=False)
    department = Column(String, nullable=True)
    location = Column(String, nullable=True)
    employment_type = Column(String, default="full_time")
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    stages = relationship(
        "InterviewStage",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="InterviewStage.stage_order",
    )

class InterviewStage(Base):
    __tablename__ = "interview_stages"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("job_postings.id", ondelete="CASCADE"), nullable=False, index=True)
    stage_name = Column(String, nullable=False)
    stage_order = Column(Integer, nullable=False)
    is_mandatory = Column(Boolean, default=True, nullable=False)
    description = Column(Text, nullable=True)

    job = relationship("JobPosting", back_populates="stages")
