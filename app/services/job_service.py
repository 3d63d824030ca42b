import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.job import InterviewStage, JobPosting
from app.models.user import User
from app.services.audit import AuditService

logger = logging.getLogger(__name__)

# (name, order, mandatory)
DEFAULT_INTERVIEW_STAGES = (
    ("HR Screening", 1, True),
    ("Technical Interview", 2, True),
    ("Manager Interview", 3, True),
    ("Final Interview", 4, False),
)


def create_job_posting(db: Session, actor: User, payload) -> JobPosting:
    """The posting and its default stages are committed together or not at all."""
    try:
        job = JobPosting(**payload.model_dump(), created_by=actor.id)
        for name, order, mandatory in DEFAULT_INTERVIEW_STAGES:
            job.stages.append(InterviewStage(stage_name=name, stage_order=order, is_mandatory=mandatory))
        db.add(job)
        db.flush()

        AuditService.log(
            db,
            action="create_job",
            entity_type="job_posting",
            entity_id=job.id,
            user_id=actor.id,
            user_role=actor.role,
            details={"title": job.job_title, "department": job.department, "stages": len(job.stages)},
            after_state=payload,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Job posting creation failed; nothing was saved", exc_info=True)
        raise

    db.refresh(job)
    return job


def list_job_postings(db: Session, active_only: bool = False) -> List[JobPosting]:
    query = db.query(JobPosting)
    if active_only:
        query = query.filter(JobPosting.is_active == True)  # noqa: E712
    return query.order_by(JobPosting.created_at.desc(), JobPosting.id.desc()).all()


def get_job_stages(db: Session, job_id: int) -> List[InterviewStage]:
    job = db.query(JobPosting).filter(JobPosting.id == job_id).first()
    if not job:
        raise NotFoundError("Job posting not found")
    return list(job.stages)
