from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.permissions import Feature
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import require_capability
from app.schemas.job import InterviewStageResponse, JobCreate, JobResponse
from app.services import job_service

router = APIRouter(
    prefix="/jobs",
    tags=["Jobs"],
)

ats = require_capability(Feature.ATS_MANAGEMENT)

@router.post("", response_model=JobResponse, status_code=201)
def create_job(
    job_in: JobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(ats)
):
    """
    Create a job posting together with its default interview stages.
    Either both are saved or neither is.
    """
    return job_service.create_job_posting(db, current_user, job_in)

@router.get("", response_model=List[JobResponse])
def list_jobs(
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(ats)
):
    return job_service.list_job_postings(db, active_only)

@router.get("/{job_id}/stages", response_model=List[InterviewStageResponse])
def get_job_stages(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(ats)
):
    return job_service.get_job_stages(db, job_id)
