from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

class JobBase(BaseModel):
    job_title: str = Field(..., min_length=1)
    department: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = "full_time"
    description: Optional[str] = None

class JobCreate(JobBase):
    pass

class InterviewStageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stage_name: str
    stage_order: int
    is_mandatory: bool
    description: Optional[str] = None

class JobResponse(JobBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    stages: List[InterviewStageResponse] = Field(default_factory=list)
