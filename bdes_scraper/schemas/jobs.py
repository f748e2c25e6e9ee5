"""Job schemas for the batch jobs API."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .permit_result import PermitResult, StepStatus


class JobStatus(str, Enum):
    """Lifecycle of a batch job."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class JobState(BaseModel):
    """Progress of a batch job as exposed by ``GET /jobs/{job_id}``.

    Parameters
    ----------
    job_id : str
        Job identifier.
    status : JobStatus
        Current lifecycle state.
    total : int
        Number of targets in the job.
    processed : int
        Number of targets started so far.
    current_company : Optional[str]
        Company currently being looked up.
    current_step, current_step_status, current_step_message
        Latest step record published by the engine.
    results : List[PermitResult]
        Results collected so far.
    error : Optional[str]
        Reason of a failed job.
    """

    job_id: str
    status: JobStatus = JobStatus.PROCESSING
    total: int = 0
    processed: int = 0
    current_company: Optional[str] = None
    current_step: Optional[str] = None
    current_step_status: Optional[StepStatus] = None
    current_step_message: Optional[str] = None
    results: List[PermitResult] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None


class JobCreated(BaseModel):
    """Response of ``POST /jobs``."""

    job_id: str
