"""Schema package for the BDES permits scraper.

Exposes commonly used models for convenient imports.
"""

from .jobs import JobCreated, JobState, JobStatus
from .permit_result import (
    OutcomeStatus,
    PermitProcedureRow,
    PermitResult,
    StepRecord,
    StepStatus,
    Target,
)

__all__ = [
    "JobCreated",
    "JobState",
    "JobStatus",
    "OutcomeStatus",
    "PermitProcedureRow",
    "PermitResult",
    "StepRecord",
    "StepStatus",
    "Target",
]
