"""Mapping of a workflow's terminal state to an outcome status."""

from typing import Optional

from pydantic import BaseModel

from bdes_scraper.schemas.permit_result import OutcomeStatus
from bdes_scraper.scrapers.bdes.extractor import NO_DELIVERED_MESSAGE


# Outcomes the MULTIPLE_PARCELS annotation replaces. ERROR keeps its message visible.
OVERRIDABLE = frozenset({OutcomeStatus.SUCCESS, OutcomeStatus.NO_PERMIT_DATA, OutcomeStatus.ADDRESS_NOT_FOUND})


class WorkflowTerminal(BaseModel):
    """Where and how a workflow run stopped.

    Parameters
    ----------
    failed_step : Optional[str]
        Step that ended the run, ``None`` when every step ran.
    failure_status : Optional[OutcomeStatus]
        Outcome attached to the failed step.
    failure_message : Optional[str]
        Message recorded for the failed step.
    latest_permit_date : Optional[str]
        Date found by the extractor.
    exception_message : Optional[str]
        Message of an unexpected exception that aborted the run.
    """

    failed_step: Optional[str] = None
    failure_status: Optional[OutcomeStatus] = None
    failure_message: Optional[str] = None
    latest_permit_date: Optional[str] = None
    exception_message: Optional[str] = None


class Classification(BaseModel):
    """Final status, the status it replaced and the error message."""

    status: OutcomeStatus
    resolved_status: OutcomeStatus
    error_message: Optional[str] = None


def classify_outcome(terminal: WorkflowTerminal, multiple_parcels: bool = False) -> Classification:
    """Classify a run.

    Parameters
    ----------
    terminal : WorkflowTerminal
        Terminal state reported by the workflow.
    multiple_parcels : bool, default=False
        Whether the parcel step listed more parcels than expected.

    Returns
    -------
    Classification
        ``status`` is ``MULTIPLE_PARCELS`` when the flag is set and the run
        otherwise resolved to ``SUCCESS``, ``NO_PERMIT_DATA`` or
        ``ADDRESS_NOT_FOUND``; ``resolved_status`` keeps that underlying
        outcome.

    Examples
    --------
    >>> classify_outcome(WorkflowTerminal(latest_permit_date="15/06/2022")).status
    <OutcomeStatus.SUCCESS: 'SUCCESS'>
    """
    if terminal.exception_message is not None:
        resolved = OutcomeStatus.ERROR
        message: Optional[str] = terminal.exception_message or "Unknown error occurred"
    elif terminal.failure_status is not None:
        resolved = terminal.failure_status
        message = terminal.failure_message or f"Step failed: {terminal.failed_step}"
    elif terminal.latest_permit_date:
        resolved = OutcomeStatus.SUCCESS
        message = None
    else:
        resolved = OutcomeStatus.NO_PERMIT_DATA
        message = NO_DELIVERED_MESSAGE

    status = OutcomeStatus.MULTIPLE_PARCELS if multiple_parcels and resolved in OVERRIDABLE else resolved
    return Classification(status=status, resolved_status=resolved, error_message=message)
