"""Permit lookup schemas.

This module defines the Pydantic models exchanged between the BDES engine
and its callers: the lookup target, the step audit trail and the final
per-target result.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StepStatus(str, Enum):
    """Status of one workflow step."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class OutcomeStatus(str, Enum):
    """Final classification of a permit lookup.

    Notes
    -----
    ``MULTIPLE_PARCELS`` is informational: it replaces a ``SUCCESS``,
    ``NO_PERMIT_DATA`` or ``ADDRESS_NOT_FOUND`` outcome once more parcels
    than expected were listed for the address.
    """

    SUCCESS = "SUCCESS"
    ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"
    MULTIPLE_PARCELS = "MULTIPLE_PARCELS"
    NO_PERMIT_DATA = "NO_PERMIT_DATA"
    ERROR = "ERROR"


class Target(BaseModel):
    """A company and the postal address to look up.

    Examples
    --------
    >>> Target(company="ACME", address="Rue de la Station 1, 4650 Herve")
    Target(company='ACME', address='Rue de la Station 1, 4650 Herve')
    """

    company: str = Field(description="Company name")
    address: str = Field(description="Postal address searched on the portal")

    model_config = ConfigDict(frozen=True)


class StepRecord(BaseModel):
    """One entry of the step audit trail.

    Parameters
    ----------
    step : str
        Human readable stage name.
    status : StepStatus
        ``pending`` while running, then ``success`` or ``error``.
    message : str, default=""
        Detail about the outcome; never ``None``.
    timestamp : datetime
        When the record was produced.
    """

    step: str
    status: StepStatus
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(frozen=True)


class PermitProcedureRow(BaseModel):
    """Status and date text read from one row of the procedures table."""

    status_text: str
    date_text: Optional[str] = None


class PermitResult(BaseModel):
    """Result of one permit lookup.

    Parameters
    ----------
    company : str
        Company of the looked up target.
    address : str
        Address of the looked up target.
    latest_permit_date : Optional[str], default=None
        Most recent delivered permit start date, ``DD/MM/YYYY`` as shown by the portal.
    permit_page_link : Optional[str], default=None
        URL of the parcel page the date was read from.
    status : OutcomeStatus
        Final classification.
    resolved_status : Optional[OutcomeStatus], default=None
        Classification before the ``MULTIPLE_PARCELS`` overlay was applied.
    multiple_parcels : bool, default=False
        Whether more parcels than expected were listed for the address.
    parcel_count : Optional[int], default=None
        Number of parcel rows listed by the identification tool.
    error_message : Optional[str], default=None
        Reason for any non ``SUCCESS`` outcome.
    steps : List[StepRecord]
        Ordered step audit trail of the run.

    Examples
    --------
    >>> PermitResult(company="ACME", address="Herve", status=OutcomeStatus.ERROR).latest_permit_date is None
    True
    """

    company: str
    address: str
    latest_permit_date: Optional[str] = None
    permit_page_link: Optional[str] = None
    status: OutcomeStatus
    resolved_status: Optional[OutcomeStatus] = None
    multiple_parcels: bool = False
    parcel_count: Optional[int] = None
    error_message: Optional[str] = None
    steps: List[StepRecord] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
