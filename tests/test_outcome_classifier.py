"""Test the mapping of workflow terminal states to outcome statuses."""

import pytest

from bdes_scraper.schemas import OutcomeStatus
from bdes_scraper.scrapers.bdes.classifier import WorkflowTerminal, classify_outcome
from bdes_scraper.scrapers.bdes.extractor import NO_DELIVERED_MESSAGE


@pytest.mark.parametrize(
    "terminal,expected_status,expected_message",
    [
        (WorkflowTerminal(latest_permit_date="15/06/2022"), OutcomeStatus.SUCCESS, None),
        (WorkflowTerminal(), OutcomeStatus.NO_PERMIT_DATA, NO_DELIVERED_MESSAGE),
        (
            WorkflowTerminal(failed_step="Select cadastral parcel", failure_status=OutcomeStatus.ADDRESS_NOT_FOUND,
                             failure_message="No parcels found for this address"),
            OutcomeStatus.ADDRESS_NOT_FOUND,
            "No parcels found for this address",
        ),
        (
            WorkflowTerminal(failed_step="Open Procédures tab", failure_status=OutcomeStatus.NO_PERMIT_DATA),
            OutcomeStatus.NO_PERMIT_DATA,
            "Step failed: Open Procédures tab",
        ),
        (WorkflowTerminal(exception_message="net::ERR_NAME_NOT_RESOLVED"), OutcomeStatus.ERROR,
         "net::ERR_NAME_NOT_RESOLVED"),
        (WorkflowTerminal(exception_message=""), OutcomeStatus.ERROR, "Unknown error occurred"),
    ],
)
def test_classify_outcome(terminal, expected_status, expected_message):
    classification = classify_outcome(terminal)
    assert classification.status == expected_status
    assert classification.resolved_status == expected_status
    assert classification.error_message == expected_message


@pytest.mark.parametrize(
    "terminal,resolved",
    [
        (WorkflowTerminal(latest_permit_date="15/06/2022"), OutcomeStatus.SUCCESS),
        (WorkflowTerminal(), OutcomeStatus.NO_PERMIT_DATA),
        (WorkflowTerminal(failure_status=OutcomeStatus.ADDRESS_NOT_FOUND, failure_message="x"),
         OutcomeStatus.ADDRESS_NOT_FOUND),
    ],
)
def test_multiple_parcels_overrides_status_and_keeps_resolution(terminal, resolved):
    classification = classify_outcome(terminal, multiple_parcels=True)
    assert classification.status == OutcomeStatus.MULTIPLE_PARCELS
    assert classification.resolved_status == resolved


def test_multiple_parcels_never_hides_an_error():
    classification = classify_outcome(WorkflowTerminal(exception_message="boom"), multiple_parcels=True)
    assert classification.status == OutcomeStatus.ERROR
    assert classification.error_message == "boom"
