"""Step execution, audit trail and interaction fallbacks.

A workflow is a table of :class:`WorkflowStep` entries. Each one is run by a
:class:`StepTracker`, which publishes a ``pending`` record to the observer,
awaits the step action and appends exactly one terminal record
(``success`` or ``error``) to the audit trail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from playwright.async_api import Locator, Page

from bdes_scraper.schemas.permit_result import OutcomeStatus, StepRecord, StepStatus
from bdes_scraper.scrapers.base.locators import Located, LocatorStrategy, locate


StepObserver = Callable[[StepRecord], None]


@dataclass(frozen=True)
class StepOutcome:
    """What a step action reports back to the tracker."""

    ok: bool
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "StepOutcome":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "StepOutcome":
        return cls(ok=False, message=message)


@dataclass(frozen=True)
class WorkflowStep:
    """One row of a workflow table.

    Parameters
    ----------
    name : str
        Human readable stage name, also used in the audit trail.
    action : Callable[[Any], Awaitable[StepOutcome]]
        Coroutine receiving the session context.
    on_failure : Optional[OutcomeStatus], default=None
        Outcome that ends the run when the step fails. ``None`` marks a
        tolerant step: its failure is recorded and the workflow moves on.
    settle_ms : int, default=0
        Fixed delay awaited before the action.
    """

    name: str
    action: Callable[[Any], Awaitable[StepOutcome]]
    on_failure: Optional[OutcomeStatus] = None
    settle_ms: int = 0

    @property
    def tolerant(self) -> bool:
        return self.on_failure is None


class StepTracker:
    """Runs steps and keeps the ordered step audit trail of one run.

    Parameters
    ----------
    observer : Optional[StepObserver], default=None
        Called synchronously with every record, ``pending`` ones included.
        Observer errors are logged and never interrupt the run.
    """

    def __init__(self, observer: Optional[StepObserver] = None) -> None:
        self._observer = observer
        self._records: List[StepRecord] = []

    @property
    def records(self) -> List[StepRecord]:
        return list(self._records)

    def _publish(self, record: StepRecord) -> None:
        if self._observer is None:
            return
        try:
            self._observer(record)
        except Exception:
            logging.exception("Step observer failed on %s", record.step)

    def record(self, step: str, status: StepStatus, message: str = "") -> StepRecord:
        """Append a terminal record and publish it."""
        record = StepRecord(step=step, status=status, message=message or "")
        self._records.append(record)
        self._publish(record)
        return record

    async def run(self, step: str, action: Callable[[], Awaitable[StepOutcome]]) -> StepRecord:
        """Run ``action`` as step ``step``.

        Unexpected exceptions are recorded as an ``error`` record for the
        step and re-raised to the caller.
        """
        self._publish(StepRecord(step=step, status=StepStatus.PENDING))
        logging.info("Step started: %s", step)
        try:
            outcome = await action()
        except Exception as exc:
            self.record(step, StepStatus.ERROR, str(exc) or exc.__class__.__name__)
            raise
        status = StepStatus.SUCCESS if outcome.ok else StepStatus.ERROR
        if outcome.ok:
            logging.info("Step succeeded: %s %s", step, outcome.message)
        else:
            logging.warning("Step failed: %s: %s", step, outcome.message)
        return self.record(step, status, outcome.message)


async def wait_for_any(page: Page, strategies: Sequence[LocatorStrategy], timeout_ms: int,
                       interval_ms: int = 500) -> Optional[Located]:
    """Poll :func:`locate` until an element shows up or ``timeout_ms`` elapses."""
    attempts = max(1, timeout_ms // max(1, interval_ms) + 1)
    for attempt in range(attempts):
        located = await locate(page, strategies)
        if located is not None:
            return located
        if attempt < attempts - 1:
            await page.wait_for_timeout(interval_ms)
    return None


async def click_with_fallbacks(locator: Locator, timeout_ms: int = 2000) -> Optional[str]:
    """Click ``locator`` trying a regular, a forced and a dispatched click.

    Returns
    -------
    Optional[str]
        Name of the technique that worked, ``None`` when all of them failed.
    """
    techniques: List[Tuple[str, Callable[[], Awaitable[Any]]]] = [
        ("click", lambda: locator.click(timeout=timeout_ms)),
        ("force-click", lambda: locator.click(timeout=timeout_ms, force=True)),
        ("dispatch", lambda: locator.dispatch_event("click")),
    ]
    for name, technique in techniques:
        try:
            await technique()
            return name
        except Exception as exc:
            logging.debug("Click technique %s failed: %s", name, exc)
    return None


def box_center(box: Dict[str, float]) -> Tuple[float, float]:
    """Return the center point of a Playwright bounding box."""
    return box["x"] + box["width"] / 2, box["y"] + box["height"] / 2


async def click_center(page: Page, locator: Locator) -> bool:
    """Mouse-click the visual center of ``locator``; ``False`` when it has no box."""
    box = await locator.bounding_box()
    if not box:
        return False
    x, y = box_center(box)
    await page.mouse.click(x, y)
    return True
