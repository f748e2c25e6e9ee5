"""BDES (Wallonia) permit lookup scraper.

For a company and its postal address, the scraper opens the BDES map
consultation, identifies the cadastral parcel at that address and reports
the most recent procedure with status ``Permis délivré``.

Notes
-----
- One browser process is shared by every lookup of an instance and started
  on first use; each lookup gets its own browser context, closed when the
  lookup ends.
- ``scrape_permit`` never raises: every failure is classified into the
  returned :class:`PermitResult`, which always carries the step audit trail.
- Batches run strictly one target after the other with a fixed pause in
  between, to keep the load on the portal low.

Examples
--------
>>> scraper = BdesPermitScraper()
>>> results = scraper.scrape([Target(company="ACME", address="Rue de Battice 1, Herve")])  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Union

from pydantic import PrivateAttr

from bdes_scraper.configs.settings import app_config
from bdes_scraper.schemas.permit_result import PermitResult, StepStatus, Target
from bdes_scraper.scrapers.base.locators import fold_label
from bdes_scraper.scrapers.base.playwright import PlaywrightBaseScraper
from bdes_scraper.scrapers.base.steps import StepObserver, StepTracker
from bdes_scraper.scrapers.bdes.classifier import WorkflowTerminal, classify_outcome
from bdes_scraper.scrapers.bdes.workflow import BdesSession, BdesWorkflow


OPEN_SESSION_STEP = "Open browser session"

ProgressCallback = Callable[[float, str], None]
ResultCallback = Callable[[PermitResult], None]
TargetLike = Union[Target, Dict[str, str]]


def result_key(target: Target) -> str:
    """Return a filesystem-safe file stem for a target.

    Examples
    --------
    >>> result_key(Target(company="Café Liégeois", address="Rue Haute 5, Herve"))
    'cafe_liegeois__rue_haute_5_herve'
    """
    company = re.sub(r"[^a-z0-9]+", "_", fold_label(target.company)).strip("_")
    address = re.sub(r"[^a-z0-9]+", "_", fold_label(target.address)).strip("_")
    return f"{company}__{address}"[:150]


class BdesPermitScraper(PlaywrightBaseScraper):
    """Scraper for the latest delivered permit of an address on the BDES portal.

    Private Attributes
    ------------------
    _headless : bool
        Whether the browser runs in headless mode. Defaults to ``HEADLESS``.
    _workflow : BdesWorkflow
        Step table driving the portal.
    _batch_delay : float
        Seconds awaited between two targets of a batch.

    Methods
    -------
    initialize() / close()
        Start and stop the shared browser process.
    scrape_permit(company, address, on_step_update) -> PermitResult
        Look up a single target.
    scrape_batch(targets, on_progress, on_step_update, on_result) -> List[PermitResult]
        Look up targets one after the other.
    scrape(targets) -> List[PermitResult]
        Sync wrapper around ``scrape_batch`` that also closes the browser.
    """

    _headless: bool = PrivateAttr(default_factory=lambda: app_config.HEADLESS)
    _workflow: BdesWorkflow = PrivateAttr(default_factory=BdesWorkflow)
    _batch_delay: float = PrivateAttr(default_factory=lambda: app_config.BATCH_DELAY_SECONDS)

    @property
    def workflow(self) -> BdesWorkflow:
        return self._workflow

    def set_workflow(self, workflow: BdesWorkflow) -> None:
        self._workflow = workflow

    def set_batch_delay(self, seconds: float) -> None:
        self._batch_delay = seconds

    async def scrape_permit(
        self,
        company: str,
        address: str,
        on_step_update: Optional[StepObserver] = None,
    ) -> PermitResult:
        """Look up the latest delivered permit for one company address.

        Parameters
        ----------
        company : str
            Company name, carried through to the result.
        address : str
            Postal address typed in the portal search field.
        on_step_update : Optional[StepObserver], default=None
            Called synchronously with every step record, ``pending`` ones included.

        Returns
        -------
        PermitResult
            Classified result with its step audit trail.
        """
        target = Target(company=company, address=address)
        tracker = StepTracker(on_step_update)
        session: Optional[BdesSession] = None

        try:
            async with self.open_session() as page:
                session = BdesSession(page=page, target=target)
                terminal = await self._workflow.run(session, tracker)
        except Exception as exc:
            logging.exception("Error scraping permit for %s", company)
            message = str(exc) or "Unknown error occurred"
            if not tracker.records:
                tracker.record(OPEN_SESSION_STEP, StepStatus.ERROR, message)
            terminal = WorkflowTerminal(exception_message=message)

        multiple_parcels = session is not None and self._workflow.has_multiple_parcels(session)
        classification = classify_outcome(terminal, multiple_parcels)
        logging.info("%s / %s -> %s", company, address, classification.status.value)

        return PermitResult(
            company=company,
            address=address,
            latest_permit_date=terminal.latest_permit_date,
            permit_page_link=session.permit_page_link if session else None,
            status=classification.status,
            resolved_status=classification.resolved_status,
            multiple_parcels=multiple_parcels,
            parcel_count=session.parcel_count if session else None,
            error_message=classification.error_message,
            steps=tracker.records,
        )

    async def scrape_batch(
        self,
        targets: Sequence[TargetLike],
        on_progress: Optional[ProgressCallback] = None,
        on_step_update: Optional[StepObserver] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> List[PermitResult]:
        """Look up targets one after the other.

        Parameters
        ----------
        targets : Sequence[Target | dict]
            Targets, or mappings with ``company`` and ``address`` keys.
        on_progress : Optional[ProgressCallback], default=None
            Called before each lookup with the progress percentage (counting
            the current target) and the current company.
        on_step_update : Optional[StepObserver], default=None
            Forwarded to :meth:`scrape_permit`.
        on_result : Optional[ResultCallback], default=None
            Called with each result as soon as it is available.

        Returns
        -------
        List[PermitResult]
            One result per target, in input order.

        Notes
        -----
        The browser is left running; call :meth:`close` when the batch is over.
        """
        items = [t if isinstance(t, Target) else Target(**t) for t in targets]
        total = len(items)
        results: List[PermitResult] = []

        for index, target in enumerate(items):
            self._notify(on_progress, (index + 1) / total * 100, target.company)
            result = await self.scrape_permit(target.company, target.address, on_step_update)
            results.append(result)
            self._notify(on_result, result)
            if index < total - 1:
                await asyncio.sleep(self._batch_delay)

        return results

    def scrape(
        self,
        targets: Sequence[TargetLike],
        on_progress: Optional[ProgressCallback] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> List[PermitResult]:
        """Run a batch synchronously and close the browser afterwards.

        Parameters
        ----------
        targets : Sequence[Target | dict]
            Targets to look up.
        on_progress, on_result : Optional[Callable], default=None
            Forwarded to :meth:`scrape_batch`.
        """
        try:
            return asyncio.run(self._scrape_and_close(targets, on_progress, on_result))
        except RuntimeError as exc:
            if "asyncio.run() cannot be called from a running event loop" in str(exc):
                raise RuntimeError(
                    "scrape() cannot be called from an active event loop; "
                    "use `await scrape_batch(targets)` instead."
                ) from exc
            raise

    async def _scrape_and_close(self, targets: Sequence[TargetLike], on_progress: Optional[ProgressCallback],
                                on_result: Optional[ResultCallback]) -> List[PermitResult]:
        try:
            return await self.scrape_batch(targets, on_progress=on_progress, on_result=on_result)
        finally:
            await self.close()

    def persist(self, result: PermitResult):
        """Persist a result under a file name derived from its target."""
        return self.persist_result(result_key(Target(company=result.company, address=result.address)), result)

    @staticmethod
    def _notify(callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logging.exception("Batch callback failed")
