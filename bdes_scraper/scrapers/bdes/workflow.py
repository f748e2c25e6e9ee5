"""BDES map portal workflow.

The workflow walks the portal from its landing page to the procedures table
of the cadastral parcel found at an address:

navigate -> accept terms -> close help -> find address field -> search ->
pick suggestion -> identify tool -> click map -> identification results ->
parcel -> "Procédures" tab -> procedures table.

The step table returned by :meth:`BdesWorkflow.steps` is the single place
where failure semantics live: a step with ``on_failure=None`` is tolerant,
any other step ends the run with the attached outcome when it fails.
Steps mutate the shared page and must run in the declared order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from playwright.async_api import Locator, Page
from pydantic import BaseModel, Field

from bdes_scraper.configs.settings import app_config
from bdes_scraper.schemas.permit_result import OutcomeStatus, StepStatus, Target
from bdes_scraper.scrapers.base.locators import fold_label, locate
from bdes_scraper.scrapers.base.steps import (
    StepOutcome,
    StepTracker,
    WorkflowStep,
    click_center,
    click_with_fallbacks,
    wait_for_any,
)
from bdes_scraper.scrapers.bdes import selectors
from bdes_scraper.scrapers.bdes.classifier import WorkflowTerminal
from bdes_scraper.scrapers.bdes.extractor import ExtractionResult, extract_latest_permit, parse_procedures_table


NAVIGATE = "Navigate to portal"
ACCEPT_TERMS = "Accept terms of use"
CLOSE_HELP = "Close help dialog"
LOCATE_ADDRESS_FIELD = "Locate address field"
SUBMIT_ADDRESS = "Submit address search"
SELECT_SUGGESTION = "Select address suggestion"
ACTIVATE_IDENTIFY = "Activate identification tool"
CLICK_MAP = "Click on map"
READ_RESULTS = "Read identification results"
SELECT_PARCEL = "Select cadastral parcel"
OPEN_PROCEDURES = "Open Procédures tab"
EXTRACT_PROCEDURES = "Extract permit procedures"

PARCEL_HEADER_KEYWORDS = ("parcelles", "resultat", "identifiant", "capakey", "nom de la couche")
MIN_PARCEL_ROW_LENGTH = 5
MAX_PARCEL_ROWS = 50


def is_parcel_data_row(text: str, has_header_cells: bool = False) -> bool:
    """Tell a parcel data row from a header or title row of the results table.

    Examples
    --------
    >>> is_parcel_data_row("Parcelles (3)")
    False
    >>> is_parcel_data_row("63023A0123/00B000 HERVE 1 DIV")
    True
    """
    if has_header_cells:
        return False
    folded = fold_label(" ".join((text or "").split()))
    if len(folded) < MIN_PARCEL_ROW_LENGTH:
        return False
    return not any(keyword in folded for keyword in PARCEL_HEADER_KEYWORDS)


@dataclass
class BdesSession:
    """State shared by the steps of one run."""

    page: Page
    target: Target
    search_input: Optional[Locator] = None
    parcel_count: Optional[int] = None
    permit_page_link: Optional[str] = None
    extraction: Optional[ExtractionResult] = None


class BdesWorkflow(BaseModel):
    """Step table and step actions for the BDES map portal.

    Parameters
    ----------
    base_url : str
        Map consultation page.
    navigation_timeout_ms : int
        Budget of the initial page load.
    multiple_parcels_threshold : int
        Parcel rows above this count flag the run as ``MULTIPLE_PARCELS``.
    """

    base_url: str = Field(default_factory=lambda: app_config.BDES_BASE_URL)
    navigation_timeout_ms: int = Field(default_factory=lambda: app_config.NAVIGATION_TIMEOUT_MS)
    multiple_parcels_threshold: int = Field(default_factory=lambda: app_config.MULTIPLE_PARCELS_THRESHOLD)

    def steps(self) -> List[WorkflowStep]:
        """Return the ordered step table."""
        return [
            WorkflowStep(NAVIGATE, self.navigate, on_failure=OutcomeStatus.ERROR),
            WorkflowStep(ACCEPT_TERMS, self.accept_terms),
            WorkflowStep(CLOSE_HELP, self.close_help),
            WorkflowStep(LOCATE_ADDRESS_FIELD, self.locate_address_field, on_failure=OutcomeStatus.ADDRESS_NOT_FOUND),
            WorkflowStep(SUBMIT_ADDRESS, self.submit_address, on_failure=OutcomeStatus.ADDRESS_NOT_FOUND),
            WorkflowStep(SELECT_SUGGESTION, self.select_suggestion, on_failure=OutcomeStatus.ADDRESS_NOT_FOUND,
                         settle_ms=2000),
            WorkflowStep(ACTIVATE_IDENTIFY, self.activate_identify_tool, on_failure=OutcomeStatus.ADDRESS_NOT_FOUND,
                         settle_ms=5000),
            WorkflowStep(CLICK_MAP, self.click_map, on_failure=OutcomeStatus.ADDRESS_NOT_FOUND),
            WorkflowStep(READ_RESULTS, self.read_identification_results, settle_ms=1000),
            WorkflowStep(SELECT_PARCEL, self.select_parcel, on_failure=OutcomeStatus.ADDRESS_NOT_FOUND),
            WorkflowStep(OPEN_PROCEDURES, self.open_procedures_tab, on_failure=OutcomeStatus.NO_PERMIT_DATA),
            WorkflowStep(EXTRACT_PROCEDURES, self.extract_procedures, on_failure=OutcomeStatus.NO_PERMIT_DATA),
        ]

    def has_multiple_parcels(self, session: BdesSession) -> bool:
        return session.parcel_count is not None and session.parcel_count > self.multiple_parcels_threshold

    async def run(self, session: BdesSession, tracker: StepTracker) -> WorkflowTerminal:
        """Run the step table until it completes or a fatal step fails.

        Unexpected exceptions raised by fatal steps propagate to the caller.
        """
        for step in self.steps():
            record = await tracker.run(step.name, lambda step=step: self._attempt(step, session))
            if record.status is StepStatus.ERROR and not step.tolerant:
                return WorkflowTerminal(
                    failed_step=step.name,
                    failure_status=step.on_failure,
                    failure_message=record.message,
                )
        latest = session.extraction.latest_date if session.extraction else None
        return WorkflowTerminal(latest_permit_date=latest)

    async def _attempt(self, step: WorkflowStep, session: BdesSession) -> StepOutcome:
        if step.settle_ms:
            await session.page.wait_for_timeout(step.settle_ms)
        if not step.tolerant:
            return await step.action(session)
        try:
            return await step.action(session)
        except Exception as exc:
            logging.warning("Tolerated failure in %s: %s", step.name, exc)
            return StepOutcome.failure(f"Ignored: {exc}")

    # ------------------------
    # Step actions
    # ------------------------
    async def navigate(self, session: BdesSession) -> StepOutcome:
        page = session.page
        await page.goto(self.base_url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        await page.wait_for_timeout(3000)
        return StepOutcome.success(f"Loaded {page.url}")

    async def accept_terms(self, session: BdesSession) -> StepOutcome:
        """Tick the "J'ai lu" checkbox and press "Accepter" when the terms dialog shows."""
        page = session.page
        checked = False
        checkbox = await locate(page, selectors.TERMS_CHECKBOX)
        if checkbox is not None:
            try:
                await checkbox.locator.check(timeout=2000)
                checked = True
                await page.wait_for_timeout(500)
            except Exception as exc:
                logging.warning("Terms checkbox could not be checked: %s", exc)

        accept = await locate(page, selectors.TERMS_ACCEPT)
        if accept is None:
            return StepOutcome.success("Terms checkbox checked" if checked else "Terms dialog not shown")
        if await click_with_fallbacks(accept.locator) is None:
            return StepOutcome.failure("Could not click the Accepter button")
        await page.wait_for_timeout(2000)
        return StepOutcome.success("Terms accepted")

    async def close_help(self, session: BdesSession) -> StepOutcome:
        page = session.page
        close = await locate(page, selectors.HELP_CLOSE)
        if close is None:
            return StepOutcome.success("Help dialog not shown")
        if await click_with_fallbacks(close.locator) is None:
            return StepOutcome.failure("Could not close the help dialog")
        await page.wait_for_timeout(1500)
        return StepOutcome.success("Help dialog closed")

    async def locate_address_field(self, session: BdesSession) -> StepOutcome:
        page = session.page
        located = await wait_for_any(page, selectors.ADDRESS_INPUT, timeout_ms=15000)
        if located is None:
            return StepOutcome.failure("Address search field not found")
        session.search_input = located.locator
        await page.wait_for_timeout(1000)
        return StepOutcome.success(f"Address field found ({located.strategy})")

    async def submit_address(self, session: BdesSession) -> StepOutcome:
        """Fill the address, then click the search icon or press Enter."""
        page = session.page
        field = session.search_input
        if field is None:
            return StepOutcome.failure("Address search field not available")
        await field.fill(session.target.address)
        await page.wait_for_timeout(2000)

        icon = await locate(page, selectors.SEARCH_ICON)
        if icon is not None:
            technique = await click_with_fallbacks(icon.locator)
            if technique is not None:
                await page.wait_for_timeout(2000)
                return StepOutcome.success(f"Search icon clicked ({icon.strategy})")

        await field.press("Enter")
        await page.wait_for_timeout(3000)
        return StepOutcome.success("Search submitted with Enter")

    async def select_suggestion(self, session: BdesSession) -> StepOutcome:
        page = session.page
        located = await wait_for_any(page, selectors.ADDRESS_SUGGESTION, timeout_ms=5000)
        if located is None:
            return StepOutcome.failure("No address suggestions found")
        await page.wait_for_timeout(1000)
        try:
            label = " ".join((await located.locator.inner_text()).split())
        except Exception:
            label = ""
        if await click_with_fallbacks(located.locator) is None:
            return StepOutcome.failure("Could not click the first address suggestion")
        await page.wait_for_timeout(3000)
        return StepOutcome.success(f"Suggestion selected: {label}" if label else "Suggestion selected")

    async def activate_identify_tool(self, session: BdesSession) -> StepOutcome:
        """Click the identify ("stethoscope") control of the map toolbar."""
        page = session.page
        await self._dismiss_overlay(page)

        strategies = selectors.IDENTIFY_TOOL + selectors.IDENTIFY_TOOLBAR_HEURISTIC + selectors.IDENTIFY_TOOLBAR_POSITION
        located = await locate(page, strategies)
        if located is None:
            return StepOutcome.failure("Identification tool not found")

        # The advanced identify marker class sits on a span inside the actual button.
        target = located.locator
        parent = target.locator("xpath=ancestor-or-self::*[self::button or @role='button'][1]")
        try:
            if await parent.count() > 0:
                target = parent.first
        except Exception:
            pass

        technique = await click_with_fallbacks(target, timeout_ms=3000)
        if technique is None:
            return StepOutcome.failure(f"Identification tool could not be clicked ({located.strategy})")
        await page.wait_for_timeout(2000)
        return StepOutcome.success(f"Identification tool activated ({located.strategy}, {technique})")

    async def _dismiss_overlay(self, page: Page) -> None:
        overlay = await locate(page, selectors.MODAL_OVERLAY)
        if overlay is None:
            return
        close = await locate(page, selectors.OVERLAY_CLOSE)
        if close is not None and await click_with_fallbacks(close.locator) is not None:
            logging.info("Overlay closed before identify tool activation")
        else:
            await page.mouse.click(10, 10)
        await page.wait_for_timeout(1000)

    async def click_map(self, session: BdesSession) -> StepOutcome:
        page = session.page
        located = await locate(page, selectors.MAP_SURFACE)
        if located is None:
            return StepOutcome.failure("Map surface not found")
        if not await click_center(page, located.locator):
            return StepOutcome.failure("Map surface has no bounding box")
        await page.wait_for_timeout(3000)
        return StepOutcome.success(f"Map clicked ({located.strategy})")

    async def read_identification_results(self, session: BdesSession) -> StepOutcome:
        page = session.page
        located = await wait_for_any(page, selectors.IDENTIFY_RESULTS, timeout_ms=10000)
        if located is None:
            # Slow identify queries still land after this; the parcel step decides.
            await page.wait_for_timeout(5000)
            return StepOutcome.failure("Identification results panel not detected")
        return StepOutcome.success(f"Results panel found ({located.strategy})")

    async def select_parcel(self, session: BdesSession) -> StepOutcome:
        """Open the first parcel listed by the identification results."""
        page = session.page
        start_url = page.url

        rows: List[Locator] = []
        table = await locate(page, selectors.PARCEL_TABLE)
        if table is not None:
            rows = await self._parcel_rows(table.locator)
        session.parcel_count = len(rows)
        if self.has_multiple_parcels(session):
            logging.info("%s parcels listed for %s", len(rows), session.target.address)

        if rows:
            row = rows[0]
            row_clicked = False
            try:
                await row.click(timeout=3000)
                row_clicked = True
                await page.wait_for_timeout(2000)
            except Exception as exc:
                logging.warning("Parcel row click failed: %s", exc)
            if row_clicked and page.url != start_url:
                session.permit_page_link = page.url
                return StepOutcome.success(f"Parcel opened ({len(rows)} listed)")

            link = row.locator("a")
            try:
                has_link = await link.count() > 0
            except Exception:
                has_link = False
            if has_link and await click_with_fallbacks(link.first, timeout_ms=3000) is not None:
                await page.wait_for_timeout(2000)
                session.permit_page_link = page.url
                return StepOutcome.success(f"Parcel link opened ({len(rows)} listed)")

            if row_clicked:
                session.permit_page_link = page.url
                return StepOutcome.success(f"Parcel row selected, URL unchanged ({len(rows)} listed)")

        link = await locate(page, selectors.PARCEL_LINK)
        if link is not None and await click_with_fallbacks(link.locator, timeout_ms=3000) is not None:
            await page.wait_for_timeout(2000)
            session.permit_page_link = page.url
            return StepOutcome.success(f"Parcel opened ({link.strategy})")

        return StepOutcome.failure("No parcels found for this address")

    async def _parcel_rows(self, table: Locator) -> List[Locator]:
        rows = table.locator("tr")
        found: List[Locator] = []
        for index in range(min(await rows.count(), MAX_PARCEL_ROWS)):
            row = rows.nth(index)
            try:
                text = await row.inner_text()
                has_header_cells = await row.locator("th").count() > 0
            except Exception:
                continue
            if is_parcel_data_row(text, has_header_cells):
                found.append(row)
        return found

    async def open_procedures_tab(self, session: BdesSession) -> StepOutcome:
        page = session.page
        try:
            await page.wait_for_load_state("networkidle", timeout=10000)
        except Exception as exc:
            logging.warning("Parcel page did not settle: %s", exc)
        located = await wait_for_any(page, selectors.PROCEDURES_TAB, timeout_ms=5000)
        if located is None:
            return StepOutcome.failure("Procédures tab not found")
        if await click_with_fallbacks(located.locator) is None:
            return StepOutcome.failure("Procédures tab not found: tab could not be clicked")
        await page.wait_for_timeout(2000)
        return StepOutcome.success(f"Procédures tab opened ({located.strategy})")

    async def extract_procedures(self, session: BdesSession) -> StepOutcome:
        page = session.page
        located = await wait_for_any(page, selectors.PROCEDURES_TABLE, timeout_ms=10000)
        if located is None:
            return StepOutcome.failure("Procedures table not found")
        html = await located.locator.evaluate("el => el.outerHTML")
        extraction = extract_latest_permit(parse_procedures_table(html))
        session.extraction = extraction
        if extraction.latest_date:
            return StepOutcome.success(
                f"Latest delivered permit {extraction.latest_date} ({extraction.strategy} strategy)"
            )
        return StepOutcome.success(f"No delivered permit in table ({extraction.strategy} strategy)")
