"""In-memory stand-ins for the parts of Playwright's Page/Locator API the scraper uses."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import pytest
from pydantic import Field, PrivateAttr

from bdes_scraper.scrapers.base.steps import StepOutcome
from bdes_scraper.scrapers.bdes.extractor import ExtractionResult
from bdes_scraper.scrapers.bdes.scraper import BdesPermitScraper
from bdes_scraper.scrapers.bdes.workflow import EXTRACT_PROCEDURES, SELECT_PARCEL, BdesWorkflow


PARCEL_URL = "https://bdes.spw.wallonie.be/portal/parcelle/63023A0123-00B000"


@dataclass
class FakeElement:
    text: str = ""
    visible: bool = True
    attrs: Dict[str, str] = field(default_factory=dict)
    html: str = ""
    box: Optional[Dict[str, float]] = None
    children: Dict[str, "FakeLocator"] = field(default_factory=dict)
    broken: bool = False
    click_error: Optional[Exception] = None
    force_click_error: Optional[Exception] = None
    clicks: List[str] = field(default_factory=list)
    filled: List[str] = field(default_factory=list)


class FakeLocator:
    """A list of fake elements; ``error`` makes ``count`` raise."""

    def __init__(self, elements: Optional[List[FakeElement]] = None, error: Optional[Exception] = None) -> None:
        self.elements = list(elements or [])
        self.error = error

    def _element(self) -> FakeElement:
        if not self.elements:
            raise TimeoutError("element not found")
        element = self.elements[0]
        if element.broken:
            raise RuntimeError("element detached")
        return element

    async def count(self) -> int:
        if self.error is not None:
            raise self.error
        return len(self.elements)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.elements[index:index + 1])

    @property
    def first(self) -> "FakeLocator":
        return self.nth(0)

    def locator(self, selector: str) -> "FakeLocator":
        return self._element().children.get(selector, FakeLocator())

    async def is_visible(self) -> bool:
        return self._element().visible

    async def get_attribute(self, name: str) -> Optional[str]:
        return self._element().attrs.get(name)

    async def inner_text(self) -> str:
        return self._element().text

    async def evaluate(self, expression: str) -> Any:
        return self._element().html

    async def bounding_box(self) -> Optional[Dict[str, float]]:
        return self._element().box

    async def click(self, timeout: Optional[int] = None, force: bool = False) -> None:
        element = self._element()
        error = element.force_click_error if force else element.click_error
        if error is not None:
            raise error
        element.clicks.append("force-click" if force else "click")

    async def dispatch_event(self, event: str) -> None:
        self._element().clicks.append(f"dispatch:{event}")

    async def check(self, timeout: Optional[int] = None) -> None:
        self._element().clicks.append("check")

    async def fill(self, value: str) -> None:
        self._element().filled.append(value)

    async def press(self, key: str) -> None:
        self._element().clicks.append(f"press:{key}")


class FakeMouse:
    def __init__(self) -> None:
        self.clicks: List[tuple] = []

    async def click(self, x: float, y: float) -> None:
        self.clicks.append((x, y))


class FakePage:
    """Page whose selectors resolve from a dict.

    ``get_by_role`` resolves ``"role=<role>"`` and ``get_by_text`` resolves ``"text"``.
    """

    def __init__(self, selectors: Optional[Dict[str, FakeLocator]] = None, url: str = "about:blank") -> None:
        self.selectors = selectors or {}
        self.url = url
        self.waits: List[int] = []
        self.visited: List[str] = []
        self.mouse = FakeMouse()

    def locator(self, selector: str) -> FakeLocator:
        return self.selectors.get(selector, FakeLocator())

    def get_by_role(self, role: str, name: Any = None) -> FakeLocator:
        return self.selectors.get(f"role={role}", FakeLocator())

    def get_by_text(self, pattern: Any) -> FakeLocator:
        return self.selectors.get("text", FakeLocator())

    async def wait_for_timeout(self, ms: int) -> None:
        self.waits.append(ms)

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        return None

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[int] = None) -> None:
        self.visited.append(url)
        self.url = url


class ScriptedWorkflow(BdesWorkflow):
    """Workflow keeping the real step table and runner, with scripted step actions.

    ``script`` maps a step name to a :class:`StepOutcome` to return or an
    exception to raise. Unscripted steps succeed; the parcel step lists
    ``parcel_count`` parcels and the extraction step finds ``latest_date``.
    """

    script: Dict[str, Any] = Field(default_factory=dict)
    parcel_count: int = 1
    latest_date: Optional[str] = "15/06/2022"

    def steps(self):
        return [replace(step, action=self._scripted(step.name)) for step in super().steps()]

    def _scripted(self, name: str):
        async def action(session):
            entry = self.script.get(name)
            if isinstance(entry, Exception):
                raise entry
            if isinstance(entry, StepOutcome):
                return entry
            if name == SELECT_PARCEL:
                session.parcel_count = self.parcel_count
                session.permit_page_link = PARCEL_URL
            if name == EXTRACT_PROCEDURES:
                session.extraction = ExtractionResult(latest_date=self.latest_date, strategy="columns")
            return StepOutcome.success(f"{name} done")

        return action


class FakeSessionScraper(BdesPermitScraper):
    """Scraper whose browser sessions are fake pages; ``open_error`` fails the session."""

    _open_error: Optional[Exception] = PrivateAttr(default=None)
    _pages: List[FakePage] = PrivateAttr(default_factory=list)
    _close_calls: int = PrivateAttr(default=0)

    @property
    def pages(self) -> List[FakePage]:
        return self._pages

    @property
    def close_calls(self) -> int:
        return self._close_calls

    def set_open_error(self, error: Exception) -> None:
        self._open_error = error

    @asynccontextmanager
    async def open_session(self):
        if self._open_error is not None:
            raise self._open_error
        page = FakePage()
        self._pages.append(page)
        yield page

    async def close(self) -> None:
        self._close_calls += 1
        await super().close()


@pytest.fixture
def make_scraper(tmp_path):
    """Build a fake-session scraper running the given scripted workflow."""

    def _make(workflow: Optional[BdesWorkflow] = None) -> FakeSessionScraper:
        scraper = FakeSessionScraper()
        scraper.set_workflow(workflow or ScriptedWorkflow())
        scraper.set_results_dir(tmp_path / "results")
        return scraper

    return _make
