"""Test that the shared browser process and its Playwright driver are always released."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from bdes_scraper.schemas import OutcomeStatus, Target
from bdes_scraper.scrapers.bdes.scraper import OPEN_SESSION_STEP, BdesPermitScraper
from conftest import ScriptedWorkflow


TARGETS = [
    Target(company="Alpha SA", address="Rue Alpha 1, Liège"),
    Target(company="Beta SPRL", address="Rue Beta 2, Namur"),
    Target(company="Gamma SRL", address="Rue Gamma 3, Mons"),
]


class FakeBrowser:
    def __init__(self) -> None:
        self.closed = 0

    async def close(self) -> None:
        self.closed += 1


class FakeDriver:
    """Started Playwright driver whose chromium launch succeeds or raises ``launch_error``."""

    def __init__(self, launch_error=None) -> None:
        self.launch_error = launch_error
        self.stopped = 0
        self.browsers = []
        self.chromium = SimpleNamespace(launch=self._launch)

    async def _launch(self, headless=True, args=None):
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser()
        self.browsers.append(browser)
        return browser

    async def stop(self) -> None:
        self.stopped += 1


class FakeDriverFactory:
    """Stand-in for ``async_playwright`` recording every driver it starts."""

    def __init__(self, launch_error=None) -> None:
        self.launch_error = launch_error
        self.drivers = []

    def __call__(self):
        return self

    async def start(self) -> FakeDriver:
        driver = FakeDriver(self.launch_error)
        self.drivers.append(driver)
        return driver


def make_real_scraper(tmp_path) -> BdesPermitScraper:
    scraper = BdesPermitScraper()
    scraper.set_workflow(ScriptedWorkflow())
    scraper.set_results_dir(tmp_path / "results")
    return scraper


@pytest.mark.asyncio
async def test_failed_launch_stops_each_driver(tmp_path):
    factory = FakeDriverFactory(launch_error=RuntimeError("Executable doesn't exist"))
    scraper = make_real_scraper(tmp_path)

    with patch("bdes_scraper.scrapers.base.playwright.async_playwright", factory), \
            patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock):
        results = await scraper.scrape_batch(TARGETS)
        await scraper.close()

    assert [r.status for r in results] == [OutcomeStatus.ERROR] * len(TARGETS)
    assert all(r.steps[-1].step == OPEN_SESSION_STEP for r in results)
    assert len(factory.drivers) == len(TARGETS)
    assert [driver.stopped for driver in factory.drivers] == [1] * len(TARGETS)


@pytest.mark.asyncio
async def test_initialize_reraises_the_launch_error(tmp_path):
    factory = FakeDriverFactory(launch_error=RuntimeError("Executable doesn't exist"))
    scraper = make_real_scraper(tmp_path)

    with patch("bdes_scraper.scrapers.base.playwright.async_playwright", factory):
        with pytest.raises(RuntimeError, match="Executable doesn't exist"):
            await scraper.initialize()

    assert factory.drivers[0].stopped == 1


@pytest.mark.asyncio
async def test_browser_is_started_once_and_closed_with_its_driver(tmp_path):
    factory = FakeDriverFactory()
    scraper = make_real_scraper(tmp_path)

    with patch("bdes_scraper.scrapers.base.playwright.async_playwright", factory):
        await scraper.initialize()
        await scraper.initialize()
        await scraper.close()
        await scraper.close()

    assert len(factory.drivers) == 1
    driver = factory.drivers[0]
    assert driver.stopped == 1
    assert [browser.closed for browser in driver.browsers] == [1]
