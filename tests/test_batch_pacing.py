"""Test serial batch processing and its pacing."""

from unittest.mock import AsyncMock, patch

import pytest

from bdes_scraper.schemas import OutcomeStatus, Target
from bdes_scraper.scrapers.base.steps import StepOutcome
from bdes_scraper.scrapers.bdes.workflow import SELECT_SUGGESTION
from conftest import ScriptedWorkflow


TARGETS = [
    Target(company="Alpha SA", address="Rue Alpha 1, Liège"),
    Target(company="Beta SPRL", address="Rue Beta 2, Namur"),
    Target(company="Gamma SRL", address="Rue Gamma 3, Mons"),
]


@pytest.mark.asyncio
async def test_targets_run_in_order_with_delay_between_them(make_scraper):
    scraper = make_scraper()
    with patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock) as sleep:
        results = await scraper.scrape_batch(TARGETS)

    assert [r.company for r in results] == [t.company for t in TARGETS]
    assert sleep.await_count == len(TARGETS) - 1
    assert all(call.args == (2.0,) for call in sleep.await_args_list)


@pytest.mark.asyncio
async def test_single_target_has_no_delay(make_scraper):
    with patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock) as sleep:
        results = await make_scraper().scrape_batch(TARGETS[:1])
    assert len(results) == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_progress_is_reported_before_each_target(make_scraper):
    progress = []
    collected = []
    with patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock):
        await make_scraper().scrape_batch(
            TARGETS,
            on_progress=lambda percent, company: progress.append((round(percent, 1), company)),
            on_result=collected.append,
        )
    assert progress == [(33.3, "Alpha SA"), (66.7, "Beta SPRL"), (100.0, "Gamma SRL")]
    assert [r.company for r in collected] == [t.company for t in TARGETS]


@pytest.mark.asyncio
async def test_failing_callbacks_do_not_stop_the_batch(make_scraper):
    def broken(*args):
        raise RuntimeError("ui gone")

    with patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock):
        results = await make_scraper().scrape_batch(TARGETS, on_progress=broken, on_result=broken)
    assert len(results) == len(TARGETS)


@pytest.mark.asyncio
async def test_a_failed_target_does_not_stop_the_batch(make_scraper):
    workflow = ScriptedWorkflow(script={SELECT_SUGGESTION: StepOutcome.failure("No address suggestions found")})
    with patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock):
        results = await make_scraper(workflow).scrape_batch([t.model_dump() for t in TARGETS])
    assert [r.status for r in results] == [OutcomeStatus.ADDRESS_NOT_FOUND] * 3


def test_sync_scrape_closes_the_browser(make_scraper):
    scraper = make_scraper()
    with patch("bdes_scraper.scrapers.bdes.scraper.asyncio.sleep", new_callable=AsyncMock):
        results = scraper.scrape(TARGETS[:2])
    assert len(results) == 2
    assert scraper.close_calls == 1
