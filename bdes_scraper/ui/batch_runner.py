"""Spreadsheet batch runner with a tqdm progress bar."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Dict

from tqdm import tqdm

from bdes_reports import generate_report, parse_input_file
from bdes_scraper.schemas import OutcomeStatus, PermitResult
from bdes_scraper.scrapers.bdes.scraper import BdesPermitScraper
from bdes_scraper.ui.utils import GREEN, RED, RESET, YELLOW


def run_batch(input_path: Path, output_path: Path, headless: bool = True) -> Dict[str, int]:
    """Scrape every company of a spreadsheet and write the results report.

    Each result is also persisted as JSON as soon as it is available, so an
    interrupted batch can still be reported with the folder conversion.

    Returns
    -------
    Dict[str, int]
        Number of results per final status.
    """
    targets = parse_input_file(input_path.read_bytes(), input_path.name)
    if not targets:
        raise ValueError("No companies found in file")

    scraper = BdesPermitScraper()
    scraper.set_headless(headless)
    counts: Counter = Counter()
    bar = tqdm(total=len(targets), desc="Permits", leave=True)

    def on_progress(_: float, company: str) -> None:
        bar.set_postfix_str(company[:40])

    def on_result(result: PermitResult) -> None:
        scraper.persist(result)
        counts[result.status.value] += 1
        bar.update(1)

    try:
        results = scraper.scrape(targets, on_progress=on_progress, on_result=on_result)
    finally:
        bar.close()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(generate_report(results))

    found = counts[OutcomeStatus.SUCCESS.value]
    errors = counts[OutcomeStatus.ERROR.value]
    other = len(results) - found - errors
    print(f"\n{GREEN}Permits found: {found}{RESET} | {YELLOW}Other outcomes: {other}{RESET} | {RED}Errors: {errors}{RESET}")
    return dict(counts)
