"""Results report generation.

The report is an xlsx workbook with a single "Results" sheet, one row per
target, whose status cells are coloured by outcome.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Iterable, List

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from pydantic import ValidationError

from bdes_scraper.schemas import OutcomeStatus, PermitResult


SHEET_NAME = "Results"

# (header, result field, column width)
REPORT_COLUMNS = [
    ("Company", "company", 30),
    ("Address", "address", 40),
    ("Latest Delivered Permit Date", "latest_permit_date", 25),
    ("Permit Page Link", "permit_page_link", 60),
    ("Status", "status", 20),
    ("Error Message", "error_message", 40),
]
STATUS_COLUMN = 5

HEADER_FILL = "FFE0E0E0"
STATUS_FILLS = {
    OutcomeStatus.SUCCESS.value: "FF90EE90",
    OutcomeStatus.ERROR.value: "FFFFB6C1",
    OutcomeStatus.NO_PERMIT_DATA.value: "FFFFE4B5",
}


def _solid(argb: str) -> PatternFill:
    return PatternFill(fill_type="solid", start_color=argb, end_color=argb)


def results_frame(results: Iterable[PermitResult]) -> pd.DataFrame:
    """Flatten results into the report columns; missing values become empty strings."""
    rows = []
    for result in results:
        payload = result.model_dump(mode="json")
        rows.append({header: payload.get(field) or "" for header, field, _ in REPORT_COLUMNS})
    return pd.DataFrame(rows, columns=[header for header, _, _ in REPORT_COLUMNS])


def _style_sheet(sheet: Worksheet) -> None:
    for index, (_, _, width) in enumerate(REPORT_COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width
        header = sheet.cell(row=1, column=index)
        header.font = Font(bold=True)
        header.fill = _solid(HEADER_FILL)

    for row in range(2, sheet.max_row + 1):
        cell = sheet.cell(row=row, column=STATUS_COLUMN)
        argb = STATUS_FILLS.get(cell.value)
        if argb:
            cell.fill = _solid(argb)


def generate_report(results: Iterable[PermitResult]) -> bytes:
    """Render results as an xlsx workbook.

    Parameters
    ----------
    results : Iterable[PermitResult]
        Results in the order they should appear.

    Returns
    -------
    bytes
        The workbook content.
    """
    frame = results_frame(results)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        _style_sheet(writer.sheets[SHEET_NAME])
    return buffer.getvalue()


def load_results(folder: Path) -> List[PermitResult]:
    """Load persisted JSON results from ``folder``, sorted by file name.

    Files that are not valid results are logged and skipped.
    """
    if not folder.exists() or not folder.is_dir():
        raise FileNotFoundError(f"Folder not found or not a directory: {folder}")
    results: List[PermitResult] = []
    for fp in sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == ".json"):
        try:
            results.append(PermitResult.model_validate_json(fp.read_text(encoding="utf-8")))
        except (OSError, ValidationError) as e:
            logging.warning("Skipping %s: %s", fp.name, e)
    return results


def build_report_from_folder(folder: Path, out_path: Path) -> int:
    """Write the report of every result persisted in ``folder``.

    Returns
    -------
    int
        Number of results written to the report.
    """
    results = load_results(Path(folder))
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(generate_report(results))
    return len(results)
