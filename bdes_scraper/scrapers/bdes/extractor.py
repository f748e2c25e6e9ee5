"""Procedures table parsing and latest delivered permit date extraction.

The procedures tab of a BDES parcel lists administrative procedures, one per
row. The most recent start date among rows whose status reads
``Permis délivré`` is the value reported for the parcel.

Two strategies are used:

1. Column-based: locate the ``Date de début`` and ``Statut`` columns from
   the header row and read those cells only.
2. Free-text: when a column cannot be identified, scan the whole text of
   every row mentioning ``Permis délivré`` and take its first
   ``DD/MM/YYYY`` date.

Both strategies fold rows with a strict greater-than maximum, so the first
row holding the maximum date wins.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date
from typing import List, Literal, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, Field

from bdes_scraper.schemas.permit_result import PermitProcedureRow


DELIVERED_MARKER = "Permis délivré"
NO_DELIVERED_MESSAGE = "No 'Permis délivré' entries found"
DATE_PATTERN = re.compile(r"(\d{2}/\d{2}/\d{4})")

DATE_HEADERS = ("date de début", "date de debut")
STATUS_HEADERS = ("statut", "status")


class ProceduresTable(BaseModel):
    """Text snapshot of a procedures table.

    Parameters
    ----------
    headers : List[str]
        Cell texts of the header row.
    rows : List[List[str]]
        Cell texts of every data row.
    row_texts : List[str]
        Whole text of every data row, aligned with ``rows``.
    """

    headers: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)
    row_texts: List[str] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Outcome of the date extraction."""

    latest_date: Optional[str] = None
    strategy: Literal["columns", "text"]
    delivered_rows: int = 0


def clean_text(value: Optional[str]) -> str:
    """NFC-normalize, replace non-breaking spaces and collapse whitespace."""
    if not value:
        return ""
    value = unicodedata.normalize("NFC", value).replace("\xa0", " ")
    return " ".join(value.split())


def _cell_text(cell: Tag) -> str:
    return clean_text(cell.get_text(" ", strip=True))


def parse_procedures_table(html: str) -> ProceduresTable:
    """Build a :class:`ProceduresTable` from the table's HTML.

    Handles ``<table>`` markup (with or without ``<thead>``) and ARIA grids
    made of ``[role=row]`` elements. The first row is the header row when
    there is no ``<thead>``.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    root = soup.find("table") or soup

    header_cells: List[Tag] = []
    body_rows: List[Tuple[List[Tag], Tag]] = []

    trs = root.find_all("tr")
    if trs:
        thead = root.find("thead")
        header_tr = thead.find("tr") if thead is not None else None
        if header_tr is not None:
            data_trs = [tr for tr in trs if tr.find_parent("thead") is None]
        else:
            header_tr, data_trs = trs[0], trs[1:]
        header_cells = header_tr.find_all(["th", "td"])
        for tr in data_trs:
            cells = tr.find_all("td") or tr.select('[role="gridcell"], [role="cell"]')
            body_rows.append((cells, tr))
    else:
        role_rows = root.select('[role="row"]')
        if role_rows:
            header_cells = role_rows[0].select('[role="columnheader"], [role="gridcell"], [role="cell"]')
            for row in role_rows[1:]:
                body_rows.append((row.select('[role="gridcell"], [role="cell"]'), row))

    return ProceduresTable(
        headers=[_cell_text(c) for c in header_cells],
        rows=[[_cell_text(c) for c in cells] for cells, _ in body_rows],
        row_texts=[_cell_text(row) for _, row in body_rows],
    )


def parse_permit_date(text: Optional[str]) -> Optional[Tuple[date, str]]:
    """Return the first ``DD/MM/YYYY`` date of ``text`` and its literal form.

    Text without such a date, or with an impossible calendar date, yields ``None``.
    """
    if not text:
        return None
    match = DATE_PATTERN.search(text)
    if match is None:
        return None
    literal = match.group(1)
    day, month, year = (int(part) for part in literal.split("/"))
    try:
        return date(year, month, day), literal
    except ValueError:
        return None


def find_columns(headers: Sequence[str]) -> Tuple[Optional[int], Optional[int]]:
    """Return ``(date_index, status_index)``; a later matching header wins."""
    date_index: Optional[int] = None
    status_index: Optional[int] = None
    for index, header in enumerate(headers):
        normalized = header.lower().strip()
        if any(h in normalized for h in DATE_HEADERS):
            date_index = index
        if any(h in normalized for h in STATUS_HEADERS):
            status_index = index
    return date_index, status_index


def rows_by_columns(table: ProceduresTable, date_index: int, status_index: int) -> List[PermitProcedureRow]:
    """Read status/date pairs from the identified columns; short rows are skipped."""
    rows: List[PermitProcedureRow] = []
    for cells in table.rows:
        if status_index >= len(cells):
            continue
        date_text = cells[date_index] if date_index < len(cells) else None
        rows.append(PermitProcedureRow(status_text=cells[status_index], date_text=date_text))
    return rows


def rows_by_text(table: ProceduresTable) -> List[PermitProcedureRow]:
    """Read status/date pairs from whole row texts, keeping the first date of each row."""
    rows: List[PermitProcedureRow] = []
    for text in table.row_texts:
        match = DATE_PATTERN.search(text)
        rows.append(PermitProcedureRow(status_text=text, date_text=match.group(1) if match else None))
    return rows


def latest_delivered_date(rows: Sequence[PermitProcedureRow]) -> Tuple[Optional[str], int]:
    """Fold rows into the latest delivered permit date.

    Returns
    -------
    Tuple[Optional[str], int]
        The latest date as written on the portal (``None`` if there is none)
        and the number of delivered rows seen.
    """
    latest: Optional[Tuple[date, str]] = None
    delivered = 0
    for row in rows:
        if DELIVERED_MARKER not in row.status_text:
            continue
        delivered += 1
        parsed = parse_permit_date(row.date_text)
        if parsed is None:
            continue
        if latest is None or parsed[0] > latest[0]:
            latest = parsed
    return (latest[1] if latest else None), delivered


def extract_by_columns(table: ProceduresTable) -> Optional[ExtractionResult]:
    """Column-based extraction; ``None`` when a column cannot be identified."""
    date_index, status_index = find_columns(table.headers)
    if date_index is None or status_index is None:
        return None
    latest, delivered = latest_delivered_date(rows_by_columns(table, date_index, status_index))
    return ExtractionResult(latest_date=latest, strategy="columns", delivered_rows=delivered)


def extract_by_text(table: ProceduresTable) -> ExtractionResult:
    """Free-text extraction over whole row texts."""
    latest, delivered = latest_delivered_date(rows_by_text(table))
    return ExtractionResult(latest_date=latest, strategy="text", delivered_rows=delivered)


def extract_latest_permit(table: ProceduresTable) -> ExtractionResult:
    """Column-based extraction, falling back to free-text extraction."""
    return extract_by_columns(table) or extract_by_text(table)
