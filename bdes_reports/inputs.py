"""Company list parsing.

Input files are spreadsheets maintained by hand, so the header is not
always on the first row and its labels vary between French and English.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import List, Sequence, Tuple

import pandas as pd

from bdes_scraper.schemas import Target


HEADER_SCAN_ROWS = 5
COMPANY_KEYWORDS = ("entreprise", "company", "nom")
ADDRESS_KEYWORDS = ("ville", "city", "adresse", "address")
EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
MISSING_COLUMNS_MESSAGE = "Could not find 'Company' and 'Address' columns in the file"


def _cell_text(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def read_rows(content: bytes, filename: str) -> List[List[str]]:
    """Read the first sheet (or the CSV) as rows of trimmed cell strings."""
    suffix = Path(filename).suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(BytesIO(content), sheet_name=0, header=None, dtype=object, engine="openpyxl")
    elif suffix == ".csv":
        df = pd.read_csv(BytesIO(content), header=None, dtype=str, keep_default_na=False, skip_blank_lines=False)
    else:
        raise ValueError(f"Unsupported input format: {suffix or filename}. Use .xlsx or .csv")
    return [[_cell_text(v) for v in row] for row in df.itertuples(index=False, name=None)]


def find_header(rows: Sequence[Sequence[str]]) -> Tuple[int, int, int]:
    """Locate the company and address columns within the first rows.

    Returns
    -------
    Tuple[int, int, int]
        Header row index, company column index and address column index.

    Raises
    ------
    ValueError
        When either column is missing from the scanned rows.

    Examples
    --------
    >>> find_header([["Liste 2024"], ["Nom entreprise", "Adresse"], ["ACME", "Herve"]])
    (1, 0, 1)
    """
    header_row, company_col, address_col = 0, -1, -1
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        for j, value in enumerate(row):
            cell = value.lower().strip()
            if any(keyword in cell for keyword in COMPANY_KEYWORDS):
                company_col, header_row = j, i
            if any(keyword in cell for keyword in ADDRESS_KEYWORDS):
                address_col, header_row = j, i
        if company_col != -1 and address_col != -1:
            break

    if company_col == -1 or address_col == -1:
        raise ValueError(MISSING_COLUMNS_MESSAGE)
    return header_row, company_col, address_col


def parse_input_file(content: bytes, filename: str) -> List[Target]:
    """Parse the uploaded company list into lookup targets.

    Parameters
    ----------
    content : bytes
        Raw file content.
    filename : str
        Original file name; its extension selects the reader.

    Returns
    -------
    List[Target]
        Targets in file order. Rows missing a company or an address are skipped.

    Raises
    ------
    ValueError
        On an unsupported extension or when the header cannot be found.
    """
    rows = read_rows(content, filename)
    header_row, company_col, address_col = find_header(rows)

    targets: List[Target] = []
    for row in rows[header_row + 1:]:
        company = row[company_col] if company_col < len(row) else ""
        address = row[address_col] if address_col < len(row) else ""
        if company and address:
            targets.append(Target(company=company, address=address))
    return targets
