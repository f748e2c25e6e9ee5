"""Spreadsheet input and output for BDES permit lookups.

This package reads the company list handed to the scraper and writes the
styled results report, either from in-memory results or from a folder of
persisted JSON results.
"""

from .inputs import parse_input_file
from .report import build_report_from_folder, generate_report, load_results

__all__ = ["build_report_from_folder", "generate_report", "load_results", "parse_input_file"]
