"""Terminal UI for building a report from persisted JSON results."""

from __future__ import annotations

import sys
from pathlib import Path

from .report import build_report_from_folder


def _prompt(text: str) -> str:
    return input(text).strip()


def run() -> None:
    folder = Path(_prompt("Enter path to folder with JSON results: ")).expanduser().resolve()
    if not folder.is_dir():
        print(f"Folder not found: {folder}")
        sys.exit(2)

    out_path = Path(_prompt("Enter output report path (e.g., results.xlsx): ")).expanduser().resolve()
    if out_path.suffix.lower() != ".xlsx":
        print("Unsupported output format. Use .xlsx")
        sys.exit(3)

    count = build_report_from_folder(folder, out_path)
    print(f"Results in report: {count}")
    print(f"Report written to: {out_path}")


if __name__ == "__main__":
    run()
