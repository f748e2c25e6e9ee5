"""CLI menu entrypoint and shared flows."""

from __future__ import annotations

from pathlib import Path

from bdes_reports import build_report_from_folder
from bdes_scraper.configs.settings import app_config
from bdes_scraper.ui.batch_runner import run_batch
from bdes_scraper.ui.utils import (
    BOLD,
    CYAN,
    RED,
    RESET,
    check_connection,
    connection_status_text,
    parse_yes_no,
    setup_file_logging,
)


def print_banner() -> None:
    banner = f"""
{BOLD}{CYAN}===================================
   BDES Wallonia Permits Scraper
==================================={RESET}
"""
    print(banner)


def print_portal_status() -> None:
    is_up = check_connection(url=app_config.BDES_BASE_URL)
    print(connection_status_text(app_config.BDES_BASE_URL, is_up))


def prompt_menu() -> str:
    print("1. Scrape permits from a spreadsheet (company + address)")
    print("2. Build report from a folder of JSON results")
    print("3. Exit")
    return input(f"\n{BOLD}Select an option [1-3]: {RESET}").strip()


def main() -> None:
    setup_file_logging(app_config.LOG_FILE)
    print_banner()
    print_portal_status()
    while True:
        print()
        choice = prompt_menu()
        print()

        if choice == "1":
            input_path = Path(input("Enter input spreadsheet path (.xlsx/.csv): ").strip()).expanduser().resolve()
            if not input_path.exists():
                print(f"{RED}Input path not found: {input_path}{RESET}")
                continue
            headless = parse_yes_no(input(f"Run headless? [Y/n] (default: {app_config.HEADLESS}): "), app_config.HEADLESS)
            output_path = Path(input("Enter output report path (e.g., results.xlsx): ").strip()).expanduser().resolve()
            print(f"\n{BOLD}Running BDES scraper...{RESET}")
            try:
                run_batch(input_path, output_path, headless=headless)
                print(f"Report written to: {BOLD}{output_path}{RESET}")
                print(f"JSON results in: {BOLD}{app_config.RESULTS_DIR}{RESET}")
            except Exception as e:
                print(f"{RED}Scrape failed: {e}{RESET}")
            input(f"\n{BOLD}Press Enter to return to menu...{RESET}")
            continue

        if choice == "2":
            default_folder = app_config.RESULTS_DIR
            folder_str = input(f"Enter path to folder with JSON results (default: {default_folder}): ").strip()
            out_str = input("Enter output report path (e.g., results.xlsx): ").strip()
            folder = Path(folder_str).expanduser().resolve() if folder_str else default_folder
            out_path = Path(out_str).expanduser().resolve()
            try:
                count = build_report_from_folder(folder, out_path)
                print(f"Reported {count} results into: {BOLD}{out_path}{RESET}")
            except Exception as e:
                print(f"{RED}Report failed: {e}{RESET}")
            input(f"\n{BOLD}Press Enter to return to menu...{RESET}")
            continue

        if choice == "3":
            print("Goodbye!")
            break

        print(f"{RED}Invalid option. Please select 1, 2, or 3.{RESET}\n")


if __name__ == "__main__":
    main()
