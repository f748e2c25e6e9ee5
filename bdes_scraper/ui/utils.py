"""UI utilities: logging setup, colours and portal reachability."""

from __future__ import annotations

import logging
import ssl
import urllib.request
from pathlib import Path


GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
BOLD = "\033[1m"
RESET = "\033[0m"


def setup_file_logging(log_file: Path) -> None:
    """Configure file-only logging for the CLI."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.touch(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
        force=True,
    )


def parse_yes_no(raw: str, default: bool) -> bool:
    """Read a y/n answer; blank keeps the default.

    Examples
    --------
    >>> parse_yes_no("", True), parse_yes_no("n", True), parse_yes_no("Yes", False)
    (True, False, True)
    """
    raw = raw.strip().lower()
    if not raw:
        return default
    return raw in {"y", "yes", "true", "1", "o", "oui"}


def check_connection(url: str, timeout: float = 5.0) -> bool:
    """Check reachability of a given HTTPS URL via HEAD request.

    Parameters
    ----------
    url : str
        Endpoint to check.
    timeout : float, default=5.0
        Timeout in seconds for the network check.

    Returns
    -------
    bool
        ``True`` if the endpoint appears reachable; ``False`` otherwise.
    """
    try:
        req = urllib.request.Request(url, method="HEAD", headers={"User-Agent": "Mozilla/5.0"})
        with urllib.request.urlopen(req, timeout=timeout, context=ssl.create_default_context()) as resp:
            return 200 <= getattr(resp, "status", 200) < 500
    except Exception as e:  # noqa: BLE001 - best-effort network check
        logging.warning("Portal unreachable (%s): %s", url, e)
        return False


def connection_status_text(url: str, is_up: bool) -> str:
    """Return a colored status line for portal reachability."""
    if is_up:
        return f"{url} Connection status: {GREEN}available{RESET}"
    return (
        f"{url} Connection status: {RED}unavailable{RESET}"
        f" {YELLOW}(hint: the BDES portal may be under maintenance){RESET}"
    )
