"""Configuration module for the BDES permits scraper.

This module defines application settings using Pydantic's settings management.
It loads environment variables via ``python-dotenv`` to simplify local development.
"""

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv


load_dotenv(override=True)

PACKAGE_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """
    Settings class for the BDES permits scraper.

    Parameters
    ----------
    API_HOST : str, default="0.0.0.0"
        Host address for the jobs API server.
    API_PORT : int, default=8000
        Port for the jobs API server.
    BDES_BASE_URL : str
        Map consultation page of the BDES portal.
    HEADLESS : bool, default=True
        Run Chromium without a visible window.
    NAVIGATION_TIMEOUT_MS : int, default=30000
        Budget for the initial portal page load.
    BATCH_DELAY_SECONDS : float, default=2.0
        Pause between two consecutive targets of a batch.
    MULTIPLE_PARCELS_THRESHOLD : int, default=2
        Parcel rows above this count flag the result as ``MULTIPLE_PARCELS``.
    VIEWPORT_WIDTH, VIEWPORT_HEIGHT : int
        Viewport of every isolated browser context.
    USER_AGENT : str
        User agent of every isolated browser context.
    BLOCKED_RESOURCE_TYPES : List[str], default=["media"]
        Request resource types aborted by the browser context.
    RESULTS_DIR : Path
        Directory receiving one JSON file per scraped target.
    LOG_FILE : Path
        File receiving the CLI logs.

    Returns
    -------
    Settings
        A validated settings object.

    See Also
    --------
    BaseSettings : Pydantic settings base class for environment variable loading.

    Examples
    --------
    >>> from bdes_scraper.configs.settings import Settings
    >>> settings = Settings()
    >>> settings.BATCH_DELAY_SECONDS
    2.0
    """

    API_HOST: str = Field(default="0.0.0.0", description="Host address for the jobs API server")
    API_PORT: int = Field(default=8000, description="Port for the jobs API server")

    BDES_BASE_URL: str = Field(
        default="https://bdes.spw.wallonie.be/portal/web/guest/app/-/consultation/carte",
        description="BDES map consultation page",
    )
    HEADLESS: bool = Field(default=True, description="Run the browser in headless mode")
    NAVIGATION_TIMEOUT_MS: int = Field(default=30000, description="Portal page load timeout in milliseconds")
    BATCH_DELAY_SECONDS: float = Field(default=2.0, description="Delay between two targets of a batch")
    MULTIPLE_PARCELS_THRESHOLD: int = Field(default=2, description="Parcel rows above this count mark MULTIPLE_PARCELS")

    VIEWPORT_WIDTH: int = Field(default=1920, description="Browser viewport width")
    VIEWPORT_HEIGHT: int = Field(default=1080, description="Browser viewport height")
    USER_AGENT: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        description="Browser user agent",
    )
    BLOCKED_RESOURCE_TYPES: List[str] = Field(default=["media"], description="Resource types to abort")

    RESULTS_DIR: Path = Field(default=PACKAGE_ROOT / "data" / "results", description="Per-target JSON results")
    LOG_FILE: Path = Field(default=PACKAGE_ROOT.parent / "logs.txt", description="CLI log file")


# Create a global instance of the settings
app_config = Settings()
