"""Base class for Playwright scrapers.

Owns the long-lived browser process and hands out one isolated browser
context per lookup. The process is started lazily and shared by every
lookup of the scraper instance; contexts are always closed when the
lookup ends, whatever its outcome.
"""

import json
import logging
import os
from abc import ABC
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional
from uuid import uuid4

from pydantic import BaseModel, PrivateAttr
from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright

from bdes_scraper.configs.settings import app_config


BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class PlaywrightBaseScraper(ABC, BaseModel):
    """Base class for Playwright scrapers."""

    _headless: bool = PrivateAttr(default=True)
    _viewport: dict = PrivateAttr(
        default_factory=lambda: {"width": app_config.VIEWPORT_WIDTH, "height": app_config.VIEWPORT_HEIGHT}
    )
    _user_agent: str = PrivateAttr(default_factory=lambda: app_config.USER_AGENT)
    _blocked_types: List[str] = PrivateAttr(default_factory=lambda: list(app_config.BLOCKED_RESOURCE_TYPES))
    _results_dir: Path = PrivateAttr(default_factory=lambda: app_config.RESULTS_DIR)
    _playwright: Optional[Playwright] = PrivateAttr(default=None)
    _browser: Optional[Browser] = PrivateAttr(default=None)

    def set_headless(self, value: bool) -> None:
        self._headless = value

    def set_results_dir(self, value: Path) -> None:
        self._results_dir = Path(value)

    async def initialize(self) -> None:
        """Start the shared browser process; no-op when it already runs."""
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self._headless, args=BROWSER_ARGS)
        except Exception:
            # A driver without a browser is never reused; stop it before the next attempt starts another.
            pw, self._playwright = self._playwright, None
            try:
                await pw.stop()
            except Exception:
                logging.exception("Failed to stop Playwright after a browser launch failure")
            raise
        logging.info("Browser started (headless=%s)", self._headless)

    async def close(self) -> None:
        """Stop the shared browser process; safe to call when it never started."""
        browser, self._browser = self._browser, None
        pw, self._playwright = self._playwright, None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if pw is not None:
                await pw.stop()
        if browser is not None:
            logging.info("Browser closed")

    @asynccontextmanager
    async def open_session(self) -> AsyncIterator[Page]:
        """Yield a page living in a fresh browser context.

        The context is closed on exit, including when the body raises.
        """
        await self.initialize()
        context: BrowserContext = await self._browser.new_context(
            viewport=self._viewport,
            user_agent=self._user_agent,
        )
        try:
            await self._configure_network_blocking(context)
            page: Page = await context.new_page()
            yield page
        finally:
            try:
                await context.close()
            except Exception:
                logging.exception("Failed to close browser context")

    async def _configure_network_blocking(self, context: BrowserContext) -> None:
        """Block non-essential resources to reduce bandwidth usage.

        Parameters
        ----------
        context : BrowserContext
            The Playwright browser context to configure.

        Notes
        -----
        Blocks the resource types configured in ``BLOCKED_RESOURCE_TYPES``
        (``media`` by default). Stylesheets, scripts and map tiles are kept:
        element visibility and the map bounding box depend on them.
        """
        blocked_types = set(self._blocked_types)
        if not blocked_types:
            return

        async def handler(route: Route):  # type: ignore[no-untyped-def]
            try:
                if route.request.resource_type in blocked_types:
                    await route.abort()
                else:
                    await route.continue_()
            except Exception:
                try:
                    await route.continue_()
                except Exception:
                    pass

        await context.route("**/*", handler)

    def persist_result(self, key: str, result: BaseModel) -> Optional[Path]:
        """Atomically persist a single result to a JSON file.

        This writes one JSON file per target (``<key>.json``) using an
        atomic replace to avoid partial writes and cross-process corruption.

        Parameters
        ----------
        key : str
            File name stem, already safe for the filesystem.
        result : BaseModel
            The result to serialize and persist.

        Returns
        -------
        Optional[Path]
            The path to the persisted result, ``None`` when writing failed.
        """
        try:
            out_dir = self._results_dir
            out_dir.mkdir(parents=True, exist_ok=True)
            final_path = out_dir / f"{key}.json"

            payload = json.dumps(result.model_dump(mode="json"), ensure_ascii=False, sort_keys=True, indent=2)

            # Write to a temp file in the same directory, then atomically replace
            tmp_path = out_dir / f".{key}.{uuid4().hex}.tmp"
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, final_path)
            return final_path
        except Exception as e:
            # Best-effort persistence; do not fail the scrape due to IO errors
            logging.exception("Failed to persist result for %s: %s", key, e)
            return None
