"""Snapshot session: one browser page, its baselines, and the outcome policy."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence
from urllib.parse import urljoin

from playwright.async_api import Browser, ElementHandle, Page, Playwright, async_playwright

from snappit.capture.compositor import Compositor
from snappit.capture.driver import PageDriver
from snappit.capture.styles import blacked_out
from snappit.compare.comparator import compare_to_baseline
from snappit.errors import (
    ElementNotFoundError,
    NoBaselineError,
    NoSessionError,
    ScreenshotError,
    ScreenshotMismatchError,
    SizeMismatchError,
)
from snappit.models.comparison import ComparisonResult, OutcomeKind
from snappit.models.config import BrowserSize, SnappitConfig
from snappit.models.raster import Raster
from snappit.storage.baselines import build_baseline_path, save_baseline
from snappit.storage.registry import BaselineRegistryManager

logger = logging.getLogger(__name__)

_ERRORS: dict[OutcomeKind, type[ScreenshotError]] = {
    OutcomeKind.NO_BASELINE: NoBaselineError,
    OutcomeKind.SIZE_MISMATCH: SizeMismatchError,
    OutcomeKind.MISMATCH: ScreenshotMismatchError,
}


class Snappit:
    """A visual regression session bound to a single Playwright page.

    Either pass an existing ``page`` or call ``start()`` to launch the
    configured browser. Snaps on one session must be awaited one at a time:
    scroll position and injected styles are shared page state.
    """

    def __init__(self, config: SnappitConfig, page: Page | None = None):
        self.config = config
        self.page = page
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self.registry_manager = BaselineRegistryManager(
            registry_path=config.baseline_registry_path,
            screenshots_dir=Path(config.screenshots_dir),
        )

    async def start(self) -> Page:
        """Launch the browser at the first configured resolution."""
        if self.page is not None:
            return self.page

        size = self.config.sizes[0]
        self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, self.config.browser)
        logger.debug("Launching %s (headless=%s)...", self.config.browser, self.config.headless)
        self._browser = await browser_type.launch(headless=self.config.headless)
        context = await self._browser.new_context(
            viewport={"width": size.width, "height": size.height},
            device_scale_factor=self.config.device_scale_factor,
        )
        self.page = await context.new_page()
        logger.info("Started %s %s at %s", self.config.browser, self._browser.version, size)
        return self.page

    async def stop(self) -> None:
        """Close the browser if this session launched it."""
        try:
            if self._browser is not None:
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
        except Exception as e:
            logger.debug("Ignoring error while closing browser: %s", e)
        finally:
            if self._browser is not None:
                self.page = None
            self._browser = None
            self._playwright = None

    async def __aenter__(self) -> Snappit:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _require_page(self) -> Page:
        if self.page is None:
            raise NoSessionError()
        return self.page

    @property
    def driver(self) -> PageDriver:
        return PageDriver(self._require_page())

    async def goto(self, url: str) -> None:
        page = self._require_page()
        full_url = urljoin(self.config.base_url, url) if self.config.base_url else url
        logger.debug("Navigating to %s", full_url)
        await page.goto(full_url, wait_until="load")

    async def set_resolution(self, size: BrowserSize) -> None:
        await self._require_page().set_viewport_size({"width": size.width, "height": size.height})

    async def find(self, selector: str) -> ElementHandle:
        """Return the first element matching a CSS selector."""
        element = await self._require_page().query_selector(selector)
        if element is None:
            raise ElementNotFoundError(selector)
        return element

    async def _resolve(self, target: str | ElementHandle) -> ElementHandle:
        if isinstance(target, str):
            return await self.find(target)
        return target

    async def capture(
        self,
        target: str | ElementHandle,
        content: bool = False,
        blackout: Sequence[str | ElementHandle] = (),
    ) -> Raster:
        """Capture an element (or its scrollable content) without comparing."""
        driver = self.driver
        element = await self._resolve(target)
        hidden = [await self._resolve(b) for b in blackout]
        async with blacked_out(driver, hidden):
            return await Compositor(driver).capture_element(element, content=content)

    def _browser_info(self) -> tuple[str, str, str]:
        page = self.page
        browser = page.context.browser if page is not None else None
        name = browser.browser_type.name if browser is not None else self.config.browser
        version = browser.version if browser is not None else ""
        viewport = page.viewport_size if page is not None else None
        size = f"{viewport['width']}x{viewport['height']}" if viewport else ""
        return name, version, size

    def baseline_path(self, name: str) -> Path:
        browser_name, browser_version, browser_size = self._browser_info()
        return build_baseline_path(
            self.config.screenshots_dir, name,
            browser_name=browser_name,
            browser_version=browser_version,
            browser_size=browser_size,
        )

    async def snap(
        self,
        name: str,
        target: str | ElementHandle,
        content: bool = False,
        blackout: Sequence[str | ElementHandle] = (),
    ) -> ComparisonResult:
        """Capture ``target`` and compare it to the baseline stored for ``name``.

        The capture replaces the baseline when none exists, and on any
        mismatch when ``update_baselines`` is set. The outcome is then handed
        to the configured policy, which may raise a ``ScreenshotError``.
        """
        raster = await self.capture(target, content=content, blackout=blackout)
        path = self.baseline_path(name)
        result = compare_to_baseline(raster, path, self.config.threshold)
        logger.debug("%s: %s", name, result.kind.value)

        if self._should_persist(result):
            self._persist(name, path, raster, result)

        self._apply_policy(name, path, result)
        return result

    def _should_persist(self, result: ComparisonResult) -> bool:
        if result.kind == OutcomeKind.NO_BASELINE:
            return True
        return not result.passed and self.config.update_baselines

    def _persist(self, name: str, path: Path, raster: Raster, result: ComparisonResult) -> None:
        registry = self.registry_manager.load()
        previous = self.registry_manager.get_entry(registry, path)
        save_baseline(path, raster)
        if previous is not None:
            logger.info("%s: replacing %dx%d baseline captured at %s",
                        name, previous.width, previous.height, previous.captured_at)
        browser_name, browser_version, browser_size = self._browser_info()
        self.registry_manager.record(
            registry, name, path, result.kind.value,
            browser_name=browser_name,
            browser_version=browser_version,
            browser_size=browser_size,
        )
        self.registry_manager.save(registry)

    def _apply_policy(self, name: str, path: Path, result: ComparisonResult) -> None:
        action = self.config.action_for(result.kind)
        match action:
            case "raise":
                raise _ERRORS[result.kind](result, str(path))
            case "log":
                logger.warning("%s: %s", name, result.message)
            case _:
                if result.passed:
                    logger.info("%s: %s", name, result.message)
                else:
                    logger.debug("%s: %s (ignored)", name, result.message)
