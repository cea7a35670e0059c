"""Thin async adapter over a Playwright page.

Everything the compositor needs from the browser goes through here: script
evaluation, raw viewport screenshots and CSS box queries. Nothing is retried
or caught; a Playwright error leaves the browser in an unknown scroll state,
so it is the caller's job to abort.
"""

from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import ElementHandle, Page

from snappit.errors import CaptureError

logger = logging.getLogger(__name__)

DEVICE_PIXEL_RATIO_SCRIPT = "() => window.devicePixelRatio"


class PageDriver:
    """The browser capabilities used by the capture pipeline."""

    def __init__(self, page: Page):
        self.page = page

    async def execute_script(self, script: str, *args: Any) -> Any:
        """Evaluate ``script`` in the page; positional args arrive as one array."""
        return await self.page.evaluate(script, list(args))

    async def execute_script_for_element(self, script: str, *args: Any) -> ElementHandle | None:
        """Evaluate ``script`` and return the element it produced, if any."""
        handle = await self.page.evaluate_handle(script, list(args))
        return handle.as_element()

    async def take_screenshot(self) -> bytes:
        """PNG bytes of the visible viewport, in device pixels."""
        return await self.page.screenshot(type="png", full_page=False, animations="disabled")

    async def device_pixel_ratio(self) -> float:
        ratio = await self.page.evaluate(DEVICE_PIXEL_RATIO_SCRIPT)
        return float(ratio or 1)

    async def _box(self, element: ElementHandle) -> dict:
        box = await element.bounding_box()
        if box is None:
            raise CaptureError("Element is not attached to the page or not rendered")
        return box

    async def element_size(self, element: ElementHandle) -> dict:
        box = await self._box(element)
        return {"width": box["width"], "height": box["height"]}
