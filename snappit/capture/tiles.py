"""Tile capture: scroll a viewport and grab what is visible."""

from __future__ import annotations

import logging

from snappit.capture.driver import PageDriver
from snappit.capture.geometry import IS_ROOT_EXPR
from snappit.capture.rect import round_half_away
from snappit.capture.viewport import ViewportDescriptor
from snappit.models.raster import Raster

logger = logging.getLogger(__name__)

# Returns the scroll offset the browser settled on, which is clamped to the
# scrollable range and may differ from the one requested.
SCROLL_SCRIPT = f"""([el, x, y]) => {{
    if {IS_ROOT_EXPR} {{
        window.scrollTo(x, y);
        return [window.scrollX, window.scrollY];
    }}
    el.scrollTo(x, y);
    return [el.scrollLeft, el.scrollTop];
}}"""


class TileCapturer:
    """Positions a viewport at device-pixel offsets and screenshots it.

    Offsets are tracked in device pixels; scroll APIs take CSS pixels, hence
    the division by the pixel ratio.
    """

    def __init__(self, driver: PageDriver, pixel_ratio: float):
        self.driver = driver
        self.pixel_ratio = pixel_ratio
        self.tiles_taken = 0
        self.position = (0, 0)

    async def scroll_to(self, viewport: ViewportDescriptor, x: int, y: int) -> tuple[int, int]:
        """Scroll to ``(x, y)`` and return where the viewport actually ended up."""
        actual = await self.driver.execute_script(
            SCROLL_SCRIPT, viewport.element, x / self.pixel_ratio, y / self.pixel_ratio,
        )
        self.position = (
            round_half_away(actual[0] * self.pixel_ratio),
            round_half_away(actual[1] * self.pixel_ratio),
        )
        if self.position != (x, y):
            logger.debug("Scroll to (%d, %d) settled at %s", x, y, self.position)
        return self.position

    async def capture_at(self, viewport: ViewportDescriptor, x: int, y: int) -> Raster:
        await self.scroll_to(viewport, x, y)
        return await self.capture()

    async def capture(self) -> Raster:
        """Screenshot the viewport at its current scroll position."""
        tile = Raster.from_png(await self.driver.take_screenshot())
        self.tiles_taken += 1
        logger.debug("Tile %d: %dx%d", self.tiles_taken, tile.width, tile.height)
        return tile
