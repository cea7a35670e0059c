"""Element screenshot compositor: stitches viewport tiles into one raster.

Elements larger than their viewport are captured by scrolling the viewport
across them and copying the visible part of each tile into an output raster
the size of the whole element::

    +============+
    | Oversized  |
    |  Element   |
    +============+
    |----|----|--|
      ^0   ^1  ^2

The last tile of a row (or column) usually overlaps the previous one. The
cursor is pulled back so the tile's far edge lands exactly on the raster
edge, and the overlap is written with identical pixels.

The element is re-measured after every tile. If it moved (a sticky header
collapsing, say) the next scroll follows it, and a tile that does not show
the cursor pixel is retaken from the corrected position.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from playwright.async_api import ElementHandle

from snappit.capture.driver import PageDriver
from snappit.capture.geometry import measure_content, measure_element
from snappit.capture.rect import Rect
from snappit.capture.styles import suppressed_scrollbars
from snappit.capture.tiles import TileCapturer
from snappit.capture.viewport import ViewportDescriptor, resolve_viewport, viewport_for_content
from snappit.errors import CaptureError, EmptyElementError
from snappit.models.raster import Raster

logger = logging.getLogger(__name__)

Measure = Callable[[PageDriver, ElementHandle, float], Awaitable[Rect]]

# Consecutive tiles that may fail to show the cursor pixel before giving up.
MAX_STALLED_TILES = 3


class CursorState(str, Enum):
    SCANNING_ROW = "scanning-row"
    ROW_COMPLETE = "row-complete"
    DONE = "done"


@dataclass
class ScrollCursor:
    """How much of the element has been composited, in device pixels."""

    x: int = 0
    y: int = 0


class Compositor:
    """Captures one element per call. Not safe to share across concurrent tasks on one page."""

    def __init__(self, driver: PageDriver):
        self.driver = driver

    async def capture_element(self, element: ElementHandle, content: bool = False) -> Raster:
        """Capture ``element`` at full device resolution.

        With ``content=True`` the element's scrollable interior
        (scrollWidth x scrollHeight) is captured instead of its box.
        """
        pixel_ratio = await self.driver.device_pixel_ratio()

        if content:
            viewport = await viewport_for_content(self.driver, element, pixel_ratio)
            measure: Measure = measure_content
        else:
            await self._check_rendered(element)
            viewport = await resolve_viewport(self.driver, element, pixel_ratio)
            measure = measure_element

        async with suppressed_scrollbars(self.driver):
            return await self._stitch(element, viewport, measure, pixel_ratio)

    async def _check_rendered(self, element: ElementHandle) -> None:
        size = await self.driver.element_size(element)
        logger.debug("Element box: %sx%s", size["width"], size["height"])
        if size["width"] <= 0 or size["height"] <= 0:
            raise EmptyElementError(
                f"Element has no area to capture ({size['width']}x{size['height']})"
            )

    async def _stitch(
        self,
        element: ElementHandle,
        viewport: ViewportDescriptor,
        measure: Measure,
        pixel_ratio: float,
    ) -> Raster:
        tiles = TileCapturer(self.driver, pixel_ratio)

        # With the viewport at its origin, the element's offset from the
        # viewport is the scroll position that brings its top-left into view.
        position = await tiles.scroll_to(viewport, 0, 0)
        initial = (await measure(self.driver, element, pixel_ratio)).relative_to(viewport.rect)
        if initial.is_empty:
            raise EmptyElementError(f"Element has no area to capture ({initial.width}x{initial.height})")
        origin = (position[0] + initial.left, position[1] + initial.top)

        output = Raster.blank(initial.width, initial.height)
        cursor = ScrollCursor()
        row_bottom = initial.height
        stalled = 0
        state = CursorState.SCANNING_ROW
        logger.debug("Compositing %dx%d element through %s viewport (ratio %s)",
                     initial.width, initial.height, viewport.rect, pixel_ratio)

        while state != CursorState.DONE:
            if state == CursorState.ROW_COMPLETE:
                logger.debug("Starting row at y=%d", cursor.y)
                state = CursorState.SCANNING_ROW
            tile = await tiles.capture_at(viewport, origin[0] + cursor.x, origin[1] + cursor.y)
            current = await measure(self.driver, element, pixel_ratio)
            region = (
                current.intersect(viewport.rect)
                .intersect(Rect.from_size(0, 0, tile.width, tile.height))
            )
            if region.is_empty:
                raise CaptureError(
                    f"Element {current} is not visible through viewport {viewport.rect}"
                )

            # Where the visible part sits inside the element. The element may
            # have moved since the last tile, so the origin follows it.
            x = region.left - current.left
            y = region.top - current.top
            origin = (
                tiles.position[0] + current.left - viewport.rect.left,
                tiles.position[1] + current.top - viewport.rect.top,
            )
            if not (x <= cursor.x < x + region.width and y <= cursor.y < y + region.height):
                stalled += 1
                if stalled > MAX_STALLED_TILES:
                    raise CaptureError(
                        f"Scrolling {viewport.rect} viewport did not reveal element pixel "
                        f"({cursor.x}, {cursor.y}); tile showed {region.width}x{region.height} from ({x}, {y})"
                    )
                logger.debug("Tile %d missed (%d, %d), retrying", tiles.tiles_taken, cursor.x, cursor.y)
                continue
            stalled = 0

            # A clamped scroll shows pixels before the cursor. They are
            # rewritten, which pulls the tile back against the raster edge.
            width = min(region.width, initial.width - x)
            height = min(region.height, initial.height - y)
            logger.debug("Tile %d: %dx%d from (%d, %d) -> (%d, %d)",
                         tiles.tiles_taken, width, height, region.left, region.top, x, y)
            output.blit(tile, region.left, region.top, width, height, x, y)

            row_bottom = min(row_bottom, y + height)
            cursor.x = x + width
            if cursor.x >= initial.width:
                cursor.x = 0
                cursor.y = row_bottom
                row_bottom = initial.height
                state = CursorState.DONE if cursor.y >= initial.height else CursorState.ROW_COMPLETE

        logger.debug("Composited %dx%d from %d tiles", output.width, output.height, tiles.tiles_taken)
        return output


async def capture_element(driver: PageDriver, element: ElementHandle, content: bool = False) -> Raster:
    """Capture ``element`` with a fresh compositor."""
    return await Compositor(driver).capture_element(element, content=content)
