"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest
from PIL import Image
from playwright.async_api import ElementHandle, Page

from snappit.capture.geometry import (
    CONTENT_RECT_SCRIPT,
    ELEMENT_RECT_SCRIPT,
    IS_ROOT_SCRIPT,
    VIEWPORT_RECT_SCRIPT,
)
from snappit.capture.styles import (
    ADD_BACKDROP_SCRIPT,
    ADD_STYLE_SCRIPT,
    REMOVE_BACKDROP_SCRIPT,
    REMOVE_STYLE_SCRIPT,
)
from snappit.capture.tiles import SCROLL_SCRIPT
from snappit.capture.viewport import (
    ANCESTOR_AT_SCRIPT,
    ANCESTRY_SCRIPT,
    BRING_INTO_VIEW_SCRIPT,
    ROOT_SCRIPT,
)
from snappit.models.config import SnappitConfig
from snappit.models.raster import Raster


# ============================================================================
# Synthetic images
# ============================================================================


def pattern_image(width: int, height: int, seed: int = 0) -> Image.Image:
    """An RGBA image where every pixel below 4096x4096 has a unique colour.

    R/G are the low bytes of x/y, A encodes the high nibbles, B is the seed.
    Alpha is never zero, so unwritten (transparent) pixels stand out.
    """
    red = bytes(x & 255 for x in range(width)) * height
    green = b"".join(bytes([y & 255]) * width for y in range(height))
    blue = bytes([seed & 255]) * (width * height)
    row_base = [((x >> 8) << 4) + 15 for x in range(width)]
    rows = {}
    alpha_rows = []
    for y in range(height):
        hi = y >> 8
        if hi not in rows:
            rows[hi] = bytes((v + hi) & 255 for v in row_base)
        alpha_rows.append(rows[hi])
    alpha = b"".join(alpha_rows)
    bands = [Image.frombytes("L", (width, height), data) for data in (red, green, blue, alpha)]
    return Image.merge("RGBA", bands)


def solid_raster(width: int, height: int, color: tuple[int, int, int, int] = (255, 0, 0, 255)) -> Raster:
    return Raster(Image.new("RGBA", (width, height), color))


# ============================================================================
# Fake browser page
# ============================================================================


@dataclass(eq=False)
class FakeElement:
    """A box on the fake page, in CSS pixels relative to its parent's content."""

    name: str
    left: float = 0
    top: float = 0
    width: float = 0
    height: float = 0
    parent: Optional["FakeElement"] = None
    position: str = "static"
    overflow: str = "visible"
    scroll_width: Optional[float] = None
    scroll_height: Optional[float] = None
    scroll_x: float = 0
    scroll_y: float = 0
    seed: int = 0

    @property
    def content_width(self) -> float:
        return self.scroll_width if self.scroll_width is not None else self.width

    @property
    def content_height(self) -> float:
        return self.scroll_height if self.scroll_height is not None else self.height

    def __repr__(self) -> str:
        return f"<FakeElement {self.name}>"


class FakeDriver:
    """Stands in for PageDriver, rendering a synthetic page.

    The page is a document of ``doc_width`` x ``doc_height`` CSS pixels seen
    through a ``viewport_width`` x ``viewport_height`` window. Scroll
    containers render their own pattern (seeded differently) on top of the
    document. Scroll offsets are clamped like a browser does.

    ``content_offset_y`` shifts the document content up, as when a header
    above every element collapses; see ``collapse_header``.
    """

    def __init__(
        self,
        doc_width: int,
        doc_height: int,
        viewport_width: int,
        viewport_height: int,
        pixel_ratio: float = 1,
    ):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.pixel_ratio = pixel_ratio
        self.root = FakeElement("root", 0, 0, viewport_width, viewport_height,
                                overflow="auto", scroll_width=doc_width, scroll_height=doc_height)
        self.elements: dict[str, FakeElement] = {"root": self.root}
        self._images: dict[str, Image.Image] = {}
        self.styles: dict[str, str] = {}
        self.blacked_out: list[FakeElement] = []
        self.calls: list[tuple] = []
        self.screenshots_taken = 0
        self.fail_screenshot_at: int | None = None
        self.relayout = None  # optional callable(driver) run before each screenshot
        self.content_offset_y = 0
        self.scroll_locked = False

    # --- scene building ---

    def add(self, name: str, left: float, top: float, width: float, height: float,
            parent: str = "root", **kwargs: Any) -> FakeElement:
        element = FakeElement(name, left, top, width, height, parent=self.elements[parent], **kwargs)
        self.elements[name] = element
        return element

    def content_image(self, element: FakeElement) -> Image.Image:
        """The full rendered content of a scrolling element, in device pixels."""
        if element.name not in self._images:
            r = self.pixel_ratio
            self._images[element.name] = pattern_image(
                int(element.content_width * r), int(element.content_height * r), seed=element.seed,
            )
        return self._images[element.name]

    def reference(self, name: str) -> Raster:
        """What a single, unbounded screenshot of ``name`` would look like."""
        element = self.elements[name]
        r = self.pixel_ratio
        image = self.content_image(element.parent)
        top = element.top + (self.content_offset_y if element.parent is self.root else 0)
        box = (int(element.left * r), int(top * r),
               int((element.left + element.width) * r), int((top + element.height) * r))
        return Raster(image.crop(box))

    def collapse_header(self, height: float) -> None:
        """Remove ``height`` CSS pixels of document content above every element."""
        self.content_image(self.root)
        self.content_offset_y += height
        self.root.scroll_height -= height
        for element in self.elements.values():
            if element.parent is self.root:
                element.top -= height

    # --- geometry ---

    def window_origin(self, element: FakeElement) -> tuple[float, float]:
        """Window position of the element's border box."""
        if element is self.root:
            return 0, 0
        parent = element.parent
        if parent is self.root:
            return element.left - self.root.scroll_x, element.top - self.root.scroll_y
        px, py = self.window_origin(parent)
        return px + element.left - parent.scroll_x, py + element.top - parent.scroll_y

    def _client_rect(self, element: FakeElement) -> dict:
        x, y = self.window_origin(element)
        return {"left": x, "top": y, "width": element.width, "height": element.height}

    def _viewport_rect(self, element: FakeElement) -> dict:
        if element is self.root:
            return {"left": 0, "top": 0, "width": self.viewport_width, "height": self.viewport_height}
        return self._client_rect(element)

    def _content_rect(self, element: FakeElement) -> dict:
        if element is self.root:
            x, y = 0, 0
        else:
            x, y = self.window_origin(element)
        return {
            "left": x - element.scroll_x,
            "top": y - element.scroll_y,
            "width": element.content_width,
            "height": element.content_height,
        }

    def _ancestry(self, element: FakeElement) -> dict:
        ancestors = []
        node = element.parent
        while node is not None and node is not self.root:
            ancestors.append({
                "overflowX": node.overflow,
                "overflowY": node.overflow,
                "scrollWidth": node.content_width,
                "clientWidth": node.width,
                "scrollHeight": node.content_height,
                "clientHeight": node.height,
            })
            node = node.parent
        return {"position": element.position, "ancestors": ancestors}

    def _scroll(self, element: FakeElement, x: float, y: float) -> None:
        if self.scroll_locked:
            return
        element.scroll_x = min(max(x, 0), max(element.content_width - element.width, 0))
        element.scroll_y = min(max(y, 0), max(element.content_height - element.height, 0))

    def _bring_into_view(self, element: FakeElement) -> None:
        x, y = self.window_origin(element)
        if (x >= 0 and y >= 0 and x + element.width <= self.viewport_width
                and y + element.height <= self.viewport_height):
            return
        node = element
        while node.parent is not None:
            self._scroll(node.parent, node.left, node.top)
            node = node.parent

    # --- PageDriver surface ---

    async def execute_script(self, script: str, *args: Any) -> Any:
        self.calls.append((script, args))
        if script == ELEMENT_RECT_SCRIPT:
            return self._client_rect(args[0])
        if script == VIEWPORT_RECT_SCRIPT:
            return self._viewport_rect(args[0])
        if script == CONTENT_RECT_SCRIPT:
            return self._content_rect(args[0])
        if script == IS_ROOT_SCRIPT:
            return args[0] is self.root
        if script == ANCESTRY_SCRIPT:
            return self._ancestry(args[0])
        if script == SCROLL_SCRIPT:
            element = args[0]
            self._scroll(*args)
            return [element.scroll_x, element.scroll_y]
        if script == BRING_INTO_VIEW_SCRIPT:
            self._bring_into_view(args[0])
            return None
        if script == ADD_STYLE_SCRIPT:
            self.styles[args[0]] = args[1]
            return None
        if script == REMOVE_STYLE_SCRIPT:
            self.styles.pop(args[0], None)
            return None
        if script == ADD_BACKDROP_SCRIPT:
            self.blacked_out.append(args[0])
            return None
        if script == REMOVE_BACKDROP_SCRIPT:
            self.blacked_out.remove(args[0])
            return None
        raise AssertionError(f"Unexpected script: {script[:60]}")

    async def execute_script_for_element(self, script: str, *args: Any) -> Any:
        self.calls.append((script, args))
        if script == ROOT_SCRIPT:
            return self.root
        if script == ANCESTOR_AT_SCRIPT:
            node, depth = args
            for _ in range(depth):
                node = node.parent
            return node
        raise AssertionError(f"Unexpected element script: {script[:60]}")

    async def take_screenshot(self) -> bytes:
        self.screenshots_taken += 1
        if self.fail_screenshot_at == self.screenshots_taken:
            raise RuntimeError("Target page, context or browser has been closed")
        if self.relayout is not None:
            self.relayout(self)
        r = self.pixel_ratio
        sx, sy = self.root.scroll_x, self.root.scroll_y
        sy += self.content_offset_y
        frame = self.content_image(self.root).crop((
            int(sx * r), int(sy * r),
            int((sx + self.viewport_width) * r), int((sy + self.viewport_height) * r),
        ))
        for element in self.elements.values():
            if element.parent is self.root and element.scroll_width is not None:
                x, y = self.window_origin(element)
                content = self.content_image(element).crop((
                    int(element.scroll_x * r), int(element.scroll_y * r),
                    int((element.scroll_x + element.width) * r),
                    int((element.scroll_y + element.height) * r),
                ))
                frame.paste(content, (int(x * r), int(y * r)))
        return Raster(frame).to_png()

    async def device_pixel_ratio(self) -> float:
        return self.pixel_ratio

    async def element_size(self, element: FakeElement) -> dict:
        return {"width": element.width, "height": element.height}

    # --- helpers for assertions ---

    def scrolls(self) -> list[tuple]:
        return [args for script, args in self.calls if script == SCROLL_SCRIPT]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def snappit_config(tmp_path: Path) -> SnappitConfig:
    """A config writing baselines under a temp directory."""
    return SnappitConfig(
        browser="chromium",
        resolutions="1366x768",
        threshold=0.04,
        screenshots_dir=str(tmp_path / "screenshots"),
    )


@pytest.fixture
def temp_config_file(snappit_config: SnappitConfig, tmp_path: Path) -> Path:
    config_file = tmp_path / "snappit.json"
    snappit_config.save(config_file)
    return config_file


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.viewport_size = {"width": 1366, "height": 768}
    page.evaluate = AsyncMock()
    page.evaluate_handle = AsyncMock()
    page.screenshot = AsyncMock()
    page.query_selector = AsyncMock()
    page.goto = AsyncMock()
    page.set_viewport_size = AsyncMock()
    return page


@pytest.fixture
def mock_element() -> AsyncMock:
    """Create a mock Playwright element handle."""
    element = AsyncMock(spec=ElementHandle)
    element.bounding_box = AsyncMock(return_value={"x": 10, "y": 20, "width": 100, "height": 50})
    return element
