"""Viewport resolution: find the scroll container that clips an element."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from playwright.async_api import ElementHandle

from snappit.capture.driver import PageDriver
from snappit.capture.geometry import IS_ROOT_SCRIPT, measure_viewport
from snappit.capture.rect import Rect
from snappit.errors import CaptureError

logger = logging.getLogger(__name__)

SCROLLABLE_OVERFLOW = ("auto", "scroll", "overlay")
DETACHED_POSITIONS = ("absolute", "fixed")

ANCESTRY_SCRIPT = """([el]) => {
    const root = document.scrollingElement || document.documentElement;
    const ancestors = [];
    // <body> is checked like any other ancestor: it scrolls in layouts
    // where <html> has overflow hidden.
    for (let node = el.parentElement;
         node && node !== root && node !== document.documentElement;
         node = node.parentElement) {
        const style = getComputedStyle(node);
        ancestors.push({
            overflowX: style.overflowX,
            overflowY: style.overflowY,
            scrollWidth: node.scrollWidth,
            clientWidth: node.clientWidth,
            scrollHeight: node.scrollHeight,
            clientHeight: node.clientHeight,
        });
    }
    return {position: getComputedStyle(el).position, ancestors: ancestors};
}"""

ANCESTOR_AT_SCRIPT = """([el, depth]) => {
    let node = el;
    for (let i = 0; i < depth; i++) {
        node = node.parentElement;
    }
    return node;
}"""

ROOT_SCRIPT = "() => document.scrollingElement || document.documentElement"

# Scroll the document (and outer scrollers) until a container's top-left
# corner is inside the window. A container already fully in view is left alone.
BRING_INTO_VIEW_SCRIPT = """([el]) => {
    const rect = el.getBoundingClientRect();
    const docElement = document.documentElement;
    if (rect.left < 0 || rect.top < 0
            || rect.right > docElement.clientWidth || rect.bottom > docElement.clientHeight) {
        el.scrollIntoView({block: "start", inline: "start"});
    }
}"""


@dataclass(frozen=True)
class ViewportDescriptor:
    """The element whose scrolling reveals the target, and its clip rect."""

    element: ElementHandle
    rect: Rect
    is_root: bool = False


def _scrolls(overflow: str, scroll_size: float, client_size: float) -> bool:
    return overflow in SCROLLABLE_OVERFLOW and scroll_size > client_size


def pick_scroll_ancestor(position: str, ancestors: Sequence[dict[str, Any]]) -> int | None:
    """Index of the first ancestor that scrolls, or None for the document root.

    Absolute and fixed elements always resolve to the root: their offsets do
    not compose with an ancestor's scroll position.
    """
    if position in DETACHED_POSITIONS:
        return None
    for index, node in enumerate(ancestors):
        if (_scrolls(node["overflowX"], node["scrollWidth"], node["clientWidth"])
                or _scrolls(node["overflowY"], node["scrollHeight"], node["clientHeight"])):
            return index
    return None


async def _root_viewport(driver: PageDriver, pixel_ratio: float) -> ViewportDescriptor:
    root = await driver.execute_script_for_element(ROOT_SCRIPT)
    rect = await measure_viewport(driver, root, pixel_ratio)
    return ViewportDescriptor(element=root, rect=rect, is_root=True)


async def _container_viewport(driver: PageDriver, container: ElementHandle, pixel_ratio: float) -> ViewportDescriptor:
    """Viewport of a scroll container, brought into the window and clipped to it.

    Only the container scrolls while tiles are taken, so its clip rect must
    start inside the window. A container taller or wider than the window is
    clipped to what the window shows.
    """
    await driver.execute_script(BRING_INTO_VIEW_SCRIPT, container)
    rect = await measure_viewport(driver, container, pixel_ratio)
    window = await _root_viewport(driver, pixel_ratio)
    clipped = rect.intersect(window.rect)
    if clipped.is_empty:
        raise CaptureError(f"Scroll container {rect} is outside the window {window.rect}")
    return ViewportDescriptor(element=container, rect=clipped)


async def resolve_viewport(driver: PageDriver, element: ElementHandle, pixel_ratio: float) -> ViewportDescriptor:
    """Resolve the viewport through which ``element``'s box is visible."""
    ancestry = await driver.execute_script(ANCESTRY_SCRIPT, element)
    index = pick_scroll_ancestor(ancestry["position"], ancestry["ancestors"])
    if index is None:
        viewport = await _root_viewport(driver, pixel_ratio)
        logger.debug("Viewport is the document root (%s)", viewport.rect)
        return viewport

    container = await driver.execute_script_for_element(ANCESTOR_AT_SCRIPT, element, index + 1)
    viewport = await _container_viewport(driver, container, pixel_ratio)
    logger.debug("Viewport is ancestor %d (%s)", index + 1, viewport.rect)
    return viewport


async def viewport_for_content(driver: PageDriver, element: ElementHandle, pixel_ratio: float) -> ViewportDescriptor:
    """An element capturing its own scrollable content is its own viewport."""
    if await driver.execute_script(IS_ROOT_SCRIPT, element):
        rect = await measure_viewport(driver, element, pixel_ratio)
        return ViewportDescriptor(element=element, rect=rect, is_root=True)
    return await _container_viewport(driver, element, pixel_ratio)
