"""In-page measurements, converted to device-pixel Rects."""

from __future__ import annotations

from playwright.async_api import ElementHandle

from snappit.capture.driver import PageDriver
from snappit.capture.rect import Rect

# Root detection shared by the scripts below. In quirks mode the scrolling
# element is <body>, otherwise <html>.
IS_ROOT_EXPR = "(el === (document.scrollingElement || document.documentElement) || el === document.documentElement)"

IS_ROOT_SCRIPT = f"([el]) => {IS_ROOT_EXPR}"

ELEMENT_RECT_SCRIPT = """([el]) => {
    const rect = el.getBoundingClientRect();
    return {left: rect.left, top: rect.top, width: rect.width, height: rect.height};
}"""

VIEWPORT_RECT_SCRIPT = f"""([el]) => {{
    if {IS_ROOT_EXPR} {{
        // Scrolling the root moves the content, never the box itself.
        const docElement = document.documentElement;
        return {{left: 0, top: 0, width: docElement.clientWidth, height: docElement.clientHeight}};
    }}
    const rect = el.getBoundingClientRect();
    return {{
        left: rect.left + el.clientLeft,
        top: rect.top + el.clientTop,
        width: el.clientWidth,
        height: el.clientHeight,
    }};
}}"""

CONTENT_RECT_SCRIPT = f"""([el]) => {{
    if {IS_ROOT_EXPR} {{
        const root = document.scrollingElement || document.documentElement;
        return {{
            left: -window.scrollX,
            top: -window.scrollY,
            width: root.scrollWidth,
            height: root.scrollHeight,
        }};
    }}
    const rect = el.getBoundingClientRect();
    return {{
        left: rect.left + el.clientLeft - el.scrollLeft,
        top: rect.top + el.clientTop - el.scrollTop,
        width: el.scrollWidth,
        height: el.scrollHeight,
    }};
}}"""


async def measure_element(driver: PageDriver, element: ElementHandle, pixel_ratio: float) -> Rect:
    """The element's border box in window coordinates."""
    client = await driver.execute_script(ELEMENT_RECT_SCRIPT, element)
    return Rect.from_client_rect(client, pixel_ratio)


async def measure_viewport(driver: PageDriver, element: ElementHandle, pixel_ratio: float) -> Rect:
    """The clipping window of a scroll container (or of the document)."""
    client = await driver.execute_script(VIEWPORT_RECT_SCRIPT, element)
    return Rect.from_client_rect(client, pixel_ratio)


async def measure_content(driver: PageDriver, element: ElementHandle, pixel_ratio: float) -> Rect:
    """The element's full scrollable content, positioned at its current scroll offset."""
    client = await driver.execute_script(CONTENT_RECT_SCRIPT, element)
    return Rect.from_client_rect(client, pixel_ratio)
