"""On-page style injection used while capturing.

Two scoped helpers:

* ``suppressed_scrollbars`` hides scrollbar chrome so it never ends up in
  composited pixels.
* ``blacked_out`` covers elements with dynamic content (relative dates,
  counters) with a black backdrop, so text changes do not register as
  visual regressions.

Both remove what they injected on exit, including when the body raised.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from playwright.async_api import ElementHandle

from snappit.capture.driver import PageDriver

logger = logging.getLogger(__name__)

SCROLLBAR_STYLE_ID = "scrollbars-hidden-by-snappit"
SCROLLBAR_CSS = "::-webkit-scrollbar { display: none !important; } * { scrollbar-width: none !important; }"

BLACKOUT_STYLE_ID = "blackout-styles-added-by-snappit"
BLACKOUT_BACKDROP_CLASS = "blackout-backdrop-added-by-snappit"
BLACKOUT_TARGET_CLASS = "blackout-target-added-by-snappit"
BLACKOUT_CSS = (
    f".{BLACKOUT_BACKDROP_CLASS} {{ background: black !important; }} "
    f".{BLACKOUT_TARGET_CLASS} {{ opacity: 0 !important; }}"
)

ADD_STYLE_SCRIPT = """([styleId, css]) => {
    const style = document.createElement("style");
    style.id = styleId;
    style.type = "text/css";
    style.textContent = css;
    (document.head || document.documentElement).appendChild(style);
}"""

REMOVE_STYLE_SCRIPT = """([styleId]) => {
    const style = document.getElementById(styleId);
    if (style) {
        style.remove();
    }
}"""

ADD_BACKDROP_SCRIPT = f"""([el]) => {{
    el.classList.add("{BLACKOUT_TARGET_CLASS}");
    const backdrop = document.createElement("div");
    backdrop.classList.add("{BLACKOUT_BACKDROP_CLASS}");
    el.parentElement.insertBefore(backdrop, el);
    backdrop.appendChild(el);
}}"""

REMOVE_BACKDROP_SCRIPT = f"""([el]) => {{
    el.classList.remove("{BLACKOUT_TARGET_CLASS}");
    const backdrop = el.parentNode;
    if (!backdrop || !backdrop.classList || !backdrop.classList.contains("{BLACKOUT_BACKDROP_CLASS}")) {{
        return;
    }}
    const fragment = document.createDocumentFragment();
    while (backdrop.firstChild) {{
        fragment.appendChild(backdrop.firstChild);
    }}
    backdrop.parentNode.replaceChild(fragment, backdrop);
}}"""


async def _run(driver: PageDriver, action: str, script: str, *args) -> None:
    try:
        await driver.execute_script(script, *args)
    except Exception as e:
        logger.error("Error %s: %s", action, e)
        raise


@asynccontextmanager
async def suppressed_scrollbars(driver: PageDriver) -> AsyncIterator[None]:
    """Hide scrollbars for the duration of the block."""
    await _run(driver, "attempting to drop scrollbars before screenshot",
               ADD_STYLE_SCRIPT, SCROLLBAR_STYLE_ID, SCROLLBAR_CSS)
    try:
        yield
    finally:
        await _run(driver, "replacing scrollbars after screenshot",
                   REMOVE_STYLE_SCRIPT, SCROLLBAR_STYLE_ID)


@asynccontextmanager
async def blacked_out(driver: PageDriver, elements: Sequence[ElementHandle]) -> AsyncIterator[None]:
    """Black out ``elements`` for the duration of the block."""
    if not elements:
        yield
        return

    await _run(driver, "adding blackout styles", ADD_STYLE_SCRIPT, BLACKOUT_STYLE_ID, BLACKOUT_CSS)
    wrapped: list[ElementHandle] = []
    try:
        for element in elements:
            await _run(driver, "adding blackout backdrop", ADD_BACKDROP_SCRIPT, element)
            wrapped.append(element)
        logger.debug("Blacked out %d elements", len(wrapped))
        yield
    finally:
        for element in wrapped:
            await _run(driver, "removing blackout backdrop", REMOVE_BACKDROP_SCRIPT, element)
        await _run(driver, "removing blackout styles", REMOVE_STYLE_SCRIPT, BLACKOUT_STYLE_ID)
