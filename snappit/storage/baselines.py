"""Baseline image files: name-to-path mapping and PNG persistence."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from snappit.models.raster import Raster

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"\W+")


def build_baseline_path(
    screenshots_dir: str | Path,
    name: str,
    browser_name: str = "",
    browser_version: str = "",
    browser_size: str = "",
) -> Path:
    """Map a logical screenshot name to a PNG path under ``screenshots_dir``.

    ``name`` may contain ``/`` separated folders and the tokens
    ``{browserName}``, ``{browserVersion}`` and ``{browserSize}``. Every run of
    non-word characters inside a segment becomes ``-``, so
    ``"{browserName}/header.png"`` on Chromium 120 maps to
    ``<dir>/chromium/header.png``.
    """
    resolved = (
        name.replace("{browserName}", browser_name)
        .replace("{browserVersion}", browser_version)
        .replace("{browserSize}", browser_size)
    )
    resolved = re.sub(r"\.png$", "", resolved)

    segments = [
        _NON_WORD.sub("-", part)
        for part in resolved.replace("\\", "/").split("/")
        if part not in ("", "..", ".")
    ]
    if not segments:
        raise ValueError(f"Screenshot name '{name}' does not produce a file name")

    segments[-1] += ".png"
    return Path(screenshots_dir).joinpath(*segments)


def load_baseline(path: str | Path) -> Raster | None:
    """Read a baseline PNG, or ``None`` when none has been stored yet."""
    path = Path(path)
    if not path.exists():
        logger.debug("No baseline at %s", path)
        return None
    return Raster.load(path)


def save_baseline(path: str | Path, raster: Raster) -> Path:
    """Write ``raster`` as the baseline at ``path``, creating folders as needed."""
    saved = raster.save(path)
    logger.debug("Saved %dx%d baseline to %s", raster.width, raster.height, saved)
    return saved
