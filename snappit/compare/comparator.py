"""Byte-exact screenshot comparison against a stored baseline."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import ImageChops

from snappit.models.comparison import (
    ComparisonResult,
    Match,
    MismatchAboveThreshold,
    NoBaseline,
    SizeMismatch,
)
from snappit.models.raster import Raster
from snappit.storage.baselines import load_baseline

logger = logging.getLogger(__name__)


def diff_ratio(new: Raster, baseline: Raster) -> float:
    """Count differing bytes (any RGBA channel) per pixel of the image.

    The denominator is the pixel count, not the byte count: a pixel whose
    four channels all changed contributes 4 / (width * height).
    """
    pixels = new.width * new.height
    if pixels == 0:
        return 0.0
    delta = ImageChops.difference(new.image, baseline.image).tobytes()
    differing = len(delta) - delta.count(0)
    return differing / pixels


def compare(new: Raster, baseline: Raster | None, threshold: float) -> ComparisonResult:
    """Classify ``new`` against ``baseline``.

    Never raises for content differences; the caller decides what each
    outcome means.
    """
    if not 0 <= threshold <= 1:
        raise ValueError(f"threshold must be between 0 and 1, got {threshold}")

    if baseline is None:
        return NoBaseline()

    if new.size != baseline.size:
        return SizeMismatch(new_size=new.size, baseline_size=baseline.size)

    ratio = diff_ratio(new, baseline)
    logger.debug("Pixel diff: %.4f (threshold: %.4f)", ratio, threshold)
    if ratio > threshold:
        return MismatchAboveThreshold(diff_ratio=ratio, threshold=threshold)
    return Match(diff_ratio=ratio)


def compare_to_baseline(raster: Raster, baseline_path: str | Path, threshold: float) -> ComparisonResult:
    """Compare a capture to the baseline stored at ``baseline_path``."""
    return compare(raster, load_baseline(baseline_path), threshold)
