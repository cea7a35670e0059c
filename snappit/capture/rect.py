"""Axis-aligned pixel rectangles in device pixels."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Mapping


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _scale(value: float, pixel_ratio: float) -> int:
    return round_half_away(round_half_away(value) * pixel_ratio)


@dataclass(frozen=True)
class Rect:
    """A rectangle whose edges are whole device pixels.

    ``right`` and ``bottom`` are always ``left + width`` and ``top + height``.
    """

    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def from_edges(cls, left: int, top: int, right: int, bottom: int) -> Rect:
        return cls(left=left, top=top, right=right, bottom=bottom,
                   width=right - left, height=bottom - top)

    @classmethod
    def from_size(cls, left: int, top: int, width: int, height: int) -> Rect:
        return cls(left=left, top=top, right=left + width, bottom=top + height,
                   width=width, height=height)

    @classmethod
    def from_client_rect(cls, client: Mapping[str, float], pixel_ratio: float = 1) -> Rect:
        """Build a device-pixel Rect from a CSS-pixel client rect.

        Each of ``left``, ``top``, ``width`` and ``height`` is rounded to a
        whole CSS pixel first and only then multiplied by the pixel ratio, so
        neighbouring tiles share identical edges.
        """
        return cls.from_size(
            _scale(client["left"], pixel_ratio),
            _scale(client["top"], pixel_ratio),
            _scale(client["width"], pixel_ratio),
            _scale(client["height"], pixel_ratio),
        )

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def duplicate(self) -> Rect:
        return replace(self)

    def relative_to(self, origin: Rect) -> Rect:
        """Translate so that ``origin``'s top-left corner becomes (0, 0)."""
        return Rect.from_edges(
            self.left - origin.left,
            self.top - origin.top,
            self.right - origin.left,
            self.bottom - origin.top,
        )

    def with_pixel_ratio(self, pixel_ratio: float) -> Rect:
        """Scale CSS-pixel measurements into device pixels."""
        return Rect.from_size(
            _scale(self.left, pixel_ratio),
            _scale(self.top, pixel_ratio),
            _scale(self.width, pixel_ratio),
            _scale(self.height, pixel_ratio),
        )

    def intersect(self, other: Rect) -> Rect:
        # Empty overlaps come back with a non-positive width or height.
        return Rect.from_edges(
            max(self.left, other.left),
            max(self.top, other.top),
            min(self.right, other.right),
            min(self.bottom, other.bottom),
        )

    def __str__(self) -> str:
        return f"{self.width}x{self.height}+{self.left}+{self.top}"
