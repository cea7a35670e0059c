"""Configuration models for snappit."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from snappit.models.comparison import OutcomeKind

OutcomeAction = Literal["raise", "log", "ignore"]

MIN_DIMENSION = 1
MAX_DIMENSION = 9999


class BrowserSize(BaseModel):
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


def parse_resolutions(value: str) -> list[BrowserSize]:
    """Parse ``"1366x768, 375x812"`` into browser sizes."""
    sizes = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            width, height = (int(dim.strip()) for dim in chunk.lower().split("x"))
        except ValueError:
            raise ValueError(
                f"Invalid resolution '{chunk}': use a comma separated list in WIDTHxHEIGHT format"
            ) from None
        if not (MIN_DIMENSION <= width <= MAX_DIMENSION and MIN_DIMENSION <= height <= MAX_DIMENSION):
            raise ValueError(
                f"Invalid resolution '{chunk}': resolutions must be between "
                f"{MIN_DIMENSION}x{MIN_DIMENSION} and {MAX_DIMENSION}x{MAX_DIMENSION}"
            )
        sizes.append(BrowserSize(width=width, height=height))
    if not sizes:
        raise ValueError("At least one resolution is required")
    return sizes


class SnapTarget(BaseModel):
    """One named screenshot taken by ``snappit run``."""
    name: str
    url: str = ""  # absolute, or relative to base_url
    selector: str = "body"
    content: bool = False
    blackout: list[str] = Field(default_factory=list)


class SnappitConfig(BaseModel):
    # Browser
    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    resolutions: str = "1366x768"
    device_scale_factor: float = 1.0

    # Comparison
    threshold: float = 0.04

    # Baselines
    screenshots_dir: str = "./screenshots"
    registry_path: Optional[str] = None  # defaults to <screenshots_dir>/registry.json
    update_baselines: bool = True  # overwrite the baseline with the new capture on mismatch

    # What to do with each non-matching outcome
    outcome_policy: dict[OutcomeKind, OutcomeAction] = Field(
        default_factory=lambda: {
            OutcomeKind.NO_BASELINE: "log",
            OutcomeKind.SIZE_MISMATCH: "raise",
            OutcomeKind.MISMATCH: "raise",
        }
    )

    # Targets for the CLI
    base_url: str = ""
    targets: list[SnapTarget] = Field(default_factory=list)

    @field_validator("threshold")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("threshold must be a fraction between 0 and 1")
        return v

    @field_validator("resolutions")
    @classmethod
    def check_resolutions(cls, v: str) -> str:
        parse_resolutions(v)
        return v

    @field_validator("device_scale_factor")
    @classmethod
    def check_scale(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("device_scale_factor must be positive")
        return v

    @field_validator("outcome_policy")
    @classmethod
    def check_policy(cls, v: dict) -> dict:
        if OutcomeKind.MATCH in v:
            raise ValueError("a matching screenshot has no policy")
        return v

    @property
    def sizes(self) -> list[BrowserSize]:
        return parse_resolutions(self.resolutions)

    @property
    def baseline_registry_path(self) -> Path:
        if self.registry_path:
            return Path(self.registry_path)
        return Path(self.screenshots_dir) / "registry.json"

    def action_for(self, kind: OutcomeKind) -> OutcomeAction:
        if kind == OutcomeKind.MATCH:
            return "ignore"
        return self.outcome_policy.get(kind, "raise")

    @classmethod
    def load(cls, path: str | Path) -> "SnappitConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
