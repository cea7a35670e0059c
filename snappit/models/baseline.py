"""Baseline registry data structures."""

from __future__ import annotations

from pydantic import BaseModel, Field


class BaselineEntry(BaseModel):
    name: str
    image_path: str  # relative path from screenshots_dir to the PNG
    width: int
    height: int
    browser_name: str = ""
    browser_version: str = ""
    browser_size: str = ""
    captured_at: str  # ISO timestamp
    outcome: str  # the comparison outcome that caused the write
    image_hash: str  # SHA-256 hex digest


class BaselineRegistry(BaseModel):
    last_updated: str = ""
    baselines: dict[str, BaselineEntry] = Field(default_factory=dict)
    # key: image_path
