"""Baseline registry: records which baselines were written, when, and by which browser."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path

from snappit.models.baseline import BaselineEntry, BaselineRegistry

logger = logging.getLogger(__name__)


class BaselineRegistryManager:
    """Manages the JSON registry that sits next to the baseline images."""

    def __init__(self, registry_path: Path, screenshots_dir: Path):
        self.registry_path = Path(registry_path)
        self.screenshots_dir = Path(screenshots_dir)

    def load(self) -> BaselineRegistry:
        """Load registry from disk, or create a new one."""
        if self.registry_path.exists():
            try:
                with open(self.registry_path) as f:
                    data = json.load(f)
                return BaselineRegistry(**data)
            except Exception as e:
                logger.warning("Failed to load baseline registry: %s. Creating new.", e)
        return BaselineRegistry()

    def save(self, registry: BaselineRegistry) -> None:
        """Persist registry to disk."""
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        registry.last_updated = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        with open(self.registry_path, "w") as f:
            json.dump(registry.model_dump(), f, indent=2)
        logger.debug("Saved baseline registry to %s", self.registry_path)

    def _relative(self, image_path: Path) -> str:
        try:
            return Path(image_path).relative_to(self.screenshots_dir).as_posix()
        except ValueError:
            return Path(image_path).as_posix()

    def get_entry(self, registry: BaselineRegistry, image_path: Path) -> BaselineEntry | None:
        """Look up the entry for a baseline image, if it still exists on disk."""
        key = self._relative(image_path)
        entry = registry.baselines.get(key)
        if entry is None:
            return None
        if not Path(image_path).exists():
            logger.warning("Baseline image missing for %s: %s", entry.name, image_path)
            return None
        return entry

    def record(
        self,
        registry: BaselineRegistry,
        name: str,
        image_path: Path,
        outcome: str,
        browser_name: str = "",
        browser_version: str = "",
        browser_size: str = "",
    ) -> BaselineEntry:
        """Register a baseline image that was just written to ``image_path``."""
        from PIL import Image

        with Image.open(image_path) as img:
            width, height = img.size

        entry = BaselineEntry(
            name=name,
            image_path=self._relative(image_path),
            width=width,
            height=height,
            browser_name=browser_name,
            browser_version=browser_version,
            browser_size=browser_size,
            captured_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            outcome=outcome,
            image_hash=hashlib.sha256(Path(image_path).read_bytes()).hexdigest(),
        )
        registry.baselines[entry.image_path] = entry
        logger.info("Stored baseline for %s (%dx%d)", name, width, height)
        return entry
