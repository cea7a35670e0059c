"""In-memory RGBA rasters backed by Pillow."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image


class Raster:
    """A width x height RGBA pixel buffer."""

    def __init__(self, image: Image.Image):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        self.image = image

    @classmethod
    def blank(cls, width: int, height: int) -> Raster:
        return cls(Image.new("RGBA", (width, height), (0, 0, 0, 0)))

    @classmethod
    def from_png(cls, data: bytes) -> Raster:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return cls(img.convert("RGBA"))

    @classmethod
    def load(cls, path: str | Path) -> Raster:
        return cls.from_png(Path(path).read_bytes())

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def data(self) -> bytes:
        """Packed RGBA bytes, row-major."""
        return self.image.tobytes()

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_png())
        return path

    def blit(
        self,
        source: Raster,
        source_x: int,
        source_y: int,
        width: int,
        height: int,
        dest_x: int,
        dest_y: int,
    ) -> None:
        """Copy a ``width`` x ``height`` region of ``source`` into this raster."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Cannot blit an empty region ({width}x{height})")
        if (source_x < 0 or source_y < 0
                or source_x + width > source.width or source_y + height > source.height):
            raise ValueError(
                f"Source region {width}x{height}+{source_x}+{source_y} "
                f"is outside the {source.width}x{source.height} source"
            )
        if (dest_x < 0 or dest_y < 0
                or dest_x + width > self.width or dest_y + height > self.height):
            raise ValueError(
                f"Destination region {width}x{height}+{dest_x}+{dest_y} "
                f"is outside the {self.width}x{self.height} raster"
            )
        region = source.image.crop((source_x, source_y, source_x + width, source_y + height))
        self.image.paste(region, (dest_x, dest_y))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self.size == other.size and self.data == other.data

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height})"
