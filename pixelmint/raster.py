# pixelmint/raster.py
"""
The paintable raster and its local persistence.

The raster is a fixed 32x32 grid of color strings stored row-major.
Anything that does not satisfy that shape is replaced by a blank raster
rather than passed on.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

logger = logging.getLogger(__name__)

WIDTH = 32
HEIGHT = 32
DEFAULT_COLOR = "#ffffff"
STORAGE_KEY = "pixel-canvas-v1"


@dataclass
class Raster:
    """
    A width x height grid of colors.

    Attributes:
        width: Number of columns
        height: Number of rows
        pixels: One color per cell, row-major (len == width * height)
    """
    width: int = WIDTH
    height: int = HEIGHT
    pixels: Sequence[str] = field(default_factory=lambda: [DEFAULT_COLOR] * (WIDTH * HEIGHT))

    @classmethod
    def blank(cls) -> "Raster":
        return cls(width=WIDTH, height=HEIGHT, pixels=[DEFAULT_COLOR] * (WIDTH * HEIGHT))

    def is_valid(self) -> bool:
        return (
            self.width == WIDTH
            and self.height == HEIGHT
            and isinstance(self.pixels, (list, tuple))
            and len(self.pixels) == WIDTH * HEIGHT
        )

    def index(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell ({x}, {y}) outside {self.width}x{self.height} raster")
        return y * self.width + x

    def snapshot(self) -> "Raster":
        """Immutable copy taken at publication start."""
        return Raster(width=self.width, height=self.height, pixels=tuple(self.pixels))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "pixels": list(self.pixels),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Raster":
        return cls(
            width=data["width"],
            height=data["height"],
            pixels=data["pixels"],
        )


class RasterStore:
    """
    File-backed raster for the editing session.

    Structure:
        <path>    # {"width": 32, "height": 32, "pixels": [...]}
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.raster = self.load()

    def load(self) -> Raster:
        """Load the stored raster, or a blank one if missing or invalid."""
        if not self.path.exists():
            return Raster.blank()
        try:
            with open(self.path) as f:
                data = json.load(f)
            raster = Raster.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable raster {self.path}: {e}")
            return Raster.blank()
        if not raster.is_valid():
            logger.warning(f"Discarding malformed raster {self.path}")
            return Raster.blank()
        raster.pixels = list(raster.pixels)
        return raster

    def save(self):
        """Persist the raster; write failures are logged, not raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(self.raster.to_dict(), f)
        except OSError as e:
            logger.warning(f"Failed to save raster to {self.path}: {e}")

    def set_pixel(self, index: int, color: str) -> bool:
        """
        Set one cell's color.

        Returns True if the raster changed.
        """
        pixels: List[str] = self.raster.pixels
        if not 0 <= index < len(pixels):
            raise IndexError(f"Pixel index {index} out of range")
        if pixels[index] == color:
            return False
        pixels[index] = color
        self.save()
        return True

    def paint(self, x: int, y: int, color: str) -> bool:
        return self.set_pixel(self.raster.index(x, y), color)

    def get_pixel(self, x: int, y: int) -> str:
        return self.raster.pixels[self.raster.index(x, y)]

    def clear(self):
        self.raster = Raster.blank()
        self.save()

    def snapshot(self) -> Raster:
        return self.raster.snapshot()
