# pixelmint/encoder.py
"""
Raster to image encoding.

Each cell becomes a solid scale x scale block (nearest-neighbour, no
smoothing). Unpainted cells take the background color so the output is
always opaque. The produced bytes are checked against the declared media
type before they leave the encoder.
"""

import io
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
from PIL import Image, ImageColor

from .errors import EncodingError
from .raster import Raster

logger = logging.getLogger(__name__)

DEFAULT_SCALE = 20
DEFAULT_BACKGROUND = "#FFFFFF"

# Cell values meaning "nothing painted here"
NO_PAINT = (None, "", "transparent", "rgba(0,0,0,0)")

# Leading bytes of each supported format
SIGNATURES: Dict[str, bytes] = {
    "image/png": b"\x89PNG\r\n\x1a\n",
    "image/jpeg": b"\xff\xd8\xff",
    "image/gif": b"GIF8",
    "image/webp": b"RIFF",
}

_PIL_FORMATS = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/gif": "GIF",
    "image/webp": "WEBP",
}

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


def detect_media_type(data: bytes) -> Optional[str]:
    """Identify a payload's media type from its signature bytes."""
    for media_type, signature in SIGNATURES.items():
        if data.startswith(signature):
            if media_type == "image/webp" and data[8:12] != b"WEBP":
                continue
            return media_type
    return None


def has_valid_signature(data: bytes, media_type: str) -> bool:
    return detect_media_type(data) == media_type


@dataclass(frozen=True)
class EncodedAsset:
    """
    An encoded image ready for upload.

    Attributes:
        data: Encoded image bytes
        media_type: Declared media type (e.g. "image/png")
        filename: Display name used when uploading
    """
    data: bytes
    media_type: str = "image/png"
    filename: str = "pixel-art.png"

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.media_type, "bin")

    @property
    def size(self) -> int:
        return len(self.data)

    def validate(self):
        """Raise EncodingError unless the bytes match the declared type."""
        if self.media_type not in SIGNATURES:
            raise EncodingError(f"Unsupported media type: {self.media_type}")
        if not has_valid_signature(self.data, self.media_type):
            raise EncodingError(
                f"Invalid {self.media_type} payload - missing {self.extension.upper()} signature"
            )


def _parse_color(color: str) -> Tuple[int, int, int]:
    try:
        return ImageColor.getrgb(color)[:3]
    except (ValueError, AttributeError) as e:
        raise EncodingError(f"Invalid color {color!r}: {e}") from e


class Encoder:
    """
    Renders a raster snapshot into an image payload.

    Args:
        scale: Pixels per cell edge
        background: Fill for unpainted cells
        media_type: Output format
    """

    def __init__(
        self,
        scale: int = DEFAULT_SCALE,
        background: str = DEFAULT_BACKGROUND,
        media_type: str = "image/png",
    ):
        self.scale = scale
        self.background = background
        self.media_type = media_type

    def render(self, raster: Raster) -> np.ndarray:
        """Render to an (H*scale, W*scale, 3) uint8 array."""
        if not isinstance(self.scale, int) or self.scale < 1:
            raise EncodingError(f"Scale must be a positive integer, got {self.scale!r}")
        if not raster.is_valid():
            raise EncodingError(
                f"Raster must be {raster.width}x{raster.height} with "
                f"{raster.width * raster.height} cells, got {len(raster.pixels)}"
            )

        background = _parse_color(self.background)
        palette: Dict[str, Tuple[int, int, int]] = {}
        cells = np.empty((raster.height, raster.width, 3), dtype=np.uint8)
        for i, color in enumerate(raster.pixels):
            if color in NO_PAINT:
                rgb = background
            else:
                rgb = palette.get(color)
                if rgb is None:
                    rgb = palette[color] = _parse_color(color)
            cells[i // raster.width, i % raster.width] = rgb

        return cells.repeat(self.scale, axis=0).repeat(self.scale, axis=1)

    def encode(self, raster: Raster, name: str = "pixel-art") -> EncodedAsset:
        """
        Encode a raster snapshot.

        Raises:
            EncodingError: if rendering fails or the output is not a valid
                payload of the declared media type
        """
        pil_format = _PIL_FORMATS.get(self.media_type)
        if pil_format is None:
            raise EncodingError(f"Unsupported media type: {self.media_type}")

        pixels = self.render(raster)
        try:
            image = Image.fromarray(pixels)
            buffer = io.BytesIO()
            image.save(buffer, format=pil_format)
        except (ValueError, OSError, MemoryError) as e:
            raise EncodingError(f"Could not obtain drawing surface: {e}") from e

        asset = EncodedAsset(
            data=buffer.getvalue(),
            media_type=self.media_type,
            filename=f"{name}.{_EXTENSIONS[self.media_type]}",
        )
        asset.validate()
        logger.debug(f"Encoded {asset.filename}: {asset.size} bytes")
        return asset
