# tests/test_encoder.py
"""Tests for raster encoding."""

import io

import pytest
from PIL import Image

from pixelmint.encoder import (
    SIGNATURES,
    EncodedAsset,
    Encoder,
    detect_media_type,
)
from pixelmint.errors import EncodingError
from pixelmint.raster import HEIGHT, WIDTH, Raster


def decode(asset: EncodedAsset) -> Image.Image:
    return Image.open(io.BytesIO(asset.data))


@pytest.fixture
def raster():
    raster = Raster.blank()
    raster.pixels[0] = "#ff0000"
    raster.pixels[WIDTH + 1] = "#00ff00"
    return raster


class TestEncoder:

    def test_png_signature(self, raster):
        asset = Encoder().encode(raster)
        assert asset.data.startswith(SIGNATURES["image/png"])
        assert asset.media_type == "image/png"
        assert detect_media_type(asset.data) == "image/png"

    def test_dimensions_follow_scale(self, raster):
        image = decode(Encoder(scale=4).encode(raster))
        assert image.size == (WIDTH * 4, HEIGHT * 4)

    def test_cells_render_as_solid_blocks(self, raster):
        image = decode(Encoder(scale=5).encode(raster)).convert("RGB")

        # Every pixel of the first block is the cell color, no smoothing
        for x in range(5):
            for y in range(5):
                assert image.getpixel((x, y)) == (255, 0, 0)
        assert image.getpixel((5, 0)) == (255, 255, 255)
        assert image.getpixel((5, 5)) == (0, 255, 0)

    @pytest.mark.parametrize("sentinel", [None, "", "transparent", "rgba(0,0,0,0)"])
    def test_no_paint_uses_background(self, sentinel):
        raster = Raster.blank()
        raster.pixels[0] = sentinel
        image = decode(Encoder(scale=1, background="#0000ff").encode(raster))

        assert image.mode == "RGB"
        assert image.getpixel((0, 0)) == (0, 0, 255)

    def test_idempotent(self, raster):
        """Encoding the same snapshot twice gives identical bytes."""
        snapshot = raster.snapshot()
        encoder = Encoder()
        assert encoder.encode(snapshot).data == encoder.encode(snapshot).data

    def test_filename_from_name(self, raster):
        assert Encoder().encode(raster, name="QWERT").filename == "QWERT.png"

    def test_invalid_color(self, raster):
        raster.pixels[3] = "definitely-not-a-color"
        with pytest.raises(EncodingError):
            Encoder().encode(raster)

    def test_invalid_scale(self, raster):
        with pytest.raises(EncodingError):
            Encoder(scale=0).encode(raster)

    def test_invalid_raster(self):
        with pytest.raises(EncodingError):
            Encoder().encode(Raster(width=32, height=32, pixels=["#000000"] * 3))

    def test_unsupported_media_type(self, raster):
        with pytest.raises(EncodingError):
            Encoder(media_type="image/tiff").encode(raster)

    def test_jpeg_output(self, raster):
        asset = Encoder(media_type="image/jpeg").encode(raster)
        assert detect_media_type(asset.data) == "image/jpeg"
        assert asset.extension == "jpg"


class TestEncodedAsset:

    def test_validate_rejects_wrong_signature(self):
        asset = EncodedAsset(data=b"GIF89a....", media_type="image/png")
        with pytest.raises(EncodingError) as exc:
            asset.validate()
        assert "signature" in str(exc.value)

    def test_validate_rejects_unknown_type(self):
        with pytest.raises(EncodingError):
            EncodedAsset(data=b"\x89PNG\r\n\x1a\n", media_type="text/plain").validate()

    def test_detect_media_type_unknown(self):
        assert detect_media_type(b"hello") is None
