# tests/test_raster.py
"""Tests for the raster and its file store."""

import json
import tempfile
from pathlib import Path

import pytest

from pixelmint.raster import DEFAULT_COLOR, HEIGHT, WIDTH, Raster, RasterStore


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def canvas_path(temp_dir):
    return temp_dir / "pixel-canvas-v1.json"


def write_json(path: Path, data):
    path.write_text(json.dumps(data))


class TestRaster:

    def test_blank(self):
        raster = Raster.blank()
        assert raster.width == WIDTH
        assert raster.height == HEIGHT
        assert len(raster.pixels) == WIDTH * HEIGHT
        assert set(raster.pixels) == {DEFAULT_COLOR}
        assert raster.is_valid()

    def test_wrong_length_invalid(self):
        raster = Raster(width=32, height=32, pixels=[DEFAULT_COLOR] * 10)
        assert not raster.is_valid()

    def test_wrong_dimensions_invalid(self):
        raster = Raster(width=16, height=16, pixels=[DEFAULT_COLOR] * 256)
        assert not raster.is_valid()

    def test_index_row_major(self):
        raster = Raster.blank()
        assert raster.index(0, 0) == 0
        assert raster.index(3, 2) == 2 * WIDTH + 3

    def test_index_out_of_range(self):
        with pytest.raises(IndexError):
            Raster.blank().index(WIDTH, 0)

    def test_snapshot_is_immutable_copy(self):
        raster = Raster.blank()
        snapshot = raster.snapshot()
        raster.pixels[0] = "#000000"

        assert snapshot.pixels[0] == DEFAULT_COLOR
        assert isinstance(snapshot.pixels, tuple)


class TestRasterStore:

    def test_missing_file_gives_blank(self, canvas_path):
        store = RasterStore(canvas_path)
        assert store.raster.is_valid()
        assert set(store.raster.pixels) == {DEFAULT_COLOR}

    def test_paint_persists(self, canvas_path):
        store = RasterStore(canvas_path)
        assert store.paint(1, 2, "#ff0000")

        reloaded = RasterStore(canvas_path)
        assert reloaded.get_pixel(1, 2) == "#ff0000"

    def test_paint_same_color_is_noop(self, canvas_path):
        store = RasterStore(canvas_path)
        assert not store.paint(0, 0, DEFAULT_COLOR)
        assert not canvas_path.exists()

    def test_set_pixel_out_of_range(self, canvas_path):
        store = RasterStore(canvas_path)
        with pytest.raises(IndexError):
            store.set_pixel(WIDTH * HEIGHT, "#000000")

    def test_clear(self, canvas_path):
        store = RasterStore(canvas_path)
        store.paint(0, 0, "#000000")
        store.clear()

        assert RasterStore(canvas_path).get_pixel(0, 0) == DEFAULT_COLOR

    @pytest.mark.parametrize("data", [
        {"width": 32, "height": 32, "pixels": ["#000000"] * 1023},
        {"width": 16, "height": 64, "pixels": ["#000000"] * 1024},
        {"width": 32, "height": 32, "pixels": "#000000"},
        {"width": 32, "height": 32},
        ["not", "a", "dict"],
    ])
    def test_invalid_stored_raster_replaced(self, canvas_path, data):
        """Stored data violating the shape invariant is never propagated."""
        write_json(canvas_path, data)

        raster = RasterStore(canvas_path).raster

        assert raster.is_valid()
        assert set(raster.pixels) == {DEFAULT_COLOR}

    def test_corrupt_json_replaced(self, canvas_path):
        canvas_path.write_text("{not json")
        raster = RasterStore(canvas_path).raster
        assert raster.is_valid()

    def test_non_utf8_file_replaced(self, canvas_path):
        canvas_path.write_bytes(b"\xff\xfe\x00garbage")

        raster = RasterStore(canvas_path).raster

        assert raster.is_valid()
        assert set(raster.pixels) == {DEFAULT_COLOR}

    def test_valid_stored_raster_loaded(self, canvas_path):
        pixels = [DEFAULT_COLOR] * (WIDTH * HEIGHT)
        pixels[7] = "#123456"
        write_json(canvas_path, {"width": 32, "height": 32, "pixels": pixels})

        assert RasterStore(canvas_path).raster.pixels[7] == "#123456"

    def test_save_failure_is_logged(self, temp_dir, caplog):
        # Parent "directory" is a regular file, so the write must fail
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        store = RasterStore(blocker / "canvas.json")

        store.paint(0, 0, "#000000")

        assert "Failed to save raster" in caplog.text
