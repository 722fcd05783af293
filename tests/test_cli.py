# tests/test_cli.py
"""Tests for the pixelmint command line."""

import json
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from pixelmint.cli import main


@pytest.fixture
def home():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def run(home, *argv):
    main(["--home", str(home), *argv])


@pytest.fixture
def zero_delay_config(home):
    path = home / "pipeline.yaml"
    path.write_text(
        "asset_propagation_delay: 0\n"
        "record_propagation_delay: 0\n"
        "record_backoff_base: 0\n"
    )
    return path


class TestCanvasCommands:

    def test_show_blank(self, home, capsys):
        run(home, "show")
        assert "32x32 pixels (0 painted)" in capsys.readouterr().out

    def test_paint_then_show(self, home, capsys):
        run(home, "paint", "3", "4", "#ff0000")
        run(home, "show")
        assert "(1 painted)" in capsys.readouterr().out
        assert (home / "pixel-canvas-v1.json").exists()

    def test_paint_out_of_range(self, home):
        with pytest.raises(SystemExit) as exc:
            run(home, "paint", "32", "0", "#ff0000")
        assert exc.value.code == 1

    def test_clear(self, home, capsys):
        run(home, "paint", "0", "0", "#000000")
        run(home, "clear")
        run(home, "show")
        assert "(0 painted)" in capsys.readouterr().out

    def test_export(self, home):
        out = home / "art.png"
        run(home, "paint", "0", "0", "#000000")
        run(home, "export", str(out), "--scale", "2")

        image = Image.open(out)
        assert image.size == (64, 64)
        assert image.convert("RGB").getpixel((1, 1)) == (0, 0, 0)


class TestIdentityCommands:

    def test_create_and_list(self, home, capsys):
        run(home, "identity", "create", "alice", "--display-name", "Alice")
        run(home, "identity", "list")
        out = capsys.readouterr().out
        assert "Created identity alice" in out
        assert "alice\tAlice\t" in out

    def test_duplicate(self, home):
        run(home, "identity", "create", "alice")
        with pytest.raises(SystemExit):
            run(home, "identity", "create", "alice")


class TestPublishCommand:

    def test_publish(self, home, zero_delay_config, capsys):
        run(home, "identity", "create", "alice")
        run(home, "paint", "1", "1", "#00ff00")

        run(home, "publish", "--identity", "alice", "--yes", "--config", str(zero_delay_config))

        out = capsys.readouterr().out
        assert "=== Published ===" in out
        assert "Uploading metadata (1/3)..." in out

        ledger = json.loads((home / "ledger" / "ledger.json").read_text())
        assert len(ledger["registrations"]) == 1
        registration = next(iter(ledger["registrations"].values()))
        assert f"Metadata: {registration['uri']}" in out

    def test_publish_unknown_identity(self, home, capsys):
        with pytest.raises(SystemExit) as exc:
            run(home, "publish", "--identity", "nobody", "--yes")
        assert exc.value.code == 1
        assert "unknown identity" in capsys.readouterr().err

    def test_publish_rejected_signature(self, home, zero_delay_config, capsys, monkeypatch):
        run(home, "identity", "create", "alice")
        monkeypatch.setattr("builtins.input", lambda prompt="": "n")

        with pytest.raises(SystemExit) as exc:
            run(home, "publish", "--identity", "alice", "--config", str(zero_delay_config))

        assert exc.value.code == 1
        err = capsys.readouterr().err
        assert "User rejected the signature request" in err
        assert "identity issue" in err
        assert not (home / "ledger" / "ledger.json").exists()
