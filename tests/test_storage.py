# tests/test_storage.py
"""Tests for the content store, publishers and HTTP store."""

import json
import tempfile
from pathlib import Path

import pytest

from pixelmint.encoder import Encoder
from pixelmint.raster import Raster
from pixelmint.record import Creator, DescriptionRecord
from pixelmint.storage import (
    ContentStore,
    StoreAssetPublisher,
    StoreClient,
    StoreRecordPublisher,
    StoreServer,
)


@pytest.fixture
def store_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(store_dir):
    return ContentStore(store_dir / "store", base_url="https://store.test/objects")


@pytest.fixture
def server(store_dir):
    server = StoreServer(store_dir / "served", port=0)
    server.start_background()
    yield server
    server.stop()


@pytest.fixture
def record():
    return DescriptionRecord.for_asset(
        name="ABCDE",
        asset_locator="https://store.test/objects/abc",
        symbol="PXCAN",
        description="Pixel art",
        creators=[Creator(address="f" * 64, share=100)],
    )


class TestContentStore:

    def test_put_returns_content_addressed_locator(self, store):
        locator = store.put(b"hello", "hello.txt", "text/plain")

        assert locator.startswith("https://store.test/objects/")
        assert len(store.resolve(locator)) == 64  # SHA-3-256 hex

    def test_same_bytes_same_locator(self, store):
        first = store.put(b"identical", "a.txt")
        second = store.put(b"identical", "b.txt")

        assert first == second
        assert len(store) == 1

    def test_different_bytes_different_locator(self, store):
        assert store.put(b"A", "a.txt") != store.put(b"B", "b.txt")

    def test_get_by_locator_and_hash(self, store):
        locator = store.put(b"payload", "p.bin")

        assert store.get(locator) == b"payload"
        assert store.get(store.resolve(locator)) == b"payload"
        assert store.get(f"{locator}?ext=png") == b"payload"

    def test_get_missing(self, store):
        assert store.get("https://store.test/objects/nothing") is None
        assert not store.has("nothing")

    def test_entry_metadata(self, store):
        locator = store.put(b"{}", "record.json", "application/json")
        entry = store.entry(locator)

        assert entry.display_name == "record.json"
        assert entry.content_type == "application/json"
        assert entry.size_bytes == 2

    def test_persists_across_instances(self, store_dir):
        first = ContentStore(store_dir / "s")
        locator = first.put(b"durable", "d.bin")

        second = ContentStore(store_dir / "s")
        assert second.get(locator) == b"durable"

    def test_default_base_url_is_file_uri(self, store_dir):
        store = ContentStore(store_dir / "s")
        assert store.put(b"x", "x.bin").startswith("file://")

    def test_rejects_empty(self, store):
        with pytest.raises(ValueError):
            store.put(b"", "empty.bin")

    def test_display_name_cannot_escape(self, store):
        locator = store.put(b"data", "../../etc/passwd")
        assert store.entry(locator).display_name == "passwd"

    def test_failed_index_write_leaves_no_entry(self, store_dir, monkeypatch):
        store = ContentStore(store_dir / "s")

        def fail():
            raise OSError("disk full")

        monkeypatch.setattr(store, "_save_index", fail)
        with pytest.raises(OSError):
            store.put(b"payload", "p.bin")

        assert len(store) == 0
        assert store.list() == []

        # A later put of the same bytes is written to the index, not a cache hit
        monkeypatch.undo()
        locator = store.put(b"payload", "p.bin")
        assert ContentStore(store_dir / "s").get(locator) == b"payload"

    @pytest.mark.parametrize("content", [b"[1, 2]", b"{not json", b"\xff\xfe\x00garbage", b'{"objects": 3}'])
    def test_unreadable_index_reset(self, store_dir, content, caplog):
        root = store_dir / "s"
        root.mkdir()
        (root / "index.json").write_bytes(content)

        store = ContentStore(root)

        assert len(store) == 0
        assert "Failed to load store index" in caplog.text
        assert store.get(store.put(b"fresh", "f.bin")) == b"fresh"


class TestPublishers:

    @pytest.mark.asyncio
    async def test_asset_publisher(self, store):
        asset = Encoder().encode(Raster.blank(), name="ABCDE")

        locator = await StoreAssetPublisher(store).publish(asset)

        assert store.get(locator) == asset.data
        assert store.entry(locator).content_type == "image/png"

    @pytest.mark.asyncio
    async def test_record_publisher_writes_canonical_json(self, store, record):
        locator = await StoreRecordPublisher(store).publish(record)

        data = json.loads(store.get(locator))
        assert data["image"] == "https://store.test/objects/abc?ext=png"
        assert record.asset_locator == "https://store.test/objects/abc"
        assert data["properties"]["files"][0]["type"] == "image/png"
        assert data["properties"]["category"] == "image"
        assert data["properties"]["creators"] == [{"address": "f" * 64, "share": 100}]

    @pytest.mark.asyncio
    async def test_republishing_record_is_stable(self, store, record):
        publisher = StoreRecordPublisher(store)
        assert await publisher.publish(record) == await publisher.publish(record)


class TestStoreServer:

    def test_health(self, server):
        assert StoreClient(server.url).health()

    def test_upload_and_fetch(self, server):
        client = StoreClient(server.url)

        locator = client.put(b"\x89PNG\r\n\x1a\nrest", "ABCDE.png", "image/png")

        assert locator.startswith(f"{server.url}/objects/")
        assert client.get(locator) == b"\x89PNG\r\n\x1a\nrest"
        assert server.store.entry(locator).display_name == "ABCDE.png"

    def test_fetch_missing(self, server):
        assert StoreClient(server.url).get("deadbeef") is None

    def test_empty_upload_rejected(self, server):
        with pytest.raises(RuntimeError) as exc:
            StoreClient(server.url).put(b"", "empty.bin")
        assert "Empty upload" in str(exc.value)

    def test_unreachable_server(self):
        client = StoreClient("http://127.0.0.1:9", timeout=2)
        assert not client.health()
        with pytest.raises(ConnectionError):
            client.put(b"x", "x.bin")

    @pytest.mark.asyncio
    async def test_publishers_over_http(self, server, record):
        client = StoreClient(server.url)

        locator = await StoreRecordPublisher(client).publish(record)

        assert json.loads(client.get(locator))["name"] == "ABCDE"
