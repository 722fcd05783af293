# pixelmint/storage/store.py
"""
Content-addressed durable store.

Each object is stored at: store_dir / content_hash / display_name
Uploading the same bytes twice yields the same locator.
"""

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


def _content_hash(data: bytes, algorithm: str = "sha3_256") -> str:
    """
    Compute content hash of a payload.

    Uses SHA-3 (Keccak) by default.
    """
    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return hasher.hexdigest()


@dataclass
class StoredObject:
    """Metadata about a stored object."""
    content_hash: str
    display_name: str
    content_type: str
    size_bytes: int
    created_at: float

    def to_dict(self) -> Dict:
        return {
            "content_hash": self.content_hash,
            "display_name": self.display_name,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "StoredObject":
        return cls(
            content_hash=data["content_hash"],
            display_name=data["display_name"],
            content_type=data.get("content_type", "application/octet-stream"),
            size_bytes=data["size_bytes"],
            created_at=data["created_at"],
        )


class ContentStore:
    """
    Content-addressed object store on the local filesystem.

    Structure:
        store_dir/
            index.json           # Object metadata
            <content_hash>/
                <display_name>   # Object bytes

    Args:
        store_dir: Directory holding the objects
        base_url: Prefix for locators (defaults to the store's file:// URI)
    """

    def __init__(self, store_dir: Path | str, base_url: str = None):
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = (base_url or self.store_dir.resolve().as_uri()).rstrip("/")
        self._objects: Dict[str, StoredObject] = {}
        self._lock = threading.Lock()
        self._load_index()

    def _index_path(self) -> Path:
        return self.store_dir / "index.json"

    def _load_index(self):
        """Load store index from disk."""
        index_path = self._index_path()
        if index_path.exists():
            try:
                with open(index_path) as f:
                    data = json.load(f)
                self._objects = {
                    k: StoredObject.from_dict(v)
                    for k, v in data.get("objects", {}).items()
                }
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to load store index: {e}")
                self._objects = {}

    def _save_index(self):
        """Save store index to disk."""
        data = {
            "version": "1.0",
            "objects": {k: v.to_dict() for k, v in self._objects.items()},
        }
        with open(self._index_path(), "w") as f:
            json.dump(data, f, indent=2)

    def _object_path(self, entry: StoredObject) -> Path:
        return self.store_dir / entry.content_hash / entry.display_name

    def locator(self, content_hash: str) -> str:
        return f"{self.base_url}/{content_hash}"

    def resolve(self, locator: str) -> str:
        """Extract the content hash from a locator (or pass a bare hash through)."""
        return locator.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]

    def put(self, data: bytes, display_name: str, content_type: str = "application/octet-stream") -> str:
        """
        Store bytes and return their locator.

        Args:
            data: Object bytes
            display_name: File name used inside the store
            content_type: Media type recorded with the object

        Returns:
            Stable locator for the object
        """
        if not data:
            raise ValueError("Refusing to store an empty object")
        safe_name = Path(display_name).name or "object"

        content_hash = _content_hash(data)
        with self._lock:
            existing = self._objects.get(content_hash)
            if existing is not None and self._object_path(existing).exists():
                logger.debug(f"Store hit: {content_hash}")
                return self.locator(content_hash)

            entry = StoredObject(
                content_hash=content_hash,
                display_name=safe_name,
                content_type=content_type,
                size_bytes=len(data),
                created_at=time.time(),
            )
            path = self._object_path(entry)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

            self._objects[content_hash] = entry
            try:
                self._save_index()
            except OSError:
                # Only entries in the persisted index count as stored
                if existing is None:
                    del self._objects[content_hash]
                else:
                    self._objects[content_hash] = existing
                raise

        logger.debug(f"Stored: {content_hash} ({entry.size_bytes} bytes)")
        return self.locator(content_hash)

    def get(self, locator: str) -> Optional[bytes]:
        """Fetch an object's bytes by locator or content hash."""
        entry = self._objects.get(self.resolve(locator))
        if entry is None:
            return None
        path = self._object_path(entry)
        if not path.exists():
            logger.warning(f"Store entry {entry.content_hash} missing file")
            return None
        return path.read_bytes()

    def has(self, locator: str) -> bool:
        entry = self._objects.get(self.resolve(locator))
        return entry is not None and self._object_path(entry).exists()

    def entry(self, locator: str) -> Optional[StoredObject]:
        return self._objects.get(self.resolve(locator))

    def list(self) -> List[StoredObject]:
        return list(self._objects.values())

    def __len__(self) -> int:
        return len(self._objects)
