# pixelmint/storage/__init__.py
"""
Durable content storage for images and description records.

Objects are content-addressed (SHA3-256); a locator is the store's base
URL followed by the content hash.

Example:
    store = ContentStore("/path/to/store")
    assets = StoreAssetPublisher(store)
    records = StoreRecordPublisher(store)
"""

from .store import ContentStore, StoredObject
from .publishers import (
    AssetPublisher,
    RecordPublisher,
    StoreAssetPublisher,
    StoreRecordPublisher,
)
from .client import StoreClient
from .server import StoreServer

__all__ = [
    "ContentStore",
    "StoredObject",
    "AssetPublisher",
    "RecordPublisher",
    "StoreAssetPublisher",
    "StoreRecordPublisher",
    "StoreClient",
    "StoreServer",
]
