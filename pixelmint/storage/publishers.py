# pixelmint/storage/publishers.py
"""
Publisher interfaces and store-backed implementations.

A publisher makes a single upload attempt. Retrying is the caller's
decision; publishers never retry internally.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Protocol

from ..encoder import EncodedAsset
from ..record import DescriptionRecord

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Anything with a blocking put(), e.g. ContentStore or StoreClient."""

    def put(self, data: bytes, display_name: str, content_type: str = ...) -> str:
        ...


class AssetPublisher(ABC):
    """Uploads an encoded image and returns its locator."""

    @abstractmethod
    async def publish(self, asset: EncodedAsset) -> str:
        pass


class RecordPublisher(ABC):
    """Uploads a description record and returns its locator."""

    @abstractmethod
    async def publish(self, record: DescriptionRecord) -> str:
        pass


class StoreAssetPublisher(AssetPublisher):
    """Publishes images to a blob store without blocking the event loop."""

    def __init__(self, store: BlobStore):
        self.store = store

    async def publish(self, asset: EncodedAsset) -> str:
        logger.debug(f"Uploading image {asset.filename} ({asset.size} bytes)")
        return await asyncio.to_thread(
            self.store.put, asset.data, asset.filename, asset.media_type
        )


class StoreRecordPublisher(RecordPublisher):
    """Publishes description records as canonical JSON."""

    def __init__(self, store: BlobStore):
        self.store = store

    async def publish(self, record: DescriptionRecord) -> str:
        payload = record.to_bytes()
        logger.debug(f"Uploading metadata {record.filename} ({len(payload)} bytes)")
        return await asyncio.to_thread(
            self.store.put, payload, record.filename, "application/json"
        )
