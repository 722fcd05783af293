# pixelmint/storage/client.py
"""
HTTP client for a remote content store.

Usage:
    client = StoreClient("http://localhost:8090")
    locator = client.put(png_bytes, "ABCDE.png", "image/png")
    data = client.get(locator)
"""

import json
import logging
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)


class StoreClient:
    """
    Client for a StoreServer.

    Args:
        base_url: Server URL (e.g., "http://localhost:8090")
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str = "http://localhost:8090", timeout: float = 60):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, body: bytes = None, headers: dict = None) -> bytes:
        """Make HTTP request to the store."""
        url = f"{self.base_url}{path}"
        req = Request(url, data=body, headers=headers or {}, method=method)

        try:
            with urlopen(req, timeout=self.timeout) as response:
                return response.read()
        except HTTPError as e:
            error_body = e.read().decode(errors="replace")
            try:
                error_data = json.loads(error_body)
                raise RuntimeError(f"Store request failed: {error_data.get('error', str(e))}")
            except json.JSONDecodeError:
                raise RuntimeError(f"Store request failed: HTTP {e.code}: {error_body}")
        except URLError as e:
            raise ConnectionError(f"Failed to connect to storage at {self.base_url}: {e}")

    def health(self) -> bool:
        """Check if the store is reachable."""
        try:
            result = json.loads(self._request("GET", "/health").decode())
            return result.get("status") == "ok"
        except (ConnectionError, RuntimeError, ValueError):
            return False

    def put(self, data: bytes, display_name: str, content_type: str = "application/octet-stream") -> str:
        """Upload bytes, return the locator assigned by the server."""
        headers = {
            "Content-Type": content_type,
            "X-Display-Name": quote(display_name),
        }
        result = json.loads(self._request("POST", "/upload", data, headers).decode())
        return result["uri"]

    def get(self, locator: str) -> Optional[bytes]:
        """Download an object by locator or content hash."""
        content_hash = locator.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
        try:
            return self._request("GET", f"/objects/{content_hash}")
        except RuntimeError as e:
            logger.debug(f"Fetch {content_hash} failed: {e}")
            return None
