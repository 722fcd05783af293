# pixelmint/storage/server.py
"""
HTTP server exposing a ContentStore.

Endpoints:
    POST /upload          - Store the request body, returns {"uri": ...}
    GET  /objects/:hash   - Fetch stored bytes
    GET  /health          - Liveness check
"""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

from .store import ContentStore

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class StoreServer:
    """
    HTTP front-end for a content store.

    Usage:
        server = StoreServer(store_dir="/tmp/pixelmint_store", port=8090)
        server.start()  # Blocking
    """

    def __init__(self, store_dir: Path | str, host: str = "127.0.0.1", port: int = 8090):
        self.store_dir = Path(store_dir)
        self.host = host
        self.port = port
        self.store: Optional[ContentStore] = None
        self._httpd: Optional[ThreadingHTTPServer] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_json(self, data: Any, status: int = 200):
                body = json.dumps(data).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_error(self, message: str, status: int = 400):
                self._send_json({"error": message}, status)

            def do_GET(self):
                path = urlparse(self.path).path
                store = self.server_ref.store

                if path.startswith("/objects/"):
                    content_hash = path[len("/objects/"):]
                    data = store.get(content_hash)
                    if data is None:
                        self._send_error("Object not found", 404)
                        return
                    entry = store.entry(content_hash)
                    self.send_response(200)
                    self.send_header("Content-Type", entry.content_type)
                    self.send_header("Content-Length", str(len(data)))
                    self.end_headers()
                    self.wfile.write(data)

                elif path == "/health":
                    self._send_json({"status": "ok", "objects": len(store)})

                else:
                    self._send_error("Not found", 404)

            def do_POST(self):
                if urlparse(self.path).path != "/upload":
                    self._send_error("Not found", 404)
                    return

                length = int(self.headers.get("Content-Length", 0))
                if length <= 0:
                    self._send_error("Empty upload")
                    return
                if length > MAX_UPLOAD_BYTES:
                    self._send_error("Upload exceeds storage quota", 413)
                    return

                data = self.rfile.read(length)
                name = unquote(self.headers.get("X-Display-Name", "object"))
                content_type = self.headers.get("Content-Type", "application/octet-stream")
                try:
                    locator = self.server_ref.store.put(data, name, content_type)
                except (OSError, ValueError) as e:
                    logger.exception("Upload failed")
                    self._send_error(str(e), 500)
                    return
                self._send_json({"uri": locator})

        return RequestHandler

    def _bind(self) -> ThreadingHTTPServer:
        handler = self._create_handler()
        httpd = ThreadingHTTPServer((self.host, self.port), handler)
        # Port 0 binds an ephemeral port
        self.port = httpd.server_address[1]
        self.store = ContentStore(self.store_dir, base_url=f"{self.url}/objects")
        self._httpd = httpd
        return httpd

    def start(self):
        """Start the HTTP server (blocking)."""
        httpd = self._bind()
        logger.info(f"Store server starting on {self.host}:{self.port}")
        print(f"Store server running on {self.url}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nShutting down...")
            httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread; returns once bound."""
        httpd = self._bind()
        logger.info(f"Store server starting on {self.host}:{self.port}")
        thread = threading.Thread(target=httpd.serve_forever)
        thread.daemon = True
        thread.start()
        return thread

    def stop(self):
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="pixelmint content store server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8090, help="Port to bind to")
    parser.add_argument("--store-dir", default="/tmp/pixelmint_store", help="Store directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    server = StoreServer(
        store_dir=args.store_dir,
        host=args.host,
        port=args.port,
    )
    server.start()


if __name__ == "__main__":
    main()
