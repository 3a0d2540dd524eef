"""Local HTTP server: the API through the shared router, plus the built client."""

import logging
import mimetypes
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

from .responses import Request, Response
from .router import Router

logger = logging.getLogger(__name__)


class _ReusableHTTPServer(ThreadingHTTPServer):
    allow_reuse_address = True
    daemon_threads = True


def resolve_static(static_dir: Path | None, url_path: str) -> Path | None:
    """Map a URL path onto a file under ``static_dir``, or None.

    Paths escaping ``static_dir`` resolve to None.
    """
    if static_dir is None:
        return None
    root = static_dir.resolve()
    candidate = (root / url_path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    if candidate.is_file():
        return candidate
    return None


def make_handler(router: Router, static_dir: Path | None):
    """Build a request handler class bound to one router and static directory."""

    class _Handler(BaseHTTPRequestHandler):
        server_version = "DashboardAPI/1.0"

        def log_message(self, fmt, *args):
            pass  # the router logs every API request

        def do_GET(self):
            self._handle()

        def do_OPTIONS(self):
            self._handle()

        def do_POST(self):
            self._handle()

        def do_PUT(self):
            self._handle()

        def do_DELETE(self):
            self._handle()

        def _handle(self):
            parts = urlsplit(self.path)
            if router.is_api_path(parts.path):
                request = Request(
                    method=self.command,
                    path=parts.path,
                    query=dict(parse_qsl(parts.query)),
                    headers=dict(self.headers.items()),
                )
                self._send(router.handle(request))
            elif self.command == "GET":
                self._serve_static(parts.path)
            else:
                self._send(Response(status_code=405, body={"error": "Method not allowed"}))

        def _serve_static(self, url_path: str):
            target = resolve_static(static_dir, url_path)
            if target is None:
                target = resolve_static(static_dir, "index.html")
            if target is None:
                self._send_bytes(500, b"Build not found. Please run build first.", "text/plain")
                return
            content_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
            self._send_bytes(200, target.read_bytes(), content_type)

        def _send(self, response: Response):
            self.send_response(response.status_code)
            for name, value in response.headers.items():
                self.send_header(name, value)
            body = response.encoded_body().encode("utf-8")
            if response.body is not None:
                self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _send_bytes(self, status: int, body: bytes, content_type: str):
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

    return _Handler


def serve(router: Router, host: str = "0.0.0.0", port: int = 8080, static_dir: Path | None = None) -> None:
    """Run the server until interrupted."""
    server = _ReusableHTTPServer((host, port), make_handler(router, static_dir))
    logger.info("[server] listening on http://%s:%s", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("[server] shutting down")
    finally:
        server.server_close()
