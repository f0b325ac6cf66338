"""Loopback static file server for the page under test.

Serves files below a root directory with a fixed content-type table and
``Cache-Control: no-store`` so every run sees the current files. Paths that
escape the root are rejected with 400 before the filesystem is touched.

The server binds ``127.0.0.1`` on an OS-chosen port and runs on a daemon
thread; use it as a context manager so it is shut down on every exit path.
"""

from __future__ import annotations

import logging
import os
import threading
import time
import urllib.error
import urllib.request
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

from plusminus_smoke.errors import PreconditionError, ResourceError

logger = logging.getLogger(__name__)

HOST = "127.0.0.1"

CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".txt": "text/plain; charset=utf-8",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(path: Path) -> str:
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


class PathOutsideRoot(ValueError):
    """The requested path resolves outside the served root."""


def resolve_request_path(root: Path, url_path: str) -> Path:
    """Map a request target onto a file path below *root*.

    Query string and fragment are dropped, the rest is URL-decoded and
    stripped of null bytes. A trailing slash maps to ``index.html``.

    Raises:
        PathOutsideRoot: if the path escapes *root*, checked lexically first
            and again after symlinks are resolved.
    """
    path = unquote(urlsplit(url_path).path).replace("\x00", "")
    if path == "" or path.endswith("/"):
        path += "index.html"

    root_str = os.path.abspath(root)
    candidate = os.path.normpath(os.path.join(root_str, path.lstrip("/")))
    if os.path.commonpath([root_str, candidate]) != root_str:
        raise PathOutsideRoot(url_path)

    resolved = Path(candidate).resolve()
    if not resolved.is_relative_to(Path(root_str).resolve()):
        raise PathOutsideRoot(url_path)
    return resolved


class StaticFileHandler(BaseHTTPRequestHandler):
    server_version = "PlusMinusSmoke/1.0"
    # Set per server class by StaticServer.
    root: Path = Path(".")

    def do_GET(self):
        self._serve(send_body=True)

    def do_HEAD(self):
        self._serve(send_body=False)

    def _serve(self, send_body: bool):
        try:
            path = resolve_request_path(self.root, self.path)
        except PathOutsideRoot:
            logger.warning("Rejected path outside root: %r", self.path)
            self._send_status(HTTPStatus.BAD_REQUEST, send_body)
            return
        except (OSError, RuntimeError) as e:
            # Symlink loops raise RuntimeError from Path.resolve() before 3.13.
            logger.error("Cannot resolve %r: %s", self.path, e)
            self._send_status(HTTPStatus.INTERNAL_SERVER_ERROR, send_body)
            return

        if not path.is_file():
            self._send_status(HTTPStatus.NOT_FOUND, send_body)
            return

        try:
            content = path.read_bytes()
        except OSError as e:
            logger.error("Read failed for %s: %s", path, e)
            self._send_status(HTTPStatus.INTERNAL_SERVER_ERROR, send_body)
            return

        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", content_type_for(path))
        self.send_header("Content-Length", str(len(content)))
        self.send_header("Cache-Control", "no-store, max-age=0")
        self.end_headers()
        if send_body:
            self.wfile.write(content)

    def _send_status(self, status: HTTPStatus, send_body: bool):
        body = f"{status.value} {status.phrase}\n".encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store, max-age=0")
        self.end_headers()
        if send_body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class StaticServer:
    """Owns the loopback listener and its serving thread."""

    def __init__(self, root: str | Path, host: str = HOST, port: int = 0):
        self.root = Path(root).resolve()
        self.host = host
        self.port = port
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def base_url(self) -> str:
        if self._httpd is None:
            raise ResourceError("Server is not running")
        return f"http://{self.host}:{self._httpd.server_address[1]}"

    def start(self) -> "StaticServer":
        handler = type("BoundStaticFileHandler", (StaticFileHandler,), {"root": self.root})
        try:
            self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        except OSError as e:
            raise ResourceError(f"Cannot bind {self.host}:{self.port}: {e}") from e
        self._httpd.daemon_threads = True
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="static-server", daemon=True
        )
        self._thread.start()
        logger.info("Serving %s at %s", self.root, self.base_url)
        return self

    def close(self):
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        logger.info("Static server stopped")
        self._httpd = None
        self._thread = None

    def __enter__(self) -> "StaticServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()


def wait_for_server_ready(base_url: str, attempts: int = 30, interval: float = 0.15):
    """Ping ``GET /`` until the server answers.

    A 404 counts as ready: the root may not have an index page.
    """
    for attempt in range(attempts):
        try:
            with urllib.request.urlopen(f"{base_url}/", timeout=2) as res:
                if res.status == 200:
                    return
        except urllib.error.HTTPError as e:
            if e.code == 404:
                return
        except (urllib.error.URLError, OSError) as e:
            logger.debug("Server not ready (attempt %d): %s", attempt + 1, e)
        time.sleep(interval)
    raise ResourceError(f"Local server at {base_url} did not become ready in time")


def find_module_path(root: str | Path, candidates: list[str]) -> str:
    """Return the URL path of the first candidate page present below *root*.

    Candidate names are compared case-sensitively, so ``PlusMinus`` and
    ``plusminus`` are distinct even on case-insensitive filesystems.
    """
    root = Path(root)
    for candidate in candidates:
        parts = Path(candidate).parts
        if _exists_exact_case(root, parts):
            parent = "/".join(parts[:-1])
            return f"/{parent}/" if parent else "/"
    raise PreconditionError(
        f"Cannot find the module page; expected one of: {', '.join(candidates)} under {root}"
    )


def _exists_exact_case(root: Path, parts: tuple[str, ...]) -> bool:
    current = root
    for part in parts:
        try:
            names = os.listdir(current)
        except OSError:
            return False
        if part not in names:
            return False
        current = current / part
    return current.is_file()
