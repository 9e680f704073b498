"""Shared test fixtures: fake transports and a loopback HTTP server"""

from __future__ import annotations

import io
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, List, Optional

import pytest
import requests

from rqkit.domain.models.context import ExecutionContext
from rqkit.infrastructure.transport.base import Transport


def _make_response(
    status_code: int = 200,
    body: bytes | dict | None = None,
    headers: Optional[Dict[str, str]] = None,
    url: str = "http://example.test/",
) -> requests.Response:
    r = requests.Response()
    r.status_code = status_code
    r.url = url
    r.reason = "OK" if status_code < 400 else "Error"
    if isinstance(body, dict):
        body = json.dumps(body).encode("utf-8")
        r.headers["Content-Type"] = "application/json"
    content = body or b""
    r._content = content  # type: ignore[attr-defined]
    r.raw = io.BytesIO(content)
    r.headers.update(headers or {})
    return r


class ScriptedTransport(Transport):
    """Plays back outcomes in order (the last one repeats) and records calls

    An outcome is a status code, a ``requests.Response``, an exception to
    raise, or a callable taking the prepared request and returning one of those.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [200]
        self.requests: List[requests.PreparedRequest] = []
        self.bodies: List[Optional[bytes]] = []
        self.timeouts: List[Optional[float]] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(self, request, ctx: ExecutionContext, timeout=None):
        self.requests.append(request)
        self.bodies.append(request.body)
        self.timeouts.append(timeout)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if callable(outcome) and not isinstance(outcome, type):
            outcome = outcome(request)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            return _make_response(outcome, url=request.url)
        return outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    return _make_response


@pytest.fixture
def scripted():
    """Factory for ScriptedTransport"""
    return ScriptedTransport


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.server.handle_request_for(self)  # type: ignore[attr-defined]

    def do_POST(self):
        self.server.handle_request_for(self)  # type: ignore[attr-defined]

    def log_message(self, format, *args):
        pass


class _Server(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self):
        super().__init__(("127.0.0.1", 0), _Handler)
        self.statuses: List[int] = []
        self.received: List[bytes] = []
        self.hits = 0
        self._lock = threading.Lock()

    def handle_request_for(self, handler: BaseHTTPRequestHandler) -> None:
        length = int(handler.headers.get("Content-Length") or 0)
        body = handler.rfile.read(length) if length else b""
        with self._lock:
            self.hits += 1
            self.received.append(body)
            status = self.statuses.pop(0) if len(self.statuses) > 1 else (self.statuses[0] if self.statuses else 200)
        payload = b"Success" if status < 400 else b"boom"
        handler.send_response(status)
        handler.send_header("Content-Type", "text/plain")
        handler.send_header("Content-Length", str(len(payload)))
        handler.end_headers()
        handler.wfile.write(payload)

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}/"


@pytest.fixture
def http_server():
    """Loopback server answering with a scripted list of status codes"""
    server = _Server()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
