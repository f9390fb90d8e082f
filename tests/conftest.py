import json
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest
import requests

# Ensure the package root is importable when running tests without install
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

PUBLIC_KEY = "qIhtTW9K4iXWFo5Q4dOPdXg8/xubXr9yEGoN55D8xnA="
PRIVATE_KEY = "yAnz5TF+lXXJte14tji3zlMNq+hd2rYUIgJBgB3fBmk="


class FakeResponse:
    def __init__(self, status_code=200, body=b"", on_chunk=None):
        self.status_code = status_code
        self._body = body if isinstance(body, bytes) else body.encode("utf-8")
        self._on_chunk = on_chunk
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self._body), chunk_size):
            if self._on_chunk is not None:
                self._on_chunk()
            yield self._body[i:i + chunk_size]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeSession:
    """Routes GETs by URL to canned responses, exceptions, or callables."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.responses = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        route = self.routes.get(url)
        if route is None:
            raise requests.exceptions.ConnectionError(f"no route for {url}")
        if isinstance(route, BaseException):
            raise route
        if callable(route):
            route = route(url, kwargs)
        self.responses.append(route)
        return route

    def close(self):
        self.closed = True


def json_response(payload, status_code=200):
    return FakeResponse(status_code, json.dumps(payload))


def nord_server(station="62.3.36.228", identifier="wireguard_udp", public_key=PUBLIC_KEY):
    metadata = [{"name": "public_key", "value": public_key}] if public_key else []
    return {"station": station, "technologies": [{"identifier": identifier, "metadata": metadata}]}


@pytest.fixture
def fake_session():
    return FakeSession()


class SlowHandler(BaseHTTPRequestHandler):
    """Holds every GET until the test releases it (or 4 seconds pass)."""

    def do_GET(self):
        self.server.release.wait(4)
        body = b"{}"
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def slow_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), SlowHandler)
    server.release = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/"
    finally:
        server.release.set()
        server.shutdown()
        server.server_close()
