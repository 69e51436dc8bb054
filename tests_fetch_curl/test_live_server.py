"""
Tests for CurlRequest against a local http.server with a real libcurl handle.
Logic testing: Happy Path, Error Path, Decision coverage
"""
import ssl
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from fetch_curl import CurlRequest

CERTS = Path(__file__).parent / "certs"


class _EchoHandler(BaseHTTPRequestHandler):
    """Echo the request path (GET) or body (POST) back as UTF-8 text."""

    def log_message(self, _format, *args):
        return

    def _send_text(self, body: bytes, include_body: bool = True) -> None:
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def do_GET(self):  # noqa: N802
        length = int(self.headers.get("Content-Length") or 0)
        payload = self.rfile.read(length) if length else b""
        self._send_text(payload or self.path.encode("ascii"))

    def do_HEAD(self):  # noqa: N802
        self._send_text(self.path.encode("ascii"), include_body=False)

    def do_POST(self):  # noqa: N802
        length = int(self.headers.get("Content-Length") or 0)
        self._send_text(self.rfile.read(length))


def _serve(server):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture(scope="module")
def live_server():
    """Plain HTTP server on an ephemeral port."""
    yield from _serve(ThreadingHTTPServer(("127.0.0.1", 0), _EchoHandler))


@pytest.fixture(scope="module")
def tls_server():
    """HTTPS server presenting a self-signed certificate for localhost/127.0.0.1."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _EchoHandler)
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(CERTS / "server.crt", CERTS / "server.key")
    server.socket = context.wrap_socket(server.socket, server_side=True)
    yield from _serve(server)


def _url(server, path="/", scheme="http"):
    host, port = server.server_address[:2]
    return f"{scheme}://{host}:{port}{path}"


class TestLiveTransfer:
    """Transfers through a real libcurl handle."""

    def test_get_returns_path(self, live_server):
        request = CurlRequest(_url(live_server, "/users")).set_query({"page": 2})
        assert request.execute() == "/users?page=2"
        assert request.status_code == 200

    def test_form_post_reaches_server(self, live_server):
        result = (
            CurlRequest(_url(live_server, "/form"))
            .set_method("POST")
            .set_body({"name": "test", "n": 1})
            .execute()
        )
        assert result == "name=test&n=1"

    # Path: non-ASCII body goes out as UTF-8 and comes back decoded
    def test_non_ascii_body(self, live_server):
        result = CurlRequest(_url(live_server)).set_method("POST").set_body("José").execute()
        assert result == "José"

    def test_non_ascii_query(self, live_server):
        assert CurlRequest(_url(live_server, "/search")).set_query("q=café").execute() == "/search?q=caf%C3%A9"

    def test_non_ascii_multipart(self, live_server):
        result = (
            CurlRequest(_url(live_server))
            .set_method("POST")
            .set_body({"name": "José"}, has_file=True)
            .execute()
        )
        assert 'name="name"' in result
        assert "José" in result

    # Boundary: negative timeout falls back to the default
    def test_negative_timeout(self, live_server):
        request = CurlRequest(_url(live_server, "/ok")).set_timeout(-1)
        assert request.execute() == "/ok"
        assert request.last_error is None


class TestLiveHeaderGetters:
    """Header getters on a real handle."""

    def test_get_request_headers(self, live_server):
        result = CurlRequest(_url(live_server, "/users")).add_header("X-Trace", "abc").get_request_headers()

        assert result.startswith("HEAD /users HTTP/1.1\r\n")
        assert "X-Trace: abc\r\n" in result

    def test_get_response_headers(self, live_server):
        result = CurlRequest(_url(live_server, "/users")).get_response_headers()

        assert result.startswith("HTTP/1.")
        assert "Content-Type: text/plain; charset=utf-8" in result
        assert "/users" not in result.split("\r\n\r\n", 1)[1]

    # Decision: content=True keeps the body after the header block
    def test_get_response_headers_with_content(self, live_server):
        result = CurlRequest(_url(live_server, "/users")).get_response_headers(content=True)
        assert result.endswith("\r\n\r\n/users")


class TestLiveSsl:
    """SSL verification against a self-signed endpoint."""

    # Error Path: verification on rejects the self-signed certificate
    def test_verify_on_fails(self, tls_server):
        request = CurlRequest(_url(tls_server, "/secure", scheme="https"))

        assert request.execute() is None
        assert request.last_error.code in (51, 60)

    # Decision: verification off lets the request succeed
    def test_verify_off_succeeds(self, tls_server):
        result = CurlRequest(_url(tls_server, "/secure", scheme="https")).set_ssl_verify(False).execute()
        assert result == "/secure"
