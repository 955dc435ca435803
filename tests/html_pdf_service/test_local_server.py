"""
Tests for the raw http.server hosting adapter.

A real LocalPdfServer is started on an ephemeral port; Playwright is faked.
"""

import socket
import threading

import httpx
import pytest

from html_pdf_service.browser import BrowserProvider
from html_pdf_service.local_server import API_PATH, LocalPdfServer, render_test_page


@pytest.fixture
def local_server(settings):
    provider = BrowserProvider(settings)
    server = LocalPdfServer(("127.0.0.1", 0), settings, provider)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


class TestLocalServer:
    """Tests for LocalPdfServer routing."""

    def test_test_page(self, local_server):
        response = httpx.get(f"{local_server}/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "PDF Generation Service - Local Test" in response.text
        assert response.headers["access-control-allow-origin"] == "*"

    def test_options_anywhere(self, local_server):
        response = httpx.options(f"{local_server}{API_PATH}")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"

    def test_unknown_route(self, local_server):
        response = httpx.get(f"{local_server}/missing")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_get_on_api_is_405(self, local_server):
        response = httpx.get(f"{local_server}{API_PATH}")
        assert response.status_code == 405

    def test_missing_html(self, local_server):
        response = httpx.post(f"{local_server}{API_PATH}", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing HTML content"}

    def test_invalid_json(self, local_server):
        response = httpx.post(f"{local_server}{API_PATH}", content=b"not json")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON in request body"}

    def test_generates_pdf(self, local_server, fake_playwright):
        response = httpx.post(
            f"{local_server}{API_PATH}",
            json={"html": "<h1>Hi</h1>", "options": {"filename": "local.pdf"}},
        )

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert response.headers["content-type"] == "application/pdf"
        assert int(response.headers["content-length"]) == len(response.content)
        assert response.headers["content-disposition"] == 'attachment; filename="local.pdf"'
        fake_playwright.browser.close.assert_awaited_once()


def send_raw(base_url, request_head):
    """Send a hand-built request and read until the server closes the socket."""
    url = httpx.URL(base_url)
    with socket.create_connection((url.host, url.port), timeout=5) as sock:
        sock.sendall(request_head.encode("ascii"))
        chunks = []
        while True:
            data = sock.recv(4096)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks)


class TestContentLength:
    """Tests for malformed Content-Length headers on the raw server."""

    @pytest.mark.parametrize("value", ["-1", "abc"])
    def test_invalid_content_length_returns_400(self, local_server, value):
        raw = send_raw(
            local_server,
            f"POST {API_PATH} HTTP/1.1\r\nHost: localhost\r\nContent-Length: {value}\r\n\r\n",
        )

        status_line, _, rest = raw.partition(b"\r\n")
        assert b" 400 " in status_line
        assert rest.endswith(b'{"error": "Invalid Content-Length"}')

    def test_oversized_content_length_returns_413(self, local_server):
        raw = send_raw(
            local_server,
            f"POST {API_PATH} HTTP/1.1\r\nHost: localhost\r\nContent-Length: {1024 ** 3}\r\n\r\n",
        )

        assert b" 413 " in raw.partition(b"\r\n")[0]


def test_render_test_page_mentions_port():
    html = render_test_page(4321)
    assert "port 4321" in html
    assert API_PATH in html
