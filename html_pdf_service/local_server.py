"""
Minimal local HTTP server for trying the service without an ASGI host.

Routes /api/generate-pdf to the same request handler as the FastAPI app and
serves a small HTML test form at GET /.

Usage:
    python -m html_pdf_service.local_server
"""

import asyncio
import logging
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import urlsplit

from .browser import BrowserProvider
from .config import ServiceSettings, get_settings, validate_config_on_startup
from .handler import handle_generate_pdf
from .responses import ServiceResponse, empty_response, error_response, with_cors, write_to_handler

logger = logging.getLogger(__name__)

API_PATH = "/api/generate-pdf"


def render_test_page(port: int) -> str:
    """HTML form that posts a sample document to the API and downloads the PDF."""
    generated_on = datetime.now(timezone.utc).isoformat()
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>PDF Service - Local Test</title>
  <style>
    body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }}
    .test-form {{ background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0; }}
    textarea {{ width: 100%; height: 200px; }}
    button {{ background: #0070f3; color: white; padding: 10px 20px; border: none; border-radius: 4px; cursor: pointer; }}
    button:hover {{ background: #0051a2; }}
  </style>
</head>
<body>
  <h1>PDF Generation Service - Local Test</h1>
  <p>Service is running locally on port {port}</p>

  <div class="test-form">
    <h3>Test PDF Generation</h3>
    <textarea id="htmlContent" placeholder="Enter HTML content here...">
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 40px; }}
    h1 {{ color: #333; }}
    .highlight {{ background-color: yellow; }}
  </style>
</head>
<body>
  <h1>Sample PDF Document</h1>
  <p>This is a <span class="highlight">test document</span> to verify PDF generation.</p>
  <ul>
    <li>HTML to PDF conversion</li>
    <li>CSS styling support</li>
    <li>Headless Chromium rendering</li>
  </ul>
  <p>Generated on: {generated_on}</p>
</body>
</html>
    </textarea>
    <br><br>
    <button onclick="generatePDF()">Generate PDF</button>
  </div>

  <script>
    async function generatePDF() {{
      const html = document.getElementById('htmlContent').value;
      try {{
        const response = await fetch('{API_PATH}', {{
          method: 'POST',
          headers: {{ 'Content-Type': 'application/json' }},
          body: JSON.stringify({{
            html: html,
            options: {{ format: 'A4', printBackground: true, filename: 'test-local.pdf' }}
          }})
        }});
        if (!response.ok) {{
          throw new Error('Failed to generate PDF');
        }}
        const blob = await response.blob();
        const url = window.URL.createObjectURL(blob);
        const a = document.createElement('a');
        a.href = url;
        a.download = 'test-local.pdf';
        document.body.appendChild(a);
        a.click();
        document.body.removeChild(a);
        window.URL.revokeObjectURL(url);
      }} catch (error) {{
        alert('Error: ' + error.message);
      }}
    }}
  </script>
</body>
</html>
"""


class LocalPdfServer(ThreadingHTTPServer):
    """Threaded HTTP server carrying the shared settings and browser provider."""

    daemon_threads = True

    def __init__(self, address, settings: ServiceSettings, provider: BrowserProvider):
        super().__init__(address, LocalRequestHandler)
        self.settings = settings
        self.provider = provider


class LocalRequestHandler(BaseHTTPRequestHandler):
    server: LocalPdfServer

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)

    def _route(self) -> ServiceResponse:
        path = urlsplit(self.path).path
        settings = self.server.settings

        if self.command == "OPTIONS":
            return empty_response(200)

        if path == API_PATH:
            body = b""
            if self.command == "POST":
                try:
                    length = int(self.headers.get("Content-Length") or 0)
                except ValueError:
                    length = -1
                if length < 0:
                    # The body cannot be framed, so the connection is not reusable
                    self.close_connection = True
                    return error_response(400, "Invalid Content-Length")
                if length > settings.max_request_bytes:
                    self.close_connection = True
                    return error_response(413, "Request body too large")
                body = self.rfile.read(length)
            return asyncio.run(handle_generate_pdf(self.command, body, self.server.provider, settings))

        if path == "/" and self.command in ("GET", "HEAD"):
            page = render_test_page(self.server.server_address[1]).encode("utf-8")
            return ServiceResponse(
                status=200,
                headers=with_cors({
                    "Content-Type": "text/html; charset=utf-8",
                    "Content-Length": str(len(page)),
                }),
                body=page,
            )

        return error_response(404, "Not Found")

    def _dispatch(self):
        write_to_handler(self._route(), self)

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_PATCH = _dispatch
    do_DELETE = _dispatch
    do_OPTIONS = _dispatch


def serve(settings: Optional[ServiceSettings] = None, provider: Optional[BrowserProvider] = None) -> None:
    settings = validate_config_on_startup(settings or get_settings())
    provider = provider or BrowserProvider(settings)

    # Resolve once up front so request threads only ever read the cached path
    asyncio.run(provider.resolve())

    server = LocalPdfServer((settings.host, settings.port), settings, provider)
    logger.info(f"🚀 Local PDF service running on http://localhost:{settings.port}")
    logger.info(f"📄 Test page: http://localhost:{settings.port}")
    logger.info(f"🔧 API endpoint: http://localhost:{settings.port}{API_PATH}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down local server...")
    finally:
        server.server_close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    serve()
