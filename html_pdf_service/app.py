"""
HTML to PDF Service - FastAPI application.

Accepts an HTML document with rendering options on /api/generate-pdf,
renders it in headless Chromium via Playwright and returns the PDF bytes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .browser import BrowserProvider
from .config import ServiceSettings, get_settings, validate_config_on_startup
from .errors import PayloadTooLarge
from .handler import handle_generate_pdf
from .models import HealthResponse, RenderOptions
from .renderer import render_pdf
from .responses import CORS_HEADERS, error_response, to_fastapi

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "PDF Generator"
VALIDATION_HTML = "<html><body><h1>Test</h1></body></html>"


# ============================================================================
# Dependencies
# ============================================================================

def get_app_settings(request: Request) -> ServiceSettings:
    return request.app.state.settings


def get_browser_provider(request: Request) -> BrowserProvider:
    return request.app.state.browser_provider


async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """
    Read the request body, giving up as soon as it exceeds max_bytes.

    A declared Content-Length above the limit is rejected before any of the
    body is read; otherwise the stream is consumed chunk by chunk.

    Raises:
        PayloadTooLarge: declared or received size exceeds max_bytes
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLarge("Request body too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise PayloadTooLarge("Request body too large")
    return bytes(body)


# ============================================================================
# Startup - resolve the browser once
# ============================================================================

async def prepare_browser(app: FastAPI) -> None:
    """
    Resolve the browser executable and optionally render a test document.

    Failures are recorded on app.state and logged; the service still starts
    so /health can report the problem.
    """
    provider: BrowserProvider = app.state.browser_provider
    settings: ServiceSettings = app.state.settings

    try:
        await provider.resolve()
    except Exception as e:
        app.state.browser_ready = False
        app.state.browser_error = str(e)
        logger.error(f"❌ Browser provisioning failed: {e}")
        return

    if not settings.validate_browser_on_startup:
        return

    logger.info("Validating browser with a test render...")
    quick = settings.model_copy(update={"pdf_settle_delay_ms": 0})
    try:
        async with provider.session() as browser:
            test_pdf = await render_pdf(browser, VALIDATION_HTML, RenderOptions(), quick)
        app.state.browser_ready = True
        app.state.browser_error = None
        logger.info(f"✅ Browser validation successful - generated {len(test_pdf)} byte test PDF")
    except Exception as e:
        app.state.browser_ready = False
        app.state.browser_error = str(e)
        logger.error(f"❌ Browser validation failed: {e}")
        logger.error("PDF generation will not work until this is resolved.")


# ============================================================================
# Application factory
# ============================================================================

def create_app(
    settings: Optional[ServiceSettings] = None,
    provider: Optional[BrowserProvider] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    The settings and browser provider are created here, once per process,
    and handed to request handlers through dependencies.
    """
    settings = validate_config_on_startup(settings)
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title="PDF Service",
        version=__version__,
        description="HTML to PDF generation service using Playwright/Chromium"
    )
    app.state.settings = settings
    app.state.browser_provider = provider or BrowserProvider(settings)
    app.state.browser_ready = None
    app.state.browser_error = None

    @app.on_event("startup")
    async def on_startup():
        logger.info(f"🚀 PDF Generation service starting on port {settings.port}")
        logger.info(f"🌍 Environment: {settings.environment}")
        await prepare_browser(app)

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            content = {
                "error": "Endpoint not found",
                "path": request.url.path,
                "method": request.method,
            }
        elif exc.status_code == 405:
            content = {"error": "Method Not Allowed"}
        else:
            content = {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)},
            headers=dict(CORS_HEADERS),
        )

    @app.get("/")
    async def service_info():
        """Service metadata and endpoint listing."""
        return {
            "service": "PDF Generation Microservice",
            "version": __version__,
            "endpoints": {
                "health": "GET /health",
                "generatePdf": "POST /api/generate-pdf",
            },
            "documentation": 'Send POST request to /api/generate-pdf with { html: "...", options: {...} }',
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check(
        request: Request,
        settings: ServiceSettings = Depends(get_app_settings),
        provider: BrowserProvider = Depends(get_browser_provider),
    ):
        """
        Health check endpoint for container orchestration.

        Returns HTTP 503 if browser provisioning or the startup test render failed.
        """
        health = HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc),
            service=SERVICE_NAME,
            environment=settings.environment,
            browser_provider=provider.strategy.value,
            browser_ready=request.app.state.browser_ready,
            browser_error=request.app.state.browser_error,
        )
        if request.app.state.browser_ready is False:
            health.status = "unhealthy"
            return JSONResponse(status_code=503, content=health.model_dump(mode="json"))
        return health

    @app.api_route(
        "/api/generate-pdf",
        methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    async def generate_pdf_endpoint(
        request: Request,
        settings: ServiceSettings = Depends(get_app_settings),
        provider: BrowserProvider = Depends(get_browser_provider),
    ):
        """
        Convert the posted HTML document to PDF.

        Body: {"html": "...", "options": {...}}. Returns the raw PDF bytes,
        or a JSON error (400 missing HTML, 405 wrong method, 500 render failure).
        """
        body = b""
        if request.method == "POST":
            try:
                body = await read_limited_body(request, settings.max_request_bytes)
            except PayloadTooLarge as e:
                logger.warning(f"Rejected POST request: {e.message}")
                return to_fastapi(error_response(e.status_code, e.message))
        response = await handle_generate_pdf(request.method, body, provider, settings)
        return to_fastapi(response)

    return app


app = create_app(get_settings())
