"""
Request handling for /api/generate-pdf, shared by every hosting adapter.
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from .browser import BrowserProvider
from .config import ServiceSettings
from .errors import (
    MethodNotAllowed,
    PayloadTooLarge,
    PdfServiceError,
    RequestValidationError,
)
from .models import RenderOptions, RenderRequest
from .renderer import generate_pdf
from .responses import ServiceResponse, empty_response, error_response, pdf_response

logger = logging.getLogger(__name__)

MISSING_HTML = "Missing HTML content"


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "; ".join(parts)


def parse_render_request(body: bytes, max_bytes: Optional[int] = None) -> RenderRequest:
    """
    Decode and validate a JSON request body.

    Raises:
        PayloadTooLarge: body exceeds max_bytes
        RequestValidationError: invalid JSON, missing HTML, or bad options
    """
    if max_bytes is not None and len(body) > max_bytes:
        raise PayloadTooLarge("Request body too large")

    try:
        data: Any = json.loads(body) if body else {}
    except (ValueError, UnicodeDecodeError):
        raise RequestValidationError("Invalid JSON in request body")

    if not isinstance(data, dict):
        raise RequestValidationError("Request body must be a JSON object")

    html = data.get("html")
    if not html:
        raise RequestValidationError(MISSING_HTML)
    if not isinstance(html, str):
        raise RequestValidationError("html must be a string")

    options = data.get("options")
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise RequestValidationError("options must be a JSON object")

    try:
        return RenderRequest(html=html, options=RenderOptions(**options))
    except ValidationError as e:
        raise RequestValidationError(f"Invalid options: {_validation_message(e)}")


def generation_error_response(error: Exception, settings: ServiceSettings) -> ServiceResponse:
    """Uniform 500 body for every pipeline failure."""
    details = error.message if isinstance(error, PdfServiceError) else str(error)
    stack = None
    if settings.include_stack_traces:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return error_response(
        500,
        "Failed to generate PDF",
        details=details or type(error).__name__,
        stack=stack,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


async def handle_generate_pdf(
    method: str,
    body: bytes,
    provider: BrowserProvider,
    settings: ServiceSettings,
) -> ServiceResponse:
    """
    Handle one request to the PDF endpoint.

    OPTIONS answers the CORS preflight, POST renders, anything else is 405.
    Never raises; every outcome is returned as a ServiceResponse.
    """
    method = method.upper()

    if method == "OPTIONS":
        return empty_response(200)

    try:
        if method != "POST":
            raise MethodNotAllowed("Method Not Allowed")
        request = parse_render_request(body, settings.max_request_bytes)
    except (MethodNotAllowed, PayloadTooLarge, RequestValidationError) as e:
        logger.warning(f"Rejected {method} request: {e.message}")
        return error_response(e.status_code, e.message)

    try:
        pdf_bytes = await generate_pdf(provider, request, settings)
    except Exception as e:
        logger.exception(f"PDF generation error: {e}")
        return generation_error_response(e, settings)

    return pdf_response(pdf_bytes, request.options)
