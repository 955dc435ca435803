"""
Internal response abstraction and hosting adapters.

Request handling produces a ServiceResponse; each hosting target turns it
into its own response type exactly once (to_fastapi for the FastAPI app,
write_to_handler for the raw http.server variant).
"""

import json
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler
from typing import Any, Dict

from fastapi.responses import Response

from .models import RenderOptions

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@dataclass
class ServiceResponse:
    """Status, headers and body, independent of the hosting framework."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        return json.loads(self.body)


def with_cors(headers: Dict[str, str]) -> Dict[str, str]:
    return {**CORS_HEADERS, **headers}


def empty_response(status: int = 200) -> ServiceResponse:
    """Preflight answer: no body, CORS headers only."""
    return ServiceResponse(status=status, headers=with_cors({"Content-Length": "0"}))


def json_response(status: int, payload: Dict[str, Any]) -> ServiceResponse:
    body = json.dumps(payload).encode("utf-8")
    return ServiceResponse(
        status=status,
        headers=with_cors({
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
        }),
        body=body,
    )


def error_response(status: int, error: str, **details: Any) -> ServiceResponse:
    """JSON error body; detail fields that are None are left out."""
    payload = {"error": error}
    payload.update({key: value for key, value in details.items() if value is not None})
    return json_response(status, payload)


def pdf_response(pdf_bytes: bytes, options: RenderOptions) -> ServiceResponse:
    headers = {
        "Content-Type": "application/pdf",
        "Content-Length": str(len(pdf_bytes)),
    }
    if options.download:
        headers["Content-Disposition"] = f'attachment; filename="{options.filename}"'
    return ServiceResponse(status=200, headers=with_cors(headers), body=pdf_bytes)


def to_fastapi(response: ServiceResponse) -> Response:
    """Adapter for the FastAPI/Starlette hosting target."""
    headers = dict(response.headers)
    media_type = headers.pop("Content-Type", None)
    return Response(
        content=response.body,
        status_code=response.status,
        headers=headers,
        media_type=media_type,
    )


def write_to_handler(response: ServiceResponse, handler: BaseHTTPRequestHandler) -> None:
    """Adapter for the raw http.server hosting target."""
    handler.send_response(response.status)
    for name, value in response.headers.items():
        handler.send_header(name, value)
    handler.end_headers()
    if response.body and handler.command != "HEAD":
        handler.wfile.write(response.body)
