"""
Pydantic models for the HTML to PDF service.

These models define the structure for API requests and responses.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator

DEFAULT_MARGIN = {"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"}

# Options that shape the HTTP response rather than the exported document
RESPONSE_OPTIONS = ("filename", "download")


class RenderOptions(BaseModel):
    """
    Rendering options for a single conversion.

    Fields not declared here are kept as-is and handed to the export call,
    so callers can use any option the browser's PDF export understands.
    """

    format: str = Field("A4", description="Page size, e.g. 'A4', 'Letter'")
    printBackground: bool = Field(True, description="Print background colors/images")
    margin: Dict[str, Union[str, float]] = Field(
        default_factory=lambda: dict(DEFAULT_MARGIN),
        description="Page margins; replaces the default object as a whole"
    )
    preferCSSPageSize: bool = Field(False, description="Let CSS @page size win over format")
    filename: str = Field("document.pdf", description="Attachment filename")
    download: bool = Field(True, description="Send Content-Disposition: attachment")

    class Config:
        extra = "allow"

    @field_validator(
        "format", "printBackground", "margin", "preferCSSPageSize", "filename", "download",
        mode="before",
    )
    @classmethod
    def default_when_null(cls, v: Any, info: ValidationInfo) -> Any:
        # An explicit null means "use the default", same as leaving it out
        if v is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return v

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        # Quotes and line breaks would break the Content-Disposition header
        if not v or any(ch in v for ch in '"\r\n'):
            raise ValueError("filename must be non-empty and contain no quotes or line breaks")
        return v

    def export_options(self) -> Dict[str, Any]:
        """
        Merged export options: defaults overridden by caller values, plus
        pass-through fields. Response-only options are removed.
        """
        merged = self.model_dump()
        for key in RESPONSE_OPTIONS:
            merged.pop(key, None)
        return merged


class RenderRequest(BaseModel):
    """HTML document and options for /api/generate-pdf."""

    html: str = Field(..., min_length=1, description="HTML content to render")
    options: RenderOptions = Field(default_factory=RenderOptions)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    timestamp: datetime
    service: str
    environment: str
    browser_provider: str
    browser_ready: Optional[bool] = None
    browser_error: Optional[str] = None
