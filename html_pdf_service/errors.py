"""
Exception hierarchy for the HTML to PDF service.

Each exception carries the HTTP status code it maps to. Everything raised
while launching the browser, loading content or exporting is a
PdfGenerationError and is reported to the caller as the same generic 500.
"""


class PdfServiceError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RequestValidationError(PdfServiceError):
    """Missing or malformed request input."""

    status_code = 400


class MethodNotAllowed(PdfServiceError):
    """HTTP method other than POST/OPTIONS on the generation endpoint."""

    status_code = 405


class PayloadTooLarge(PdfServiceError):
    status_code = 413


class PdfGenerationError(PdfServiceError):
    """Any failure inside the render pipeline."""

    status_code = 500


class BrowserProvisioningError(PdfGenerationError):
    """The browser executable could not be located, extracted or downloaded."""


class BrowserLaunchFailure(PdfGenerationError):
    pass


class PageLoadTimeout(PdfGenerationError):
    pass


class ExportFailure(PdfGenerationError):
    pass


class EmptyOutputError(PdfGenerationError):
    """The browser returned a zero-length PDF without raising."""

    def __init__(self, message: str = "Generated PDF is empty"):
        super().__init__(message)
