"""
Render pipeline: HTML in, PDF bytes out.

Steps run strictly in order with no retries:
  1. open a page in the session's browser
  2. load the HTML and wait (bounded) for DOM-ready, then network-idle
  3. wait the settle delay for late async rendering (web fonts, scripts)
  4. export with the merged options
  5. reject empty output
"""

import asyncio
import inspect
import logging
import re
from typing import Any, Dict

from playwright.async_api import Browser, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .browser import BrowserProvider
from .config import ServiceSettings
from .errors import EmptyOutputError, ExportFailure, PageLoadTimeout, PdfGenerationError
from .models import RenderOptions, RenderRequest

logger = logging.getLogger(__name__)

# camelCase option names whose snake_case form is not a plain split on capitals
EXPORT_OPTION_ALIASES = {
    "printBackground": "print_background",
    "preferCSSPageSize": "prefer_css_page_size",
    "displayHeaderFooter": "display_header_footer",
    "headerTemplate": "header_template",
    "footerTemplate": "footer_template",
    "pageRanges": "page_ranges",
}

# Never let a request write to the server's filesystem
BLOCKED_EXPORT_OPTIONS = {"path"}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _accepted_export_kwargs() -> frozenset:
    params = inspect.signature(Page.pdf).parameters
    return frozenset(name for name in params if name != "self") - BLOCKED_EXPORT_OPTIONS


ACCEPTED_EXPORT_KWARGS = _accepted_export_kwargs()


def to_export_kwarg(name: str) -> str:
    """Translate a caller option name to Page.pdf()'s keyword name."""
    if name in EXPORT_OPTION_ALIASES:
        return EXPORT_OPTION_ALIASES[name]
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def build_export_kwargs(options: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert merged export options into Page.pdf() keyword arguments.

    Options the export call does not understand are logged and dropped,
    as are null values.
    """
    kwargs = {}
    dropped = []
    for name, value in options.items():
        kwarg = to_export_kwarg(name)
        if kwarg not in ACCEPTED_EXPORT_KWARGS:
            dropped.append(name)
            continue
        if value is None:
            continue
        kwargs[kwarg] = value

    if dropped:
        logger.warning(f"Ignoring unsupported PDF options: {', '.join(sorted(dropped))}")
    return kwargs


async def load_content(page: Page, html: str, timeout_ms: int) -> None:
    """Set the page content and wait for DOM-ready then network-idle within one deadline."""
    loop = asyncio.get_running_loop()
    started = loop.time()

    try:
        await page.set_content(html, wait_until="domcontentloaded", timeout=timeout_ms)
        elapsed_ms = (loop.time() - started) * 1000
        remaining_ms = max(timeout_ms - elapsed_ms, 1)
        await page.wait_for_load_state("networkidle", timeout=remaining_ms)
    except (PlaywrightTimeoutError, asyncio.TimeoutError) as e:
        raise PageLoadTimeout(f"Content did not finish loading within {timeout_ms}ms") from e
    except PlaywrightError as e:
        raise PdfGenerationError(f"Failed to load HTML content: {e}") from e


async def render_pdf(
    browser: Browser,
    html: str,
    options: RenderOptions,
    settings: ServiceSettings,
) -> bytes:
    """
    Render HTML to PDF in an already launched browser.

    Raises:
        PageLoadTimeout: readiness signals did not fire within the load timeout
        ExportFailure: the PDF export call failed
        EmptyOutputError: the export returned no bytes
    """
    page = await browser.new_page(ignore_https_errors=True)

    await load_content(page, html, settings.pdf_load_timeout_ms)
    logger.info("Content loaded successfully")

    if settings.pdf_settle_delay_ms > 0:
        await asyncio.sleep(settings.pdf_settle_delay_seconds)

    pdf_kwargs = build_export_kwargs(options.export_options())
    logger.info(f"Generating PDF with options: {pdf_kwargs}")

    try:
        pdf_bytes = await page.pdf(**pdf_kwargs)
    except Exception as e:
        raise ExportFailure(f"PDF export failed: {e}") from e

    if not pdf_bytes:
        raise EmptyOutputError()

    logger.info(f"PDF generated successfully, size: {len(pdf_bytes)} bytes")
    return pdf_bytes


async def generate_pdf(
    provider: BrowserProvider,
    request: RenderRequest,
    settings: ServiceSettings,
) -> bytes:
    """Run the full pipeline inside a fresh browser session."""
    logger.info("Starting PDF generation...")
    async with provider.session() as browser:
        return await render_pdf(browser, request.html, request.options, settings)
