"""
Pytest fixtures for PDF service tests.
"""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

# IMPORTANT: Set environment variables BEFORE any imports from html_pdf_service
# so the module-level app is built with test-friendly settings.
os.environ["ENVIRONMENT"] = "development"
os.environ["BROWSER_PROVIDER"] = "bundled"
os.environ["PDF_SETTLE_DELAY_MS"] = "0"
os.environ.pop("CHROME_EXECUTABLE_PATH", None)
os.environ.pop("CHROMIUM_PACK_URL", None)
os.environ.pop("CHROMIUM_PACK_PATH", None)

import pytest
from fastapi.testclient import TestClient

from html_pdf_service.config import ServiceSettings

FAKE_PDF = b"%PDF-1.4 fake pdf content"


def build_fake_playwright(pdf_bytes=FAKE_PDF):
    """
    Fake of playwright.async_api.async_playwright.

    async_playwright().start() returns a driver whose chromium.launch()
    returns a browser whose new_page() returns a page whose pdf() returns
    pdf_bytes.
    """
    page = AsyncMock()
    page.pdf = AsyncMock(return_value=pdf_bytes)
    browser = AsyncMock()
    browser.new_page = AsyncMock(return_value=page)
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()
    factory = MagicMock()
    factory.return_value.start = AsyncMock(return_value=playwright)
    return SimpleNamespace(factory=factory, playwright=playwright, browser=browser, page=page)


@pytest.fixture
def settings():
    """Development settings with no settle delay and the bundled browser."""
    return ServiceSettings(
        environment="development",
        browser_provider="bundled",
        pdf_settle_delay_ms=0,
        restricted_sandbox=False,
    )


@pytest.fixture
def production_settings():
    return ServiceSettings(
        environment="production",
        browser_provider="bundled",
        pdf_settle_delay_ms=0,
        restricted_sandbox=False,
    )


@pytest.fixture
def fake_playwright():
    """Patch Playwright so no real browser is launched."""
    fake = build_fake_playwright()
    with patch("html_pdf_service.browser.async_playwright", fake.factory):
        yield fake


@pytest.fixture
def client(settings):
    """FastAPI test client built from the development settings."""
    from html_pdf_service.app import create_app
    return TestClient(create_app(settings))


@pytest.fixture
def production_client(production_settings):
    from html_pdf_service.app import create_app
    return TestClient(create_app(production_settings))
