"""
HTML to PDF Service - HTTP endpoint that renders HTML documents to PDF.

Accepts an HTML document and rendering options, drives headless Chromium
through Playwright and returns the resulting PDF bytes. The browser can be
Playwright's bundled Chromium, a packaged serverless build (local or
downloaded at startup) or a system-installed Chrome.
"""

__version__ = "1.0.0"
