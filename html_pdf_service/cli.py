"""
Smoke-test a running PDF service.

Posts a sample HTML document to /api/generate-pdf and writes the returned PDF.

Usage:
    html-pdf-smoke
    html-pdf-smoke --sample emoji --url http://localhost:3000
    html-pdf-smoke --output report.pdf
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict

import httpx

DEFAULT_URL = "http://localhost:3000"
REQUEST_TIMEOUT = 120.0  # seconds


def report_html() -> str:
    generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return f"""
<html>
<head>
  <style>
    body {{ font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 40px; line-height: 1.6; }}
    h1 {{ color: #2c3e50; border-bottom: 3px solid #3498db; padding-bottom: 10px; }}
    .highlight {{ background-color: #f39c12; color: white; padding: 2px 8px; border-radius: 4px; }}
    .feature-list {{ background-color: #ecf0f1; padding: 20px; border-radius: 8px; margin: 20px 0; }}
    .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #bdc3c7; font-size: 0.9em; color: #7f8c8d; }}
    td, th {{ padding: 8px; }}
  </style>
</head>
<body>
  <h1>PDF Generation Test Report</h1>
  <p>This document demonstrates the <span class="highlight">HTML to PDF conversion</span> capabilities of the service.</p>
  <div class="feature-list">
    <h3>Features Tested:</h3>
    <ul>
      <li><strong>CSS Styling:</strong> Fonts, colors, layouts</li>
      <li><strong>Backgrounds:</strong> printBackground option</li>
      <li><strong>Margins:</strong> custom page margins</li>
      <li><strong>Binary Output:</strong> raw PDF bytes over HTTP</li>
    </ul>
  </div>
  <table border="1" style="border-collapse: collapse; width: 100%;">
    <tr style="background-color: #34495e; color: white;"><th>Component</th><th>Status</th></tr>
    <tr><td>Chromium</td><td>Headless</td></tr>
    <tr style="background-color: #f8f9fa;"><td>API Status</td><td>Working</td></tr>
  </table>
  <div class="footer">
    <p><strong>Generated:</strong> {generated}</p>
  </div>
</body>
</html>
"""


def emoji_html() -> str:
    return """
<html>
<head>
  <title>Emoji Test</title>
  <style>
    body {
      font-family: 'Noto Color Emoji', 'Noto Emoji', 'Apple Color Emoji', 'Segoe UI Emoji', 'Segoe UI Symbol', Arial, sans-serif;
      font-size: 16px;
      line-height: 1.6;
      margin: 40px;
    }
    .emoji-section { margin: 20px 0; padding: 20px; border: 1px solid #ddd; border-radius: 8px; }
  </style>
</head>
<body>
  <h1>🎯 Emoji Support Test</h1>
  <div class="emoji-section">
    <h2>Basic Emojis</h2>
    <p>😀 😃 😄 😁 😆 😅 😂 🤣 😊 😇</p>
    <p>🎉 🎊 🎁 🎈 🎂 🎯 🎭 🎪 🎨 🎸</p>
  </div>
  <div class="emoji-section">
    <h2>Technical Emojis</h2>
    <p>⚡ 🔧 🔨 ⚙️ 🖥️ 💻 📱 🖨️ ⌨️ 🖱️</p>
    <p>✅ ❌ ⚠️ 🔄 📊 📈 📉 💾 📁 📂</p>
  </div>
</body>
</html>
"""


SAMPLES = {
    "report": report_html,
    "emoji": emoji_html,
}


def build_payload(sample: str, filename: str) -> Dict:
    return {
        "html": SAMPLES[sample](),
        "options": {
            "format": "A4",
            "printBackground": True,
            "filename": filename,
            "margin": {"top": "30px", "right": "30px", "bottom": "30px", "left": "30px"},
        },
    }


def request_pdf(base_url: str, payload: Dict, client: httpx.Client) -> bytes:
    """
    POST the payload and return the PDF bytes.

    Raises:
        RuntimeError: non-2xx response from the service
    """
    url = f"{base_url.rstrip('/')}/api/generate-pdf"
    response = client.post(url, json=payload)
    if response.status_code != 200:
        raise RuntimeError(f"HTTP {response.status_code}: {response.text}")
    return response.content


def main(argv=None) -> int:
    """CLI entry point for the smoke test."""
    parser = argparse.ArgumentParser(
        description="Generate a sample PDF through a running PDF service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--url", "-u",
        default=DEFAULT_URL,
        help=f"Service base URL (default: {DEFAULT_URL})"
    )
    parser.add_argument(
        "--sample", "-s",
        choices=sorted(SAMPLES),
        default="report",
        help="Sample document to render (default: report)"
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Where to write the PDF (default: cli-test-<sample>.pdf)"
    )
    args = parser.parse_args(argv)

    output = Path(args.output or f"cli-test-{args.sample}.pdf")
    payload = build_payload(args.sample, output.name)

    print(f"🚀 Testing PDF generation against {args.url} ...")
    try:
        with httpx.Client(timeout=REQUEST_TIMEOUT) as client:
            pdf_bytes = request_pdf(args.url, payload, client)
    except (httpx.HTTPError, RuntimeError) as e:
        print(f"❌ Error generating PDF: {e}")
        return 1

    output.write_bytes(pdf_bytes)
    print("✅ PDF generated successfully!")
    print(f"📁 File: {output.resolve()}")
    print(f"📏 Size: {len(pdf_bytes):,} bytes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
