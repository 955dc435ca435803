"""
Setup script for the HTML to PDF service.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="html-pdf-service",
    version="1.0.0",
    packages=find_packages(include=["html_pdf_service", "html_pdf_service.*"]),
    python_requires=">=3.11.4",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "playwright>=1.40",
        "httpx>=0.26",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "html-pdf-service=html_pdf_service.__main__:main",
            "html-pdf-smoke=html_pdf_service.cli:main",
        ],
    },
)
