"""
Browser provisioning and per-request browser sessions.

A BrowserProvider is created once at application start. It decides which
provisioning strategy the deployment uses and locates (or downloads and
extracts) the browser executable the first time it is needed, caching the
result. Every request then opens its own BrowserSession, which launches one
Chromium process and always tears it down again.
"""

import asyncio
import logging
import os
import shutil
import stat
import tarfile
import zipfile
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx
from playwright.async_api import Browser, async_playwright

from .config import ServiceSettings
from .errors import BrowserLaunchFailure, BrowserProvisioningError

logger = logging.getLogger(__name__)

# Flags for environments without user namespaces, a usable /dev/shm or a GPU
RESTRICTED_BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--single-process",
    "--disable-gpu",
)

SYSTEM_BROWSER_CANDIDATES = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "/usr/bin/google-chrome",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
)

PACKAGED_EXECUTABLE_NAMES = ("chromium", "chrome", "headless_shell", "chrome-headless-shell")

SERVERLESS_ENV_MARKERS = (
    "AWS_LAMBDA_FUNCTION_NAME",
    "VERCEL",
    "K_SERVICE",
    "FUNCTIONS_WORKER_RUNTIME",
)

REMOTE_DOWNLOAD_TIMEOUT = 120.0  # seconds


class ProvisioningStrategy(str, Enum):
    """How the browser executable is obtained."""

    BUNDLED = "bundled"
    PACKAGED = "packaged"
    REMOTE = "remote"
    SYSTEM = "system"


def select_strategy(settings: ServiceSettings) -> ProvisioningStrategy:
    """
    Pick the provisioning strategy for this deployment.

    An explicit BROWSER_PROVIDER wins. With "auto", an explicit executable
    path selects the system browser, then a remote pack URL, then a local
    pack path, and finally Playwright's bundled Chromium.
    """
    if settings.browser_provider != "auto":
        return ProvisioningStrategy(settings.browser_provider)
    if settings.chrome_executable_path:
        return ProvisioningStrategy.SYSTEM
    if settings.chromium_pack_url:
        return ProvisioningStrategy.REMOTE
    if settings.chromium_pack_path:
        return ProvisioningStrategy.PACKAGED
    return ProvisioningStrategy.BUNDLED


def detect_restricted_environment(
    environ: Optional[Mapping[str, str]] = None,
    dockerenv_path: str = "/.dockerenv",
) -> bool:
    """Serverless platforms and containers cannot use Chromium's sandbox."""
    environ = os.environ if environ is None else environ
    if any(environ.get(marker) for marker in SERVERLESS_ENV_MARKERS):
        return True
    return os.path.exists(dockerenv_path)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_packaged_executable(root: Path) -> Optional[Path]:
    """Search an extracted Chromium pack for its browser binary."""
    if root.is_file():
        return root
    for name in PACKAGED_EXECUTABLE_NAMES:
        for candidate in sorted(root.rglob(name)):
            if candidate.is_file():
                return candidate
    return None


def extract_archive(archive: Path, destination: Path) -> Path:
    """
    Extract a tar or zip Chromium pack into destination.

    Returns the browser executable found inside, made executable.
    """
    destination.mkdir(parents=True, exist_ok=True)

    if tarfile.is_tarfile(archive):
        with tarfile.open(archive) as tar:
            tar.extractall(destination, filter="data")
    elif zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)
    else:
        raise BrowserProvisioningError(f"Unsupported Chromium archive format: {archive}")

    executable = find_packaged_executable(destination)
    if executable is None:
        raise BrowserProvisioningError(f"No Chromium executable found in archive {archive}")

    # zip archives do not preserve permission bits
    mode = executable.stat().st_mode
    executable.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return executable


class BrowserProvider:
    """
    Resolves the browser executable once and builds launch options.

    Constructed at process start and shared read-only by all requests.
    """

    def __init__(self, settings: ServiceSettings, environ: Optional[Mapping[str, str]] = None):
        self.settings = settings
        self.strategy = select_strategy(settings)
        if settings.restricted_sandbox is not None:
            self.restricted = settings.restricted_sandbox
        else:
            self.restricted = self.strategy in (
                ProvisioningStrategy.PACKAGED,
                ProvisioningStrategy.REMOTE,
            ) or detect_restricted_environment(environ)

        self._resolved = False
        self._executable_path: Optional[str] = None
        self._failure: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def executable_path(self) -> Optional[str]:
        return self._executable_path

    async def resolve(self) -> Optional[str]:
        """
        Locate the browser executable for the active strategy.

        Returns None for the bundled strategy (Playwright picks its own build).
        The result is cached; concurrent first callers share one resolution.
        A failure is cached too, so later callers get the same error without
        repeating a slow download.
        """
        if not self._resolved:
            async with self._lock:
                if not self._resolved:
                    await self._resolve_once()

        if self._failure is not None:
            raise BrowserProvisioningError(self._failure)
        return self._executable_path

    async def _resolve_once(self) -> None:
        try:
            if self.strategy == ProvisioningStrategy.BUNDLED:
                path = None
            elif self.strategy == ProvisioningStrategy.SYSTEM:
                path = self._resolve_system()
            elif self.strategy == ProvisioningStrategy.PACKAGED:
                path = await asyncio.to_thread(self._resolve_packaged)
            else:
                path = await self._resolve_remote()
        except BrowserProvisioningError as e:
            self._failure = e.message
        except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
            self._failure = f"Browser provisioning failed: {e}"
        else:
            self._executable_path = path
            logger.info(f"Browser provider '{self.strategy.value}' resolved (executable={path or 'bundled'})")
        self._resolved = True
        if self._failure is not None:
            logger.error(f"❌ Browser provider '{self.strategy.value}' failed: {self._failure}")

    def _resolve_system(self) -> str:
        explicit = self.settings.chrome_executable_path
        if explicit:
            if not _is_executable(Path(explicit)):
                raise BrowserProvisioningError(f"Browser executable not found or not executable: {explicit}")
            return explicit

        for candidate in SYSTEM_BROWSER_CANDIDATES:
            found = shutil.which(candidate)
            if found:
                return found
        raise BrowserProvisioningError("No system Chrome/Chromium installation found")

    def _resolve_packaged(self) -> str:
        if not self.settings.chromium_pack_path:
            raise BrowserProvisioningError("CHROMIUM_PACK_PATH is not configured")

        pack = Path(self.settings.chromium_pack_path)
        if not pack.exists():
            raise BrowserProvisioningError(f"Chromium pack not found: {pack}")

        if pack.is_file() and (tarfile.is_tarfile(pack) or zipfile.is_zipfile(pack)):
            return str(extract_archive(pack, Path(self.settings.chromium_cache_dir)))

        executable = find_packaged_executable(pack)
        if executable is None or not _is_executable(executable):
            raise BrowserProvisioningError(f"No Chromium executable found at {pack}")
        return str(executable)

    async def _resolve_remote(self) -> str:
        url = self.settings.chromium_pack_url
        if not url:
            raise BrowserProvisioningError("CHROMIUM_PACK_URL is not configured")

        cache_dir = Path(self.settings.chromium_cache_dir)
        cached = find_packaged_executable(cache_dir) if cache_dir.is_dir() else None
        if cached is not None and _is_executable(cached):
            logger.info(f"Reusing previously extracted Chromium at {cached}")
            return str(cached)

        cache_dir.mkdir(parents=True, exist_ok=True)
        archive = cache_dir / "chromium-pack.download"

        logger.info(f"Downloading Chromium pack from {url}")
        try:
            async with httpx.AsyncClient(timeout=REMOTE_DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(archive, "wb") as fh:
                        async for chunk in response.aiter_bytes():
                            fh.write(chunk)
        except httpx.TimeoutException as e:
            raise BrowserProvisioningError(f"Timed out downloading Chromium pack: {e}") from e
        except httpx.HTTPError as e:
            raise BrowserProvisioningError(f"Failed to download Chromium pack: {e}") from e

        try:
            executable = await asyncio.to_thread(extract_archive, archive, cache_dir)
        finally:
            archive.unlink(missing_ok=True)
        return str(executable)

    def launch_options(self, executable_path: Optional[str]) -> Dict[str, Any]:
        """Keyword arguments for chromium.launch()."""
        options: Dict[str, Any] = {"headless": self.settings.browser_headless}
        if executable_path:
            options["executable_path"] = executable_path
        if self.restricted:
            options["args"] = list(RESTRICTED_BROWSER_ARGS)
        return options

    def session(self) -> "BrowserSession":
        return BrowserSession(self)


class BrowserSession:
    """
    One browser process for one conversion.

    Use as an async context manager. The browser is closed exactly once on
    every exit path; failures while closing are logged and never replace the
    error that ended the session.
    """

    def __init__(self, provider: BrowserProvider):
        self._provider = provider
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> Browser:
        if self._closed:
            raise BrowserLaunchFailure("Browser session has already been closed")

        executable_path = await self._provider.resolve()

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                **self._provider.launch_options(executable_path)
            )
        except Exception as e:
            await self.close()
            raise BrowserLaunchFailure(f"Failed to launch browser: {e}") from e

        logger.info("Browser launched successfully")
        return self._browser

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Best-effort teardown of the browser and the Playwright driver."""
        if self._closed:
            return
        self._closed = True

        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")

        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.error(f"Error stopping Playwright driver: {e}")
