"""Rehosting of remote product images into the storefront's own storage.

``rehost`` always returns a usable URL: on any failure it hands back the
original remote URL so a bad image never blocks product creation.
"""

import logging
import secrets
import time
from pathlib import PurePosixPath
from urllib.parse import urlsplit

import httpx

from storefront.config import settings
from storefront.services.catalog.interfaces import BlobStorage
from storefront.services.image_storage import EXTENSION_MIME_MAP

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

LOCAL_HOSTS = {"localhost", "127.0.0.1"}

# Content-Type -> file extension
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/pjpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/avif": ".avif",
}


class ImageDownloadRejected(Exception):
    """Raised internally when a download is refused (status, size, empty body)."""

    pass


def extension_for(content_type: str | None, url_path: str) -> str:
    """Pick an output extension from Content-Type, then the URL path, then .jpg."""
    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime in CONTENT_TYPE_EXTENSIONS:
            return CONTENT_TYPE_EXTENSIONS[mime]
    suffix = PurePosixPath(url_path).suffix.lower()
    if suffix in EXTENSION_MIME_MAP:
        return ".jpg" if suffix == ".jpeg" else suffix
    return ".jpg"


def generate_filename(extension: str) -> str:
    """Timestamp + random suffix, for collision avoidance only."""
    return f"import-{int(time.time() * 1000)}-{secrets.token_hex(4)}{extension}"


def should_skip(url: str, backend_url: str | None) -> bool:
    """True for URLs that must be kept as-is: empty, relative, local or already ours."""
    stripped = url.strip()
    if not stripped:
        return True
    parts = urlsplit(stripped)
    if not parts.scheme or not parts.netloc:
        return True
    host = (parts.hostname or "").lower()
    if host in LOCAL_HOSTS:
        return True
    if backend_url:
        backend_host = (urlsplit(backend_url).hostname or "").lower()
        if backend_host and host == backend_host:
            return True
    return False


def to_public_url(stored_url: str, backend_url: str | None) -> str:
    """Make a stored URL externally resolvable.

    A localhost origin is swapped for the backend origin and a relative path
    is prefixed with it.
    """
    if not backend_url:
        return stored_url
    backend = backend_url.rstrip("/")
    if stored_url.startswith("/"):
        return f"{backend}{stored_url}"
    parts = urlsplit(stored_url)
    if (parts.hostname or "").lower() in LOCAL_HOSTS:
        origin = f"{parts.scheme}://{parts.netloc}"
        backend_parts = urlsplit(backend)
        return stored_url.replace(origin, f"{backend_parts.scheme}://{backend_parts.netloc}", 1)
    return stored_url


class ImageRehostService:
    """Downloads remote images and stores them through a BlobStorage."""

    def __init__(
        self,
        storage: BlobStorage,
        backend_url: str | None = None,
        timeout_seconds: float | None = None,
        max_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.storage = storage
        self.backend_url = backend_url or settings.public_url
        self.timeout_seconds = timeout_seconds or settings.image_timeout_seconds
        self.max_bytes = max_bytes or settings.image_max_bytes
        self._transport = transport

    async def rehost(self, url: str, backend_url: str | None = None) -> str:
        """Rehost one image URL.

        Args:
            url: Remote image URL from the CSV.
            backend_url: Public backend origin; defaults to the configured one.

        Returns:
            The rehosted URL, or ``url`` unchanged when skipped or on any failure.
        """
        try:
            return await self.store_remote(url, backend_url)
        except Exception as e:
            logger.warning("Image rehost failed for %s, keeping original URL: %s", url, e)
            return url

    async def store_remote(self, url: str, backend_url: str | None = None) -> str:
        """Rehost one image URL, raising when the download or store fails.

        URLs that need no rehosting are returned unchanged.
        """
        backend = backend_url or self.backend_url
        if should_skip(url, backend):
            return url
        return await self._rehost(url.strip(), backend)

    async def _rehost(self, url: str, backend_url: str) -> str:
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"Unsupported image URL: {url}")

        content, content_type = await self._download(url)
        extension = extension_for(content_type, parts.path)
        mime_type = EXTENSION_MIME_MAP.get(extension, "application/octet-stream")

        stored = await self.storage.put(content, generate_filename(extension), mime_type)
        if not stored:
            raise ValueError("Storage returned no URL")

        public = to_public_url(stored, backend_url)
        logger.debug("Rehosted %s -> %s", url, public)
        return public

    async def _download(self, url: str) -> tuple[bytes, str | None]:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT, "Accept": "image/*,*/*;q=0.8"},
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url) as response:
                if not response.is_success:
                    raise ImageDownloadRejected(f"HTTP {response.status_code}")

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise ImageDownloadRejected(f"Declared size {declared} exceeds limit")

                chunks: list[bytes] = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > self.max_bytes:
                        raise ImageDownloadRejected(f"Body exceeds {self.max_bytes} bytes")
                    chunks.append(chunk)

                content_type = response.headers.get("content-type")

        if total == 0:
            raise ImageDownloadRejected("Empty response body")

        return b"".join(chunks), content_type
