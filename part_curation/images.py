"""Image loading primitives used to probe candidate references."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
import xml.etree.ElementTree as ET
from io import BytesIO
from typing import Awaitable, Callable, List, Optional, Tuple
from urllib.parse import urljoin

import requests
from filetype import guess
from PIL import Image, UnidentifiedImageError

from .config import DEFAULT_MAX_IMAGE_BYTES
from .models import ImageDimensions

logger = logging.getLogger("part_curation")

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:138.0) Gecko/20100101 Firefox/138.0",
    "Accept": "image/avif,image/webp,image/png,image/svg+xml,image/*;q=0.8,*/*;q=0.5",
}
ALLOWED_IMAGE_TYPES = {"png", "jpg", "jpeg", "gif", "webp", "bmp", "tiff", "avif", "ico"}
_SVG_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")

ImageLoader = Callable[[str, float], Awaitable[Optional[ImageDimensions]]]


class ImageLoadError(RuntimeError):
    """Raised when a reference cannot be fetched or decoded as an image."""


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _looks_like_svg(content_type: str, data: bytes) -> bool:
    if "svg" in content_type:
        return True
    head = data[:512].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head)


def _svg_length(value: Optional[str]) -> float:
    if not value:
        return 0.0
    match = _SVG_NUMBER.match(value)
    return float(match.group(1)) if match else 0.0


def svg_dimensions(data: bytes) -> Tuple[int, int]:
    """Read an SVG's size from its width/height attributes or viewBox."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ImageLoadError(f"Malformed SVG: {exc}") from exc
    width = _svg_length(root.attrib.get("width"))
    height = _svg_length(root.attrib.get("height"))
    if width > 0 and height > 0:
        return int(width), int(height)
    view_box = root.attrib.get("viewBox", "").replace(",", " ").split()
    if len(view_box) == 4:
        try:
            return int(float(view_box[2])), int(float(view_box[3]))
        except ValueError:
            pass
    return 0, 0


def read_dimensions(data: bytes, content_type: str = "") -> ImageDimensions:
    """Decode the pixel dimensions of an image payload."""
    if _looks_like_svg(content_type.lower(), data):
        width, height = svg_dimensions(data)
        return ImageDimensions(width, height)

    extension = detect_image_format(data)
    if not extension or extension not in ALLOWED_IMAGE_TYPES:
        raise ImageLoadError(f"Unsupported image type (Content-Type={content_type or 'unknown'})")
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageLoadError(f"Could not decode {extension} image: {exc}") from exc
    return ImageDimensions(width, height)


class RequestsImageLoader:
    """Fetch images over HTTP with requests and report their natural size.

    Relative references are resolved against ``base_url``. Blocking I/O runs in
    worker threads so the event loop is free while downloads are in flight.
    ``requests.Session`` is not thread-safe, so each worker thread gets its own
    session from ``session_factory``; ``close()`` closes all of them.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.base_url = base_url
        self.max_bytes = max_bytes
        self._session_factory = session_factory
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        if not self.base_url:
            raise ImageLoadError(f"Relative reference {url!r} needs a base URL")
        return urljoin(self.base_url, url)

    def fetch_dimensions(self, url: str, timeout: float) -> ImageDimensions:
        target = self.absolute_url(url)
        headers = dict(HEADERS)
        headers["Referer"] = target
        try:
            with self._session().get(target, headers=headers, timeout=timeout, stream=True) as resp:
                resp.raise_for_status()
                content_type = resp.headers.get("Content-Type", "")
                data = bytearray()
                for chunk in resp.iter_content(chunk_size=64 * 1024):
                    data.extend(chunk)
                    if len(data) > self.max_bytes:
                        raise ImageLoadError(
                            f"Image larger than {self.max_bytes} bytes: {target}"
                        )
        except requests.RequestException as exc:
            raise ImageLoadError(f"Failed to fetch {target}: {exc}") from exc

        dimensions = read_dimensions(bytes(data), content_type)
        logger.debug("Loaded %s (%dx%d)", target, dimensions.width, dimensions.height)
        return dimensions

    async def __call__(self, url: str, timeout: float) -> Optional[ImageDimensions]:
        return await asyncio.to_thread(self.fetch_dimensions, url, timeout)

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()
