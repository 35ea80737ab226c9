"""Album artwork rendered as 24-bit ANSI half-block art.

Each terminal cell prints U+2580 (upper half block) with the foreground set
to the upper pixel and the background set to the lower pixel, so a frame of
``rows`` lines shows ``2 * rows`` pixel rows.

Rendered frames are kept in a small process-wide cache keyed by URL, since
every session polls the same track.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from io import BytesIO

import requests
from PIL import Image, UnidentifiedImageError

from .config import ARTWORK_CACHE_SIZE, ARTWORK_CACHE_TTL_SECONDS, HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

HALF_BLOCK = "▀"
RESET = "\x1b[0m"
SUPPORTED_FORMATS = ("JPEG", "PNG")

PLACEHOLDER_FOREGROUND = (60, 60, 60)
PLACEHOLDER_BACKGROUND = (40, 40, 40)


class ArtworkError(Exception):
    """Artwork could not be downloaded or decoded."""


def cell(top: tuple[int, int, int], bottom: tuple[int, int, int]) -> str:
    return "\x1b[38;2;{};{};{}m\x1b[48;2;{};{};{}m{}".format(*top, *bottom, HALF_BLOCK)


def _join_rows(rows: list[str]) -> str:
    # Every row ends in a reset; no trailing newline so frames compose.
    return "\n".join(row + RESET for row in rows)


def render_placeholder(cols: int, rows: int) -> str:
    """Uniform dim-gray frame shown when there is no artwork."""
    gray = cell(PLACEHOLDER_FOREGROUND, PLACEHOLDER_BACKGROUND)
    return _join_rows([gray * max(0, cols) for _ in range(max(0, rows))])


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """Resample to ``width x height`` and flatten onto an empty canvas.

    Pillow's bicubic filter is the Catmull-Rom kernel (a = -0.5). Pasting
    through the alpha band composites the image over transparent black, so
    translucent pixels come out premultiplied.
    """
    resized = image.convert("RGBA").resize((width, height), Image.Resampling.BICUBIC)
    canvas = Image.new("RGB", (width, height), (0, 0, 0))
    canvas.paste(resized, mask=resized)
    return canvas


def render_image(image: Image.Image, cols: int, rows: int) -> str:
    if cols <= 0 or rows <= 0:
        return ""

    pixel_height = rows * 2
    pixels = resize_image(image, cols, pixel_height).load()

    lines: list[str] = []
    for y in range(0, pixel_height, 2):
        cells = []
        for x in range(cols):
            top = pixels[x, y]
            bottom = pixels[x, y + 1] if y + 1 < pixel_height else top
            cells.append(cell(top, bottom))
        lines.append("".join(cells))
    return _join_rows(lines)


@dataclass(frozen=True)
class CacheEntry:
    frame: str
    inserted_at: float


class RenderCache:
    """Bounded URL -> frame cache with a TTL.

    When full, the entry inserted first is evicted before any insertion,
    even one that overwrites an existing key. Lookups ignore stale
    entries but leave them in place; the next insertion overwrites or
    evicts them.
    """

    def __init__(
        self,
        capacity: int = ARTWORK_CACHE_SIZE,
        ttl: float = ARTWORK_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.capacity = capacity
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> str | None:
        with self._lock:
            entry = self._entries.get(url)
        if entry is None or self._clock() - entry.inserted_at >= self.ttl:
            return None
        return entry.frame

    def put(self, url: str, frame: str) -> None:
        with self._lock:
            if len(self._entries) >= self.capacity:
                oldest = min(self._entries, key=lambda key: self._entries[key].inserted_at)
                del self._entries[oldest]
            self._entries[url] = CacheEntry(frame=frame, inserted_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries


class ArtworkRenderer:
    """Downloads cover images and renders them through the shared cache."""

    def __init__(
        self,
        session: requests.Session | None = None,
        cache: RenderCache | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session or requests.Session()
        self.cache = cache if cache is not None else RenderCache()
        self._timeout = timeout

    def fetch_image(self, url: str) -> Image.Image:
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ArtworkError(f"Could not download artwork from {url}: {exc}") from exc

        try:
            with Image.open(BytesIO(response.content)) as img:
                if img.format not in SUPPORTED_FORMATS:
                    raise ArtworkError(f"Unsupported artwork format: {img.format}")
                img.load()
                return img.copy()
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
            raise ArtworkError(f"Could not decode artwork from {url}: {exc}") from exc

    def render_from_url(self, url: str, cols: int, rows: int) -> str:
        """Render ``url`` as a ``cols x rows`` frame.

        Never raises: an empty URL or any download/decode failure gives the
        placeholder frame, and failures are not cached. The error itself is
        logged as a warning rather than returned.
        """
        if not url:
            return render_placeholder(cols, rows)

        cached = self.cache.get(url)
        if cached is not None:
            return cached

        try:
            image = self.fetch_image(url)
        except ArtworkError as exc:
            logger.warning("%s", exc)
            return render_placeholder(cols, rows)

        rendered = render_image(image, cols, rows)
        self.cache.put(url, rendered)
        logger.debug("Rendered artwork %s at %dx%d", url, cols, rows)
        return rendered
