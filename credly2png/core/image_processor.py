"""
Image processing module - acquire badge images and letterbox them onto a canvas
"""
from __future__ import annotations

import asyncio
import io
import logging
from typing import Awaitable, Callable, List, NamedTuple, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import ImageLoadFailed, TransportExhausted
from .transport import IMAGE, RouteError, TransportRouter

logger = logging.getLogger(__name__)

Strategy = Tuple[str, Callable[[str], Awaitable[bytes]]]


class Placement(NamedTuple):
    """Where a scaled source lands on the target canvas"""
    scale: float
    width: float
    height: float
    x: float
    y: float

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Integer pixel box (left, top, width, height) used for drawing."""
        width = max(1, int(round(self.width)))
        height = max(1, int(round(self.height)))
        return int(round(self.x)), int(round(self.y)), width, height


def fit_placement(src_width: int, src_height: int, target_width: int, target_height: int) -> Placement:
    """
    Uniformly scale a source to fit the target and center it

    Args:
        src_width: Source width in pixels
        src_height: Source height in pixels
        target_width: Canvas width
        target_height: Canvas height

    Returns:
        Placement with scale = min(W/w, H/h) and centered offsets
    """
    if src_width <= 0 or src_height <= 0:
        raise ValueError(f"Invalid source size: {src_width}x{src_height}")
    if target_width <= 0 or target_height <= 0:
        raise ValueError(f"Invalid target size: {target_width}x{target_height}")

    scale = min(target_width / src_width, target_height / src_height)
    scaled_width = src_width * scale
    scaled_height = src_height * scale
    return Placement(
        scale=scale,
        width=scaled_width,
        height=scaled_height,
        x=(target_width - scaled_width) / 2,
        y=(target_height - scaled_height) / 2,
    )


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes into a fully loaded RGBA image."""
    with Image.open(io.BytesIO(data)) as source:
        source.load()
        return source.convert("RGBA")


def render_canvas(image: Image.Image, target_width: int, target_height: int) -> Image.Image:
    """Draw ``image`` letterboxed and centered on a transparent canvas."""
    placement = fit_placement(image.width, image.height, target_width, target_height)
    left, top, width, height = placement.box

    canvas = Image.new("RGBA", (target_width, target_height), (0, 0, 0, 0))
    source = image if image.mode == "RGBA" else image.convert("RGBA")
    if source.size != (width, height):
        source = source.resize((width, height), Image.Resampling.LANCZOS)
    canvas.paste(source, (left, top), source)
    return canvas


class ImageNormalizer:
    """Acquire badge images through fallback strategies and normalize them"""

    def __init__(self, router: TransportRouter):
        """
        Initialize normalizer

        Args:
            router: Router whose direct and relay routes back the two
                acquisition strategies
        """
        self.router = router
        self.strategies: List[Strategy] = [
            ("direct", self._fetch_direct),
            ("relay", self._fetch_via_relay),
        ]

    async def normalize(self, image_url: Optional[str], target_width: int, target_height: int) -> Image.Image:
        """
        Load ``image_url`` and return a ``target_width`` x ``target_height`` canvas

        Strategies are tried in order; a strategy fails if its bytes cannot
        be fetched or decoded.

        Raises:
            ImageLoadFailed: If every strategy failed; chained to the last cause
        """
        if not image_url:
            raise ImageLoadFailed("Badge has no image URL")

        last_error: Optional[Exception] = None
        for name, strategy in self.strategies:
            try:
                data = await strategy(image_url)
                return await asyncio.to_thread(self._decode_and_render, data, target_width, target_height)
            except (TransportExhausted, RouteError, UnidentifiedImageError, OSError, ValueError) as exc:
                last_error = exc
                logger.debug("Image strategy %s failed for %s: %s", name, image_url, exc)
                continue

        raise ImageLoadFailed(f"Failed to load image: {image_url} ({last_error})") from last_error

    @staticmethod
    def _decode_and_render(data: bytes, target_width: int, target_height: int) -> Image.Image:
        return render_canvas(decode_image(data), target_width, target_height)

    async def _fetch_direct(self, image_url: str) -> bytes:
        return await self._fetch_via(self.router.direct_routes, image_url)

    async def _fetch_via_relay(self, image_url: str) -> bytes:
        return await self._fetch_via(self.router.relay_routes, image_url)

    async def _fetch_via(self, routes: Sequence, image_url: str) -> bytes:
        if not routes:
            raise TransportExhausted(image_url)
        return await self.router.session(routes).request(image_url, IMAGE)
