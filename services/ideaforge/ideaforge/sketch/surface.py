"""
Raster surface and its manager.

The surface works in logical coordinates; the device scale is applied once,
inside the concrete surface, when a segment is rasterized. The backing buffer
is therefore (logical size x device scale) pixels while every caller keeps
talking in logical units.
"""
import asyncio
import io
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, UnidentifiedImageError

from ..utils import hex_to_rgb, image_to_png_bytes
from .models import InputEvent, Point, SurfaceInfo

logger = logging.getLogger("ideaforge.surface")

DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_HEIGHT = 400


class DecodeError(Exception):
    """A history snapshot could not be decoded back into pixels."""


class RasterSurface(ABC):
    logical_width: int
    logical_height: int
    device_scale: float
    background_color: str

    @abstractmethod
    def fill(self, color: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def draw_segment(self, start: Point, end: Point, color: str, width: float) -> None: ...

    @abstractmethod
    def export_pixels(self) -> np.ndarray: ...

    @abstractmethod
    def import_pixels(self, data: np.ndarray) -> None: ...

    @abstractmethod
    def encode_png(self) -> bytes: ...

    @abstractmethod
    async def decode_image(self, data: bytes) -> np.ndarray: ...

    @property
    def buffer_size(self) -> Tuple[int, int]:
        return (
            int(round(self.logical_width * self.device_scale)),
            int(round(self.logical_height * self.device_scale)),
        )

    def info(self) -> SurfaceInfo:
        bw, bh = self.buffer_size
        return SurfaceInfo(
            logical_width=self.logical_width,
            logical_height=self.logical_height,
            device_scale=self.device_scale,
            buffer_width=bw,
            buffer_height=bh,
        )


class PillowRasterSurface(RasterSurface):
    """RGB Pillow image as the backing store."""

    def __init__(self, logical_width: int, logical_height: int, device_scale: float = 1.0,
                 background_color: str = DEFAULT_BACKGROUND):
        if logical_width <= 0 or logical_height <= 0:
            raise ValueError(f"Surface size must be positive, got {logical_width}x{logical_height}")
        if device_scale <= 0:
            raise ValueError(f"Device scale must be positive, got {device_scale}")
        self.logical_width = logical_width
        self.logical_height = logical_height
        self.device_scale = device_scale
        self.background_color = background_color
        self.image = Image.new("RGB", self.buffer_size, hex_to_rgb(background_color))
        self._draw = ImageDraw.Draw(self.image)

    def fill(self, color: str) -> None:
        self._draw.rectangle([(0, 0), self.image.size], fill=hex_to_rgb(color))

    def clear(self) -> None:
        self.fill(self.background_color)

    def draw_segment(self, start: Point, end: Point, color: str, width: float) -> None:
        s = self.device_scale
        rgb = hex_to_rgb(color)
        line_width = max(1, int(round(width * s)))
        x0, y0 = start.x * s, start.y * s
        x1, y1 = end.x * s, end.y * s
        self._draw.line([(x0, y0), (x1, y1)], fill=rgb, width=line_width)
        # round caps, which also round off the joins between consecutive segments
        r = line_width / 2.0
        for cx, cy in ((x0, y0), (x1, y1)):
            self._draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=rgb)

    def export_pixels(self) -> np.ndarray:
        return np.array(self.image, dtype=np.uint8)

    def import_pixels(self, data: np.ndarray) -> None:
        # Pasted at the origin; anything outside the buffer is clipped by Pillow.
        self.image.paste(Image.fromarray(np.ascontiguousarray(data, dtype=np.uint8)), (0, 0))

    def encode_png(self) -> bytes:
        return image_to_png_bytes(self.image)

    def _decode(self, data: bytes) -> np.ndarray:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise DecodeError(f"Could not decode snapshot: {e}") from e
        if img.mode != "RGB":
            img = img.convert("RGB")
        return np.array(img, dtype=np.uint8)

    async def decode_image(self, data: bytes) -> np.ndarray:
        return await asyncio.to_thread(self._decode, data)


class SurfaceManager:
    """
    Owns the one RasterSurface of a sketch session, keeps it sized to its
    container and maps raw client coordinates onto it.
    """

    def __init__(self, background_color: str = DEFAULT_BACKGROUND, device_scale: float = 1.0,
                 fixed_height: int = DEFAULT_HEIGHT, surface_factory=PillowRasterSurface):
        self.background_color = background_color
        self.device_scale = device_scale
        self.fixed_height = fixed_height
        self.surface_factory = surface_factory
        self.surface: Optional[RasterSurface] = None
        self.offset = Point(x=0, y=0)

    @property
    def initialized(self) -> bool:
        return self.surface is not None

    def require_surface(self) -> RasterSurface:
        if self.surface is None:
            raise RuntimeError("Surface has not been initialized")
        return self.surface

    def initialize(self, container_width: float, fixed_height: Optional[int] = None,
                   device_scale: Optional[float] = None) -> RasterSurface:
        if fixed_height is not None:
            self.fixed_height = fixed_height
        if device_scale is not None:
            self.device_scale = device_scale
        width = int(round(container_width))
        self.surface = self.surface_factory(width, self.fixed_height, self.device_scale, self.background_color)
        logger.info("Surface initialized: %dx%d @%sx", width, self.fixed_height, self.device_scale)
        return self.surface

    def resize(self, new_container_width: float, device_scale: Optional[float] = None) -> RasterSurface:
        """Re-allocates the surface at the new width, keeping drawn content at the top-left."""
        if self.surface is None:
            return self.initialize(new_container_width, device_scale=device_scale)
        pixels = self.surface.export_pixels()
        surface = self.initialize(new_container_width, device_scale=device_scale)
        surface.import_pixels(pixels)
        return surface

    def export_pixels(self) -> np.ndarray:
        return self.require_surface().export_pixels()

    def import_pixels(self, data: np.ndarray) -> None:
        self.require_surface().import_pixels(data)

    def replace_pixels(self, data: np.ndarray) -> None:
        """
        Replaces the whole buffer with decoded snapshot pixels. A snapshot taken
        at a different buffer size is stretched over the full surface.
        """
        surface = self.require_surface()
        width, height = surface.buffer_size
        if data.shape[0] != height or data.shape[1] != width:
            img = Image.fromarray(np.ascontiguousarray(data, dtype=np.uint8))
            data = np.array(img.resize((width, height), Image.Resampling.LANCZOS), dtype=np.uint8)
        surface.clear()
        surface.import_pixels(data)

    def snapshot(self) -> bytes:
        return self.require_surface().encode_png()

    def export_png(self) -> bytes:
        return self.require_surface().encode_png()

    def set_offset(self, left: float, top: float) -> None:
        """Records where the surface's top-left corner sits in client coordinates."""
        self.offset = Point(x=left, y=top)

    def map_pointer_event(self, event: InputEvent) -> Point:
        if event.touches:
            client_x, client_y = event.touches[0].client_x, event.touches[0].client_y
        elif event.changed_touches:
            client_x, client_y = event.changed_touches[0].client_x, event.changed_touches[0].client_y
        else:
            client_x, client_y = event.client_x, event.client_y
        if client_x is None or client_y is None:
            raise ValueError(f"Event '{event.type}' carries no coordinates")
        return Point(x=client_x - self.offset.x, y=client_y - self.offset.y)
