from PIL import Image, ImageColor
import base64
import io
from typing import Tuple


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """Parses '#rrggbb' (or any Pillow color name) to an RGB tuple."""
    r, g, b = ImageColor.getrgb(color)[:3]
    return (r, g, b)


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def png_data_uri(data: bytes) -> str:
    return f"data:image/png;base64,{bytes_to_base64(data)}"


def image_to_png_bytes(image: Image.Image) -> bytes:
    buffered = io.BytesIO()
    image.save(buffered, format="PNG")
    return buffered.getvalue()
