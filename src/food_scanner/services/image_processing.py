"""Image resizing and encoding helpers for LLM uploads."""

import base64
import io
import math
import time

from PIL import Image, UnidentifiedImageError

from food_scanner.domain.camera import CapturedImage
from food_scanner.domain.errors import EncodeError

DEFAULT_MAX_WIDTH = 800
DEFAULT_MAX_HEIGHT = 600
DEFAULT_QUALITY = 0.8
UNCOMPRESSED_QUALITY = 0.9


def calculate_dimensions(
    original_width: int, original_height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """Fit dimensions inside the bounds, keeping aspect ratio and never upscaling."""
    ratio = min(max_width / original_width, max_height / original_height, 1)
    return round(original_width * ratio), round(original_height * ratio)


def compress_image(
    source: Image.Image | bytes,
    max_width: int = DEFAULT_MAX_WIDTH,
    max_height: int = DEFAULT_MAX_HEIGHT,
    quality: float = DEFAULT_QUALITY,
) -> CapturedImage:
    """Resize and re-encode an image as JPEG."""
    image = _load(source)
    width, height = calculate_dimensions(image.width, image.height, max_width, max_height)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.Resampling.LANCZOS)
    return encode_jpeg(image, quality)


def encode_jpeg(image: Image.Image, quality: float = UNCOMPRESSED_QUALITY) -> CapturedImage:
    """Encode a frame as JPEG at its native resolution."""
    buffer = io.BytesIO()
    try:
        image.convert("RGB").save(
            buffer, format="JPEG", quality=_pillow_quality(quality)
        )
    except (OSError, ValueError) as exc:
        raise EncodeError("Failed to compress image") from exc
    data = buffer.getvalue()
    if not data:
        raise EncodeError("Failed to compress image")
    return CapturedImage(
        data=data,
        data_url=to_data_url(data),
        width=image.width,
        height=image.height,
        size=len(data),
        timestamp=int(time.time() * 1000),
    )


def captured_from_bytes(image_bytes: bytes) -> CapturedImage:
    """Wrap already-encoded bytes without re-encoding them."""
    image = _load(image_bytes)
    return CapturedImage(
        data=image_bytes,
        data_url=to_data_url(image_bytes),
        width=image.width,
        height=image.height,
        size=len(image_bytes),
        timestamp=int(time.time() * 1000),
    )


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def extract_base64_from_data_url(data_url: str) -> str:
    """Return the payload part of a data URL, or an empty string."""
    _, separator, payload = data_url.partition(",")
    return payload if separator else ""


def format_file_size(size: int) -> str:
    """Format a byte count for display."""
    if size == 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    exponent = min(int(math.log(size, 1024)), len(units) - 1)
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {units[exponent]}"


def _load(source: Image.Image | bytes) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    try:
        image = Image.open(io.BytesIO(source))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise EncodeError("Failed to load image") from exc
    return image


def _pillow_quality(quality: float) -> int:
    """Map a 0-1 quality factor onto Pillow's 1-95 JPEG scale."""
    return max(1, min(95, round(quality * 100)))
