"""Image preparation before upload.

Uploaded photos are downscaled to at most 1200x1200 and re-encoded (WebP when
the Pillow build supports it, JPEG otherwise), stepping the quality down until
the result fits the size ceiling or the quality floor is reached.

prepare_image never raises: anything that cannot be decoded or encoded is
passed through unchanged.
"""
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, features

logger = logging.getLogger(__name__)

MAX_WIDTH = 1200
MAX_HEIGHT = 1200
TARGET_SIZE_KB = 200
INITIAL_QUALITY = 80
MIN_QUALITY = 30
QUALITY_STEP = 10


@dataclass
class PreparedImage:
    data: bytes
    content_type: str
    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[int] = None
    attempts: int = 0
    compressed: bool = False

    @property
    def size(self) -> int:
        return len(self.data)


def output_format() -> tuple[str, str]:
    """Pillow format name and MIME type to encode with."""
    if features.check("webp"):
        return "WEBP", "image/webp"
    return "JPEG", "image/jpeg"


def scaled_size(width: int, height: int, max_width: int = MAX_WIDTH, max_height: int = MAX_HEIGHT) -> tuple[int, int]:
    """Fit within max_width x max_height keeping the aspect ratio; never upscale."""
    ratio = min(1.0, max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def _flatten(img: Image.Image, fmt: str) -> Image.Image:
    has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
    if fmt == "WEBP":
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if has_alpha else "RGB")
        return img
    # JPEG has no alpha channel: composite onto white
    if has_alpha:
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def _encode(img: Image.Image, fmt: str, quality: int) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, quality=quality)
    return buffer.getvalue()


def prepare_image(data: bytes, content_type: str = "application/octet-stream",
                  max_size_kb: int = TARGET_SIZE_KB, max_width: int = MAX_WIDTH,
                  max_height: int = MAX_HEIGHT) -> PreparedImage:
    """
    Downscale and re-encode an image to fit `max_size_kb`.

    Quality starts at 80 and drops by 10 per attempt while the output is too
    large, stopping at 30. The last encoding is returned even if it is still
    over the ceiling.
    """
    original = PreparedImage(data=data, content_type=content_type)
    ceiling = max_size_kb * 1024

    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            img = ImageOps.exif_transpose(source)

        width, height = scaled_size(img.width, img.height, max_width, max_height)
        if (width, height) != img.size:
            img = img.resize((width, height), Image.Resampling.LANCZOS)

        fmt, mime = output_format()
        img = _flatten(img, fmt)

        quality = INITIAL_QUALITY
        attempts = 0
        while True:
            encoded = _encode(img, fmt, quality)
            attempts += 1
            if len(encoded) > ceiling and quality > MIN_QUALITY:
                quality = max(quality - QUALITY_STEP, MIN_QUALITY)
                continue
            break
    except Exception as e:
        logger.warning(f"Image preparation failed, passing original through: {e}")
        return original

    if len(encoded) > ceiling:
        logger.info(f"Image still {len(encoded)} bytes at minimum quality {quality}")

    return PreparedImage(
        data=encoded,
        content_type=mime,
        width=width,
        height=height,
        quality=quality,
        attempts=attempts,
        compressed=True,
    )


def create_thumbnail(data: bytes, content_type: str = "application/octet-stream",
                     max_dimension: int = 300) -> PreparedImage:
    return prepare_image(data, content_type, max_size_kb=50, max_width=max_dimension, max_height=max_dimension)
