"""
Image Utilities
===============

Helper functions for image bytes: dimension probing and data URIs.
"""

import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..core.security import encode_data_uri

logger = logging.getLogger(__name__)


def get_image_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    """
    Get the dimensions of an encoded image.

    Args:
        data: Raw image bytes

    Returns:
        Tuple of (width, height), or None if the bytes are not an image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Could not read image dimensions: {e}")
        return None


def get_aspect_ratio(data: bytes) -> Optional[float]:
    """Width / height of an encoded image, or None."""
    size = get_image_dimensions(data)
    if not size or not size[1]:
        return None
    return size[0] / size[1]


def detect_mime_type(data: bytes, default: str = "application/octet-stream") -> str:
    """MIME type of an encoded image from its content."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format, default)
    except (UnidentifiedImageError, OSError):
        return default


def to_data_uri(data: bytes, mime_type: Optional[str] = None) -> str:
    """
    Convert image bytes to a data URI.

    Returns:
        Data URI string (data:image/png;base64,...)
    """
    return encode_data_uri(data, mime_type or detect_mime_type(data, "image/png"))
