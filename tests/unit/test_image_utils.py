"""Unit tests for image byte helpers."""

import io

import pytest
from PIL import Image

from promo_producer.utils.image_utils import (
    detect_mime_type,
    get_aspect_ratio,
    get_image_dimensions,
    to_data_uri,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), color=(200, 160, 120)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_dimensions(png_bytes):
    assert get_image_dimensions(png_bytes) == (40, 20)
    assert get_aspect_ratio(png_bytes) == 2.0


def test_mime_type(png_bytes):
    assert detect_mime_type(png_bytes) == "image/png"
    assert to_data_uri(png_bytes).startswith("data:image/png;base64,")


def test_not_an_image():
    assert get_image_dimensions(b"ID3 fake mp3") is None
    assert get_aspect_ratio(b"ID3 fake mp3") is None
    assert detect_mime_type(b"ID3 fake mp3", "audio/mpeg") == "audio/mpeg"
