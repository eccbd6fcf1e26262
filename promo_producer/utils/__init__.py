"""
Utility Functions
=================

Object storage, metadata files and image helpers.
"""

from .storage import (
    ObjectStore,
    S3ObjectStore,
    save_metadata,
    load_metadata,
    generate_filename,
)
from .image_utils import get_image_dimensions, get_aspect_ratio, detect_mime_type, to_data_uri

__all__ = [
    "ObjectStore",
    "S3ObjectStore",
    "save_metadata",
    "load_metadata",
    "generate_filename",
    "get_image_dimensions",
    "get_aspect_ratio",
    "detect_mime_type",
    "to_data_uri",
]
