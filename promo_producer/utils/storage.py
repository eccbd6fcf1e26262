"""
Storage Utilities
=================

Durable object storage for generated assets, plus project metadata files.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

import aiofiles
import boto3
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import StorageConfig
from ..core.security import build_storage_key

logger = logging.getLogger(__name__)


EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
}


def extension_for(content_type: Optional[str]) -> str:
    return EXTENSIONS.get((content_type or "").split(";")[0].strip().lower(), ".bin")


# =============================================================================
# Object Storage
# =============================================================================


class ObjectStore(ABC):
    """Durable storage reached by ``put(data, key, content_type)``."""

    @abstractmethod
    async def put(self, data: bytes, key: str, content_type: str) -> Optional[str]:
        """
        Store bytes under a key.

        Returns:
            Public durable URL, or None if the upload failed
        """
        pass

    def key_for(self, project_id: str, name: str, content_type: Optional[str] = None) -> str:
        """Object key for a project asset."""
        return build_storage_key("", project_id, f"{name}{extension_for(content_type)}")


class S3ObjectStore(ObjectStore):
    """
    S3-compatible object store.

    boto3 is blocking, so uploads run in a worker thread.

    Usage:
        store = S3ObjectStore(config.storage)
        url = await store.put(data, "project/scene-1.jpg", "image/jpeg")
    """

    def __init__(self, config: StorageConfig, client: Any = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.config.region,
                endpoint_url=self.config.endpoint_url or None,
            )
        return self._client

    def public_url(self, key: str) -> str:
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{key}"

    def _full_key(self, key: str) -> str:
        return build_storage_key(self.config.key_prefix, *key.split("/"))

    async def put(self, data: bytes, key: str, content_type: str) -> Optional[str]:
        if not self.config.enabled:
            logger.warning("Object storage not configured; cannot store asset")
            return None

        full_key = self._full_key(key)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.config.bucket,
                Key=full_key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload of {full_key} failed: {e}")
            return None

        url = self.public_url(full_key)
        logger.debug(f"Stored {len(data)} bytes at {url}")
        return url


# =============================================================================
# Metadata Files
# =============================================================================


async def save_metadata(
    metadata: Dict[str, Any],
    output_path: Union[str, Path],
    format: str = "json",
) -> str:
    """
    Save metadata to a file.

    Args:
        metadata: Metadata dictionary
        output_path: Path to save the metadata
        format: Output format (json or yaml)

    Returns:
        Path to saved metadata
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    metadata = dict(metadata, saved_at=datetime.now().isoformat())

    if format == "yaml":
        text = yaml.safe_dump(json.loads(json.dumps(metadata, default=str)), default_flow_style=False)
    else:
        text = json.dumps(metadata, indent=2, default=str)

    async with aiofiles.open(output_path, "w") as f:
        await f.write(text)

    logger.debug(f"Metadata saved to {output_path}")
    return str(output_path)


async def load_metadata(path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Load metadata from a file.

    Args:
        path: Path to metadata file

    Returns:
        Metadata dictionary, or None if the file doesn't exist
    """
    path = Path(path)

    if not path.exists():
        return None

    async with aiofiles.open(path, "r") as f:
        text = await f.read()

    if path.suffix in (".yml", ".yaml"):
        return yaml.safe_load(text)
    return json.loads(text)


def generate_filename(
    prefix: str = "project",
    suffix: str = ".json",
) -> str:
    """Timestamped filename."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}{suffix}"
