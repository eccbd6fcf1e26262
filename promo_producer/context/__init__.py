"""
Context Management
==================

Project-scoped production state and the brand asset registry.
"""

from .brand_registry import AssetMatch, BrandAsset, BrandAssetRegistry
from .project_context import Notification, ProjectContext

__all__ = [
    "AssetMatch",
    "BrandAsset",
    "BrandAssetRegistry",
    "Notification",
    "ProjectContext",
]
