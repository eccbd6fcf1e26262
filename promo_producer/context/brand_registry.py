"""
Brand Asset Registry
====================

Keyword-scored lookup over a brand's media library (logos, product shots,
videos, watermarks, locations). Loaded from YAML.

Example YAML:
    brand_name: Meadow & Root
    assets:
      - id: logo-main
        name: Primary logo large
        url: https://cdn.example.com/brand/logo.png
        media_type: logo
        mime_type: image/png
        is_default: true
      - id: tincture-hero
        name: Calm Tincture hero shot
        url: https://cdn.example.com/brand/tincture.png
        media_type: product
        entity_name: Calm Tincture
        keywords: [tincture, calm, product]
        priority: 6
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

import yaml

from ..core.exceptions import ConfigurationError, ResourceNotFoundError

logger = logging.getLogger(__name__)


ASSET_PURPOSES = ("product-hero", "logo-overlay", "watermark", "product-group", "location")

CERTIFICATION_TERMS = ("usda", "organic", "certified")


@dataclass
class BrandAsset:
    """One entry in the brand media library."""

    id: str
    name: str
    url: str
    media_type: str = "photo"  # logo, photo, product, video, watermark, location
    entity_type: Optional[str] = None
    entity_name: Optional[str] = None
    description: str = ""
    keywords: List[str] = field(default_factory=list)
    mime_type: Optional[str] = None
    priority: int = 0
    is_default: bool = False
    is_active: bool = True
    aspect_ratio: Optional[float] = None

    @property
    def search_text(self) -> str:
        parts = [self.name, self.description, " ".join(self.keywords), self.entity_name or ""]
        return " ".join(parts).lower()

    @property
    def is_png(self) -> bool:
        return "png" in (self.mime_type or "").lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "media_type": self.media_type,
            "entity_type": self.entity_type,
            "entity_name": self.entity_name,
            "keywords": self.keywords,
            "priority": self.priority,
            "is_default": self.is_default,
        }


@dataclass
class AssetMatch:
    """A scored registry hit with the keywords that produced it."""

    asset: BrandAsset
    score: int
    matched_keywords: List[str] = field(default_factory=list)
    match_type: str = "keyword"  # exact or keyword

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset": self.asset.to_dict(),
            "score": self.score,
            "matched_keywords": self.matched_keywords,
            "match_type": self.match_type,
        }


class BrandAssetRegistry:
    """
    In-memory brand media library with scored lookups.

    Usage:
        registry = BrandAssetRegistry.from_yaml("brand.yaml")
        logo = registry.get_best_asset("logo-overlay")
        products = registry.find_product_assets(["calm tincture"])
    """

    def __init__(self, brand_name: Optional[str] = None, assets: Optional[List[BrandAsset]] = None):
        self.brand_name = brand_name
        self._assets: Dict[str, BrandAsset] = {}
        for asset in assets or []:
            self.add(asset)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "BrandAssetRegistry":
        """Load a registry from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ResourceNotFoundError(
                f"Brand registry not found: {path}",
                resource_type="brand_registry",
                resource_id=str(path),
            )

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid brand registry YAML: {e}", config_key=str(path))

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrandAssetRegistry":
        try:
            assets = [BrandAsset(**entry) for entry in data.get("assets", [])]
        except TypeError as e:
            raise ConfigurationError(f"Invalid brand asset entry: {e}", config_key="assets")
        registry = cls(brand_name=data.get("brand_name"), assets=assets)
        logger.info(f"Loaded brand registry with {len(registry)} assets")
        return registry

    def add(self, asset: BrandAsset) -> None:
        """Add or replace an asset."""
        self._assets[asset.id] = asset

    def get(self, asset_id: str) -> Optional[BrandAsset]:
        return self._assets.get(asset_id)

    def __len__(self) -> int:
        return len(self._assets)

    @property
    def active_assets(self) -> List[BrandAsset]:
        return [a for a in self._assets.values() if a.is_active]

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search_by_keywords(self, keywords: List[str]) -> List[AssetMatch]:
        """Every active asset matching at least one keyword, best first."""
        results = []
        for asset in self.active_assets:
            text = asset.search_text
            matched = [kw for kw in keywords if kw.lower() in text]
            if not matched:
                continue
            results.append(AssetMatch(
                asset=asset,
                score=len(matched) * 10 + asset.priority,
                matched_keywords=matched,
                match_type="exact" if len(matched) > 2 else "keyword",
            ))
        results.sort(key=lambda m: m.score, reverse=True)
        return results

    def find_product_assets(
        self,
        product_names: List[str],
        visibility: str = "featured",
        limit: int = 5,
    ) -> List[AssetMatch]:
        """Product shots ranked by name match, prominence and format."""
        candidates = [
            a for a in self.active_assets
            if a.entity_type == "product" or "product" in a.media_type.lower() or "product" in a.keywords
        ]

        scored = []
        for asset in candidates:
            text = asset.search_text
            matched = [name for name in product_names if name.lower() in text]
            score = 10 * len(matched)

            if visibility == "featured" and ("hero" in asset.name.lower() or asset.priority > 5):
                score += 5
            if asset.is_png:
                score += 2
            score += asset.priority
            if asset.is_default:
                score += 3

            if score > 0:
                scored.append(AssetMatch(
                    asset=asset,
                    score=score,
                    matched_keywords=matched,
                    match_type="exact" if score >= 10 else "keyword",
                ))

        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:limit]

    def find_logo_assets(
        self,
        logo_type: Optional[str] = "primary",
        visibility: str = "prominent",
        limit: int = 3,
    ) -> List[AssetMatch]:
        """Logos ranked by type, brand match and format."""
        candidates = [
            a for a in self.active_assets
            if a.media_type in ("logo", "watermark") or "logo" in a.name.lower() or "logo" in a.keywords
        ]
        brand = (self.brand_name or "").lower()

        scored = []
        for asset in candidates:
            text = f"{asset.name} {asset.description} {asset.entity_name or ''}".lower()
            matched = []
            score = 0

            if logo_type == "primary" and ("primary" in text or asset.is_default):
                score += 10
                matched.append("primary")
            if logo_type == "watermark" and ("watermark" in text or asset.media_type == "watermark"):
                score += 10
                matched.append("watermark")
            if logo_type == "certification":
                hits = [t for t in CERTIFICATION_TERMS if t in text]
                if hits:
                    score += 10
                    matched.extend(hits)
                if "certification" in text:
                    score += 5
                    matched.append("certification")

            if brand and brand in text:
                score += 5
                matched.append(brand)
            if asset.is_png:
                score += 3
            if visibility == "prominent" and "large" in text:
                score += 2
            score += asset.priority
            if asset.is_default:
                score += 3

            scored.append(AssetMatch(asset=asset, score=score, matched_keywords=matched))

        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:limit]

    def find_location_assets(self, limit: int = 3) -> List[BrandAsset]:
        location_terms = {"store", "location", "facility"}
        return [
            a for a in self.active_assets
            if a.entity_type == "location" or a.media_type == "location" or location_terms & set(a.keywords)
        ][:limit]

    def get_best_asset(self, purpose: str, product_name: Optional[str] = None) -> Optional[BrandAsset]:
        """
        Best single asset for a purpose.

        Args:
            purpose: One of product-hero, logo-overlay, watermark, product-group, location
            product_name: Required for product-hero

        Returns:
            The best asset, or None
        """
        if purpose == "product-hero":
            if not product_name:
                return None
            matches = self.find_product_assets([product_name], "featured")
            return matches[0].asset if matches else None

        if purpose == "logo-overlay":
            matches = self.find_logo_assets("primary", "prominent")
            return matches[0].asset if matches else None

        if purpose == "watermark":
            matches = self.find_logo_assets("watermark", "subtle")
            return matches[0].asset if matches else None

        if purpose == "product-group":
            for asset in self.active_assets:
                if "group" in asset.name.lower() or "products" in asset.name.lower() or "collection" in asset.description.lower():
                    return asset
            return None

        if purpose == "location":
            locations = self.find_location_assets(limit=1)
            return locations[0] if locations else None

        raise ValueError(f"Unknown asset purpose: {purpose}. Expected one of {ASSET_PURPOSES}")
