"""Unit tests for the brand asset registry."""

import pytest

from promo_producer.context.brand_registry import BrandAsset, BrandAssetRegistry
from promo_producer.core.exceptions import ConfigurationError, ResourceNotFoundError

pytestmark = pytest.mark.unit


@pytest.fixture
def registry():
    return BrandAssetRegistry.from_dict({
        "brand_name": "Meadow & Root",
        "assets": [
            {"id": "logo-main", "name": "Primary logo large", "url": "https://cdn.example.com/logo.png",
             "media_type": "logo", "mime_type": "image/png", "is_default": True},
            {"id": "logo-mark", "name": "Corner watermark", "url": "https://cdn.example.com/mark.svg",
             "media_type": "watermark"},
            {"id": "tincture-hero", "name": "Calm Tincture hero shot", "url": "https://cdn.example.com/t.png",
             "media_type": "product", "entity_name": "Calm Tincture", "priority": 6},
            {"id": "gummies", "name": "Sleep Gummies jar", "url": "https://cdn.example.com/g.jpg",
             "media_type": "product", "entity_name": "Sleep Gummies", "priority": 3},
            {"id": "lineup", "name": "All products group shot", "url": "https://cdn.example.com/all.jpg"},
            {"id": "shop", "name": "Main street shop", "url": "https://cdn.example.com/shop.jpg",
             "media_type": "location"},
            {"id": "old-logo", "name": "Old logo", "url": "https://cdn.example.com/old.png",
             "media_type": "logo", "priority": 50, "is_active": False},
        ],
    })


class TestGetBestAsset:

    def test_logo_overlay_prefers_primary(self, registry):
        assert registry.get_best_asset("logo-overlay").id == "logo-main"

    def test_watermark(self, registry):
        assert registry.get_best_asset("watermark").id == "logo-mark"

    def test_product_hero_matches_name(self, registry):
        assert registry.get_best_asset("product-hero", "Calm Tincture").id == "tincture-hero"
        assert registry.get_best_asset("product-hero", "Sleep Gummies").id == "gummies"

    def test_product_hero_needs_a_name(self, registry):
        assert registry.get_best_asset("product-hero") is None

    def test_product_group_and_location(self, registry):
        assert registry.get_best_asset("product-group").id == "lineup"
        assert registry.get_best_asset("location").id == "shop"

    def test_unknown_purpose_raises(self, registry):
        with pytest.raises(ValueError):
            registry.get_best_asset("banner")

    def test_inactive_assets_are_ignored(self, registry):
        matches = registry.find_logo_assets()
        assert "old-logo" not in [m.asset.id for m in matches]


class TestSearch:

    def test_keyword_search_orders_by_score(self, registry):
        matches = registry.search_by_keywords(["calm", "tincture"])
        assert matches[0].asset.id == "tincture-hero"
        assert matches[0].matched_keywords == ["calm", "tincture"]

    def test_empty_registry(self):
        registry = BrandAssetRegistry()
        assert registry.get_best_asset("logo-overlay") is None
        assert len(registry) == 0

    def test_add_replaces_by_id(self, registry):
        registry.add(BrandAsset(id="shop", name="New shop", url="https://cdn.example.com/new.jpg"))
        assert registry.get("shop").name == "New shop"


class TestLoading:

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "brand.yaml"
        path.write_text(
            "brand_name: Meadow & Root\n"
            "assets:\n"
            "  - id: logo-main\n"
            "    name: Primary logo\n"
            "    url: https://cdn.example.com/logo.png\n"
            "    media_type: logo\n"
        )
        registry = BrandAssetRegistry.from_yaml(path)
        assert registry.brand_name == "Meadow & Root"
        assert registry.get("logo-main") is not None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ResourceNotFoundError):
            BrandAssetRegistry.from_yaml(tmp_path / "missing.yaml")

    def test_unknown_field(self):
        with pytest.raises(ConfigurationError):
            BrandAssetRegistry.from_dict({"assets": [{"id": "x", "name": "x", "url": "u", "colour": "red"}]})
