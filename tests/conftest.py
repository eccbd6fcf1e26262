"""Shared pytest fixtures for promo producer tests."""

import itertools
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from promo_producer.analysis.schema import SceneAnalysis
from promo_producer.api.base import GenerationResult, GenerationStatus
from promo_producer.core.config import Config
from promo_producer.project.models import Provenance, VideoProject
from promo_producer.utils.storage import ObjectStore


# =============================================================================
# Fake Providers
# =============================================================================


class FakeProvider:
    """
    In-test generation provider.

    Succeeds with a fresh URL per call unless ``fail`` or ``error`` is set.
    ``url_base`` controls which host the produced URLs point at.
    """

    _counter = itertools.count(1)

    def __init__(
        self,
        name: str,
        provider_class: Optional[str] = None,
        provenance: Provenance = Provenance.AI,
        fail: bool = False,
        error: Optional[Exception] = None,
        url_base: str = "https://cdn.example.com",
        tags: Optional[List[str]] = None,
        asset_bytes: Optional[bytes] = None,
        content_type: Optional[str] = None,
        alternatives: Optional[List[Dict[str, Any]]] = None,
    ):
        self.provider_name = name
        self.provider_class = provider_class or name
        self.provenance = provenance
        self.fail = fail
        self.error = error
        self.url_base = url_base
        self.tags = tags or []
        self.asset_bytes = asset_bytes
        self.content_type = content_type
        self.alternatives = alternatives or []
        self.requests = []
        self.closed = False

    async def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.fail:
            return GenerationResult(
                kind=request.kind,
                status=GenerationStatus.FAILED,
                provider=self.provider_name,
                error_message=f"{self.provider_name} unavailable",
            )

        n = next(self._counter)
        result = GenerationResult(
            kind=request.kind,
            status=GenerationStatus.COMPLETED,
            provider=self.provider_name,
            tags=list(self.tags),
            content_type=self.content_type,
        )
        if self.asset_bytes is not None:
            result.asset_bytes = self.asset_bytes
        else:
            result.asset_url = f"{self.url_base}/{self.provider_name}/{n}"
        result.alternatives = [
            GenerationResult(
                kind=request.kind,
                status=GenerationStatus.COMPLETED,
                provider=self.provider_name,
                asset_url=alt["url"],
                tags=alt.get("tags", []),
            )
            for alt in self.alternatives
        ]
        return result

    async def close(self):
        self.closed = True


class FakeStore(ObjectStore):
    """Object store that keeps uploads in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects: Dict[str, bytes] = {}

    async def put(self, data: bytes, key: str, content_type: str) -> Optional[str]:
        if self.fail:
            return None
        self.objects[key] = data
        return f"https://assets.example.com/{key}"


class FakeFetcher:
    """Asset fetcher that never touches the network."""

    def __init__(self, data: bytes = b"\x89PNG fake", content_type: str = "image/png"):
        self.data = data
        self.content_type = content_type
        self.fetched: List[str] = []

    async def fetch(self, url: str):
        self.fetched.append(url)
        return self.data, self.content_type

    async def close(self):
        pass


# =============================================================================
# Analysis
# =============================================================================


def make_analysis(**overrides) -> SceneAnalysis:
    """A valid SceneAnalysis with high scores; override any field."""
    data = {
        "technical_score": 90,
        "content_match_score": 90,
        "brand_compliance_score": 90,
        "composition_score": 90,
        "text_overlay_present": True,
        "environment_visible": True,
        "framing": "medium",
        "ai_artifacts_detected": False,
        "content_type": "lifestyle",
        "mood": "calm",
        "frame": {
            "subject_position": "center",
            "face_detected": True,
            "busy_regions": [],
            "dominant_colors": ["#C8A27A"],
            "lighting_type": "natural",
            "safe_text_zones": ["lower-third", "top"],
        },
        "recommendations": {
            "text_position": {"vertical": "lower-third", "horizontal": "center"},
            "text_color": "#FFFFFF",
            "needs_text_shadow": True,
            "needs_text_background": False,
            "product_overlay_position": {"x": "right", "y": "bottom"},
            "product_overlay_safe": True,
        },
        "issues": [],
    }
    data.update(overrides)
    return SceneAnalysis.model_validate(data)


def make_analyzer(analysis: Optional[SceneAnalysis] = None, available: bool = True):
    """Mock vision analyzer returning a fixed analysis."""
    analyzer = Mock()
    analyzer.available = available
    analyzer.analyze = AsyncMock(return_value=analysis or make_analysis())
    return analyzer


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config() -> Config:
    """Default configuration."""
    return Config()


@pytest.fixture
def segments() -> List[Dict[str, Any]]:
    """Three-scene script."""
    return [
        {
            "type": "hook",
            "narration": "Tired of tossing and turning every single night",
            "visual_direction": "Woman awake in a dark bedroom at night",
            "search_query": "woman awake bed night",
        },
        {
            "type": "benefit",
            "narration": "Our calming herbal blend helps you unwind naturally before bed",
            "visual_direction": "Herbal tea on a wooden table, morning light",
        },
        {
            "type": "cta",
            "narration": "Try it tonight and wake up refreshed",
            "visual_direction": "Product bottle on a nightstand",
            "show_product": True,
        },
    ]


@pytest.fixture
def project(segments) -> VideoProject:
    """Draft project for a female mature audience."""
    return VideoProject.from_segments(
        "Calm Nights",
        segments,
        target_audience="women 50-65",
        brand_safety_keywords=["competitor"],
        product_name="Calm Tincture",
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def chains() -> Dict[str, List[FakeProvider]]:
    """Working provider chain for every capability."""
    return {
        "images": [
            FakeProvider("fal-flux-pro", provider_class="fal", url_base="https://v3.fal.media/files"),
            FakeProvider("pexels-image", provenance=Provenance.STOCK),
        ],
        "videos": [
            FakeProvider("pexels-video", provenance=Provenance.STOCK, tags=["woman", "tea", "relax"]),
        ],
        "music": [FakeProvider("elevenlabs-music", provider_class="elevenlabs")],
        "sound": [FakeProvider("stock-sound", provenance=Provenance.STOCK)],
    }


@pytest.fixture
def voice_provider() -> FakeProvider:
    return FakeProvider(
        "elevenlabs-voice",
        provider_class="elevenlabs",
        asset_bytes=b"ID3 fake mp3",
        content_type="audio/mpeg",
    )


@pytest.fixture
def analyzer():
    return make_analyzer()
