"""
Project Models
==============

Core data models for video projects, scenes, assets and progress.

A project is created from parsed script segments and then progressively
decorated by each pipeline stage.
"""

import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Iterator, Tuple

from ..analysis.schema import SceneAnalysis
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


PIPELINE_STAGES = (
    "timing",
    "voiceover",
    "images",
    "videos",
    "music",
    "sound_design",
    "scene_analysis",
    "composition",
    "caching",
    "render_prep",
)


# =============================================================================
# Enums
# =============================================================================


class ProjectStatus(Enum):
    """Status of a video project."""

    DRAFT = "draft"
    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"


class StageStatus(Enum):
    """Status of a single pipeline stage."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    ERROR = "error"
    SKIPPED = "skipped"


class SceneType(Enum):
    """Narrative role of a scene."""

    HOOK = "hook"
    PROBLEM = "problem"
    SOLUTION = "solution"
    INTRO = "intro"
    BENEFIT = "benefit"
    FEATURE = "feature"
    TESTIMONIAL = "testimonial"
    STORY = "story"
    EXPLANATION = "explanation"
    PROCESS = "process"
    BRAND = "brand"
    PRODUCT = "product"
    BROLL = "broll"
    CTA = "cta"
    OUTRO = "outro"

    @classmethod
    def parse(cls, value: Any) -> "SceneType":
        """Parse a scene type from a script segment."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().replace("_", "-")
        aliases = {"b-roll": "broll", "call-to-action": "cta"}
        normalized = aliases.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(
                f"Unknown scene type: {value}",
                field="type",
                value=value,
                constraint=", ".join(t.value for t in cls),
            )


class Provenance(Enum):
    """Where an asset came from."""

    AI = "ai"
    STOCK = "stock"
    UPLOADED = "uploaded"


class MediaType(Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class Recommendation(Enum):
    """Action recommended by the quality scoring engine."""

    APPROVED = "approved"
    NEEDS_REVIEW = "needs_review"
    REGENERATE = "regenerate"
    CRITICAL_FAIL = "critical_fail"


class ScoreBand(Enum):
    """Tri-state view of a quality score."""

    NOT_ANALYZED = "not_analyzed"
    ANALYZED_LOW = "analyzed_low"
    ANALYZED_HIGH = "analyzed_high"


# =============================================================================
# Assets
# =============================================================================


@dataclass
class AssetReference:
    """A generated, stock or uploaded asset with its provenance."""

    url: str
    provenance: Provenance = Provenance.AI
    source: str = ""
    media_type: MediaType = MediaType.IMAGE

    # Candidate metadata used by the audience gate
    tags: List[str] = field(default_factory=list)
    title: str = ""
    description: str = ""
    uploader: str = ""

    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    cached: bool = False

    def metadata_text(self) -> str:
        """Combined lowercase text of all descriptive metadata."""
        parts = [self.title, self.description, self.uploader, " ".join(self.tags)]
        return " ".join(p for p in parts if p).lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "provenance": self.provenance.value,
            "source": self.source,
            "media_type": self.media_type.value,
            "tags": self.tags,
            "title": self.title,
            "duration": self.duration,
            "width": self.width,
            "height": self.height,
            "cached": self.cached,
        }


@dataclass
class SceneBackground:
    """
    A scene's background visual.

    Both an image and a video may be stored, but exactly one of them is
    active at a time. The inactive one is a fallback and is never rendered.
    """

    image: Optional[AssetReference] = None
    video: Optional[AssetReference] = None
    active: Optional[str] = None  # "image" or "video"

    def use_image(self, asset: Optional[AssetReference] = None) -> None:
        """Make the image the active background, optionally replacing it."""
        if asset is not None:
            self.image = asset
        if self.image is None:
            raise ValidationError("No image available for background", field="background.image")
        self.active = "image"

    def use_video(self, asset: Optional[AssetReference] = None) -> None:
        """Make the video the active background, optionally replacing it."""
        if asset is not None:
            self.video = asset
        if self.video is None:
            raise ValidationError("No video available for background", field="background.video")
        self.active = "video"

    def drop_video(self) -> None:
        """Discard the video and fall back to the image if there is one."""
        self.video = None
        self.active = "image" if self.image else None

    def drop_image(self) -> None:
        """Discard the image; a video background stays active."""
        self.image = None
        if self.active == "image":
            self.active = "video" if self.video else None

    @property
    def active_asset(self) -> Optional[AssetReference]:
        if self.active == "image":
            return self.image
        if self.active == "video":
            return self.video
        return None

    @property
    def has_asset(self) -> bool:
        return self.active_asset is not None

    def to_dict(self) -> Dict[str, Any]:
        active = self.active_asset
        return {
            "type": self.active,
            "url": active.url if active else None,
            "source": active.source if active else None,
            "image": self.image.to_dict() if self.image else None,
            "video": self.video.to_dict() if self.video else None,
        }


@dataclass
class TextOverlay:
    """On-screen text requested for a scene."""

    text: str
    style: str = "headline"  # title, headline, subheadline, body, caption


@dataclass
class ProductOverlay:
    """Product image composited over the scene background."""

    url: Optional[str] = None
    enabled: bool = False
    size: str = "large"
    aspect_ratio: Optional[float] = None


@dataclass
class LogoSettings:
    """Project-wide logo overlay."""

    url: Optional[str] = None
    enabled: bool = False
    size: str = "medium"
    anchor: str = "bottom-right"
    aspect_ratio: Optional[float] = None


# =============================================================================
# Derived Data
# =============================================================================


@dataclass
class PlacementRect:
    """Resolved pixel rectangle for an overlay."""

    x: int
    y: int
    width: int
    height: int
    anchor: str = "custom"

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "anchor": self.anchor,
        }


@dataclass
class QualityIssue:
    category: str
    severity: str
    description: str
    suggestion: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "severity": self.severity,
            "description": self.description,
            "suggestion": self.suggestion,
        }


@dataclass
class QualityScore:
    """
    Quality assessment for a scene visual.

    When ``analyzed`` is False every numeric field is None and the band is
    NOT_ANALYZED; there is no number that could be mistaken for a real score.
    """

    analyzed: bool = False
    band: ScoreBand = ScoreBand.NOT_ANALYZED

    technical: Optional[int] = None
    content_match: Optional[int] = None
    brand_compliance: Optional[int] = None
    composition: Optional[int] = None
    weighted: Optional[int] = None  # before overrides
    composite: Optional[int] = None  # after overrides

    recommendation: Optional[Recommendation] = None
    issues: List[QualityIssue] = field(default_factory=list)
    overrides_applied: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    stale: bool = False
    analyzed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyzed": self.analyzed,
            "band": self.band.value,
            "technical": self.technical,
            "content_match": self.content_match,
            "brand_compliance": self.brand_compliance,
            "composition": self.composition,
            "weighted": self.weighted,
            "composite": self.composite,
            "recommendation": self.recommendation.value if self.recommendation else None,
            "issues": [i.to_dict() for i in self.issues],
            "overrides_applied": self.overrides_applied,
            "reason": self.reason,
            "stale": self.stale,
            "analyzed_at": self.analyzed_at.isoformat() if self.analyzed_at else None,
        }


@dataclass
class TextPlacement:
    text: str
    style: str
    x_percent: float
    y_percent: float
    font_size: int
    color: str = "#FFFFFF"
    shadow: bool = True
    background: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "style": self.style,
            "x_percent": self.x_percent,
            "y_percent": self.y_percent,
            "font_size": self.font_size,
            "color": self.color,
            "shadow": self.shadow,
            "background": self.background,
        }


@dataclass
class CompositionInstructions:
    """Final per-scene directives consumed by the renderer."""

    text_placements: List[TextPlacement] = field(default_factory=list)
    product_overlay_enabled: bool = False
    product_overlay_rect: Optional[PlacementRect] = None
    logo_rect: Optional[PlacementRect] = None
    camera_motion: str = "static"
    from_analysis: bool = False
    stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text_placements": [t.to_dict() for t in self.text_placements],
            "product_overlay_enabled": self.product_overlay_enabled,
            "product_overlay_rect": self.product_overlay_rect.to_dict() if self.product_overlay_rect else None,
            "logo_rect": self.logo_rect.to_dict() if self.logo_rect else None,
            "camera_motion": self.camera_motion,
            "from_analysis": self.from_analysis,
            "stale": self.stale,
        }


@dataclass
class SoundCue:
    """One audio cue; ``url`` stays None until a provider realizes it."""

    effect: str  # whoosh, transition, impact, sparkle, ambient, notification, success
    variant: str
    prompt: str
    duration: float
    volume: float
    url: Optional[str] = None
    source: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.effect}-{self.variant}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "effect": self.effect,
            "variant": self.variant,
            "duration": self.duration,
            "volume": self.volume,
            "url": self.url,
            "source": self.source,
        }


@dataclass
class SoundPlan:
    transition_in: Optional[SoundCue] = None
    transition_out: Optional[SoundCue] = None
    ambience: Optional[SoundCue] = None
    emphasis: List[SoundCue] = field(default_factory=list)

    def cues(self) -> Iterator[SoundCue]:
        for cue in (self.transition_in, self.transition_out, self.ambience):
            if cue is not None:
                yield cue
        yield from self.emphasis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transition_in": self.transition_in.to_dict() if self.transition_in else None,
            "transition_out": self.transition_out.to_dict() if self.transition_out else None,
            "ambience": self.ambience.to_dict() if self.ambience else None,
            "emphasis": [c.to_dict() for c in self.emphasis],
        }


# =============================================================================
# Scene
# =============================================================================


@dataclass
class Scene:
    """
    One timed segment of the final video.

    Created once from a parsed script segment, then decorated by each
    pipeline stage.
    """

    # Identity
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    order: int = 0
    type: SceneType = SceneType.BROLL

    # Content
    narration: str = ""
    visual_direction: str = ""
    search_query: str = ""
    fallback_query: str = ""
    mood: Optional[str] = None

    # Timing
    duration: int = 0  # seconds

    # Visuals
    background: SceneBackground = field(default_factory=SceneBackground)
    text_overlays: List[TextOverlay] = field(default_factory=list)
    product_overlay: ProductOverlay = field(default_factory=ProductOverlay)
    show_logo: bool = True

    # Derived
    analysis: Optional[SceneAnalysis] = None
    quality: Optional[QualityScore] = None
    composition: Optional[CompositionInstructions] = None
    sound: Optional[SoundPlan] = None

    regeneration_count: int = 0

    @classmethod
    def from_segment(cls, segment: Dict[str, Any], order: int) -> "Scene":
        """Build a scene from a script-parser segment."""
        overlays = [
            TextOverlay(text=o["text"], style=o.get("style", "headline")) if isinstance(o, dict) else TextOverlay(text=str(o))
            for o in segment.get("text_overlays", [])
        ]
        return cls(
            order=order,
            type=SceneType.parse(segment.get("type")),
            narration=segment.get("narration") or "",
            visual_direction=segment.get("visual_direction") or segment.get("visualDirection") or "",
            search_query=segment.get("search_query") or segment.get("searchQuery") or "",
            fallback_query=segment.get("fallback_query") or segment.get("fallbackQuery") or "",
            mood=segment.get("mood"),
            text_overlays=overlays,
            product_overlay=ProductOverlay(enabled=bool(segment.get("show_product") or segment.get("showProduct"))),
            show_logo=segment.get("show_logo", segment.get("showLogo", True)),
        )

    def mark_derived_stale(self) -> None:
        """Flag analysis-derived data as stale after the visual changed."""
        self.analysis = None
        if self.quality is not None:
            self.quality.stale = True
        if self.composition is not None:
            self.composition.stale = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "order": self.order,
            "type": self.type.value,
            "narration": self.narration,
            "visual_direction": self.visual_direction,
            "search_query": self.search_query,
            "mood": self.mood,
            "duration": self.duration,
            "background": self.background.to_dict(),
            "text_overlays": [{"text": o.text, "style": o.style} for o in self.text_overlays],
            "product_overlay": {
                "url": self.product_overlay.url,
                "enabled": self.product_overlay.enabled,
            },
            "show_logo": self.show_logo,
            "analysis": self.analysis.model_dump() if self.analysis else None,
            "quality": self.quality.to_dict() if self.quality else None,
            "composition": self.composition.to_dict() if self.composition else None,
            "sound": self.sound.to_dict() if self.sound else None,
            "regeneration_count": self.regeneration_count,
        }


# =============================================================================
# Progress
# =============================================================================


@dataclass
class ServiceFailure:
    """A single provider failure recorded during production."""

    service: str
    error: str
    timestamp: datetime = field(default_factory=datetime.now)
    fallback_used: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "timestamp": self.timestamp.isoformat(),
            "error": self.error,
            "fallback_used": self.fallback_used,
        }


class FailureLedger:
    """
    Append-only record of service failures for one project.

    Entries can be appended and read but never removed or reordered.
    """

    def __init__(self):
        self._entries: List[ServiceFailure] = []

    def record(
        self,
        service: str,
        error: str,
        fallback_used: Optional[str] = None,
    ) -> ServiceFailure:
        """Append a failure and return it."""
        failure = ServiceFailure(service=service, error=str(error)[:500], fallback_used=fallback_used)
        self._entries.append(failure)
        logger.debug(f"Recorded failure for {service}: {failure.error}")
        return failure

    @property
    def entries(self) -> Tuple[ServiceFailure, ...]:
        return tuple(self._entries)

    def for_service(self, service: str) -> List[ServiceFailure]:
        return [f for f in self._entries if f.service == service]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ServiceFailure]:
        return iter(tuple(self._entries))

    def to_list(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self._entries]


@dataclass
class StageProgress:
    """Status of one pipeline stage."""

    status: StageStatus = StageStatus.PENDING
    message: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def start(self, message: str = "") -> None:
        self.status = StageStatus.IN_PROGRESS
        self.message = message
        self.started_at = datetime.now()

    def complete(self, message: str = "") -> None:
        self.status = StageStatus.COMPLETE
        self.message = message
        self.completed_at = datetime.now()

    def fail(self, message: str) -> None:
        self.status = StageStatus.ERROR
        self.message = message
        self.completed_at = datetime.now()

    def skip(self, reason: str) -> None:
        """Skip the stage; a reason is required."""
        if not reason:
            raise ValidationError("A skipped stage needs a reason", field="message")
        self.status = StageStatus.SKIPPED
        self.message = reason
        self.completed_at = datetime.now()

    @property
    def settled(self) -> bool:
        """Complete, or skipped with a reason."""
        return self.status == StageStatus.COMPLETE or (
            self.status == StageStatus.SKIPPED and bool(self.message)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ProjectProgress:
    """Per-stage status plus error and failure ledgers."""

    stages: Dict[str, StageProgress] = field(
        default_factory=lambda: {name: StageProgress() for name in PIPELINE_STAGES}
    )
    errors: List[str] = field(default_factory=list)
    service_failures: FailureLedger = field(default_factory=FailureLedger)
    current_stage: Optional[str] = None

    def stage(self, name: str) -> StageProgress:
        if name not in self.stages:
            raise ValidationError(f"Unknown stage: {name}", field="stage", value=name)
        return self.stages[name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_stage": self.current_stage,
            "stages": {name: s.to_dict() for name, s in self.stages.items()},
            "errors": list(self.errors),
            "service_failures": self.service_failures.to_list(),
        }


# =============================================================================
# Project
# =============================================================================


@dataclass
class ProjectAssets:
    voiceover: Optional[AssetReference] = None
    music: Optional[AssetReference] = None
    music_volume: float = 0.15


@dataclass
class VideoProject:
    """
    A marketing video project.

    Owns its scenes, aggregated assets and the progress ledger.
    """

    # Identity
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    title: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT

    # Content
    scenes: List[Scene] = field(default_factory=list)
    assets: ProjectAssets = field(default_factory=ProjectAssets)
    total_duration: int = 0

    # Brief
    target_audience: str = ""
    brand_safety_keywords: List[str] = field(default_factory=list)
    product_name: Optional[str] = None
    style: str = "professional"
    voice_id: Optional[str] = None
    logo: LogoSettings = field(default_factory=LogoSettings)

    # Progress
    progress: ProjectProgress = field(default_factory=ProjectProgress)

    # Metadata
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_segments(
        cls,
        title: str,
        segments: List[Dict[str, Any]],
        **kwargs,
    ) -> "VideoProject":
        """Create a draft project from ordered script segments."""
        if not segments:
            raise ValidationError("A project needs at least one scene", field="segments")
        scenes = [Scene.from_segment(seg, order=i) for i, seg in enumerate(segments)]
        return cls(title=title, scenes=scenes, **kwargs)

    def get_scene(self, scene_id: str) -> Optional[Scene]:
        """Get a scene by ID."""
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    @property
    def full_narration(self) -> str:
        return " ".join(s.narration.strip() for s in self.scenes if s.narration.strip())

    def durations_in_sync(self) -> bool:
        return sum(s.duration for s in self.scenes) == self.total_duration

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the document exposed to the renderer and UI."""
        images = [
            {"scene_id": s.id, "url": s.background.image.url, "source": s.background.image.source}
            for s in self.scenes if s.background.image
        ]
        videos = [
            {"scene_id": s.id, "url": s.background.video.url, "source": s.background.video.source}
            for s in self.scenes if s.background.video
        ]
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "total_duration": self.total_duration,
            "target_audience": self.target_audience,
            "product_name": self.product_name,
            "style": self.style,
            "logo": {
                "url": self.logo.url,
                "enabled": self.logo.enabled,
                "size": self.logo.size,
                "anchor": self.logo.anchor,
            },
            "scenes": [s.to_dict() for s in self.scenes],
            "assets": {
                "voiceover": self.assets.voiceover.to_dict() if self.assets.voiceover else None,
                "music": self.assets.music.to_dict() if self.assets.music else None,
                "music_volume": self.assets.music_volume,
                "images": images,
                "videos": videos,
            },
            "progress": self.progress.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
