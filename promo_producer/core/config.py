"""
Configuration System
====================

Centralized, validated configuration management with typed dataclasses.
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


DEFAULT_PACING = {
    "hook": 1.0,
    "intro": 1.2,
    "benefit": 1.1,
    "feature": 1.0,
    "testimonial": 1.3,
    "cta": 1.4,
    "explanation": 1.1,
    "process": 1.1,
    "brand": 1.2,
    "outro": 1.3,
}


@dataclass
class TimingConfig:
    """Scene duration settings."""

    speaking_rate: float = 2.5  # words per second
    buffer_seconds: float = 1.5
    min_duration: int = 5
    max_duration: int = 30
    trailing_buffer: int = 2  # added to the final scene
    pacing: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_PACING))

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.speaking_rate <= 0:
            raise ConfigurationError(
                f"speaking_rate must be positive, got {self.speaking_rate}",
                config_key="timing.speaking_rate",
            )
        if self.min_duration < 1:
            raise ConfigurationError(
                f"min_duration must be at least 1 second, got {self.min_duration}",
                config_key="timing.min_duration",
            )
        if self.max_duration < self.min_duration:
            raise ConfigurationError(
                f"max_duration ({self.max_duration}) is below min_duration ({self.min_duration})",
                config_key="timing.max_duration",
            )
        for scene_type, multiplier in self.pacing.items():
            if multiplier <= 0:
                raise ConfigurationError(
                    f"Pacing multiplier for {scene_type} must be positive",
                    config_key=f"timing.pacing.{scene_type}",
                )


@dataclass
class FallbackConfig:
    """Provider chains per capability."""

    image_chain: List[str] = field(default_factory=lambda: [
        "fal-flux-pro",
        "fal-flux-dev",
        "fal-flux-schnell",
        "huggingface",
        "pexels-image",
    ])
    video_chain: List[str] = field(default_factory=lambda: ["pexels-video", "pixabay-video"])
    music_chain: List[str] = field(default_factory=lambda: ["elevenlabs-music", "jamendo"])
    sound_chain: List[str] = field(default_factory=lambda: ["piapi-sound", "stock-sound"])
    voice_provider: str = "elevenlabs-voice"
    max_retries: int = 2
    retry_delay: float = 2.0
    request_timeout: int = 120

    # Provider-specific settings
    provider_settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        for name in ("image_chain", "video_chain", "music_chain", "sound_chain"):
            if not getattr(self, name):
                raise ConfigurationError(
                    f"{name} must list at least one provider",
                    config_key=f"fallback.{name}",
                )
        if not 0 <= self.max_retries <= 10:
            raise ConfigurationError(
                f"max_retries must be 0-10, got {self.max_retries}",
                config_key="fallback.max_retries",
            )


@dataclass
class PollingConfig:
    """Bounded polling for long-running generation jobs."""

    interval_seconds: float = 2.0
    max_attempts: int = 60

    def __post_init__(self):
        if self.interval_seconds <= 0 or self.max_attempts < 1:
            raise ConfigurationError(
                "Polling needs a positive interval and at least one attempt",
                config_key="polling",
            )

    @property
    def ceiling_seconds(self) -> float:
        """Hard wall-clock ceiling implied by the polling bounds."""
        return self.interval_seconds * self.max_attempts


@dataclass
class AudienceConfig:
    """Content/audience gate settings."""

    extra_negative_keywords: List[str] = field(default_factory=list)
    enforce_unique_assets: bool = True


@dataclass
class PlacementConfig:
    """Canvas and overlay placement settings."""

    canvas_width: int = 1920
    canvas_height: int = 1080
    safe_margin: int = 40
    logo_size: str = "medium"
    logo_anchor: str = "bottom-right"
    product_size: str = "large"
    max_width_percent: Optional[float] = None
    max_height_percent: Optional[float] = None

    VALID_SIZES = {"small", "medium", "large", "xlarge"}

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ConfigurationError(
                f"Invalid canvas {self.canvas_width}x{self.canvas_height}",
                config_key="placement.canvas",
            )
        if self.safe_margin < 0 or self.safe_margin * 2 >= min(self.canvas_width, self.canvas_height):
            raise ConfigurationError(
                f"Invalid safe margin: {self.safe_margin}",
                config_key="placement.safe_margin",
            )
        for key in ("logo_size", "product_size"):
            if getattr(self, key) not in self.VALID_SIZES:
                raise ConfigurationError(
                    f"Invalid size tag: {getattr(self, key)}",
                    config_key=f"placement.{key}",
                )


@dataclass
class QualityConfig:
    """Quality scoring weights, ceilings and thresholds."""

    technical_weight: float = 0.20
    content_match_weight: float = 0.40
    brand_compliance_weight: float = 0.20
    composition_weight: float = 0.20

    # Override ceilings
    missing_text_ceiling: int = 40
    framing_ceiling: int = 50

    # Recommendation thresholds
    approve_threshold: int = 70
    review_threshold: int = 50
    regenerate_threshold: int = 30

    # Project gate
    auto_approve_above: int = 85
    min_scene_score: int = 70
    min_project_score: int = 75
    max_critical_issues: int = 0
    max_major_issues: int = 3
    require_user_approval: bool = True
    max_regeneration_attempts: int = 3

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate weights and threshold ordering."""
        weights = self.weights
        total = sum(weights.values())
        if abs(total - 1.0) > 0.001:
            raise ConfigurationError(
                f"Quality weights must sum to 1.0, got {total:.3f}",
                config_key="quality.weights",
            )
        if any(w < 0 for w in weights.values()):
            raise ConfigurationError("Quality weights must be non-negative", config_key="quality.weights")
        if max(weights, key=weights.get) != "content_match":
            raise ConfigurationError(
                "content_match must carry the highest weight",
                config_key="quality.content_match_weight",
            )
        if not (100 >= self.approve_threshold > self.review_threshold > self.regenerate_threshold >= 0):
            raise ConfigurationError(
                "Thresholds must satisfy approve > review > regenerate",
                config_key="quality.thresholds",
            )

    @property
    def weights(self) -> Dict[str, float]:
        return {
            "technical": self.technical_weight,
            "content_match": self.content_match_weight,
            "brand_compliance": self.brand_compliance_weight,
            "composition": self.composition_weight,
        }


@dataclass
class SoundConfig:
    """Sound design settings."""

    enabled: bool = True
    transition_volume: float = 0.6
    transition_duration: float = 0.8
    ambient_volume: float = 0.15
    emphasis_volume: float = 0.6
    emphasis_duration: float = 1.5
    stock_base_url: Optional[str] = None  # pre-rendered sound library


@dataclass
class StorageConfig:
    """Durable object storage settings."""

    bucket: Optional[str] = None
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    public_base_url: Optional[str] = None
    key_prefix: str = "promo-producer"
    ephemeral_hosts: List[str] = field(default_factory=lambda: [
        "fal.media",
        "v3.fal.media",
        "replicate.delivery",
        "oaidalleapiprodscus.blob.core.windows.net",
        "storage.theapi.app",
    ])

    @property
    def enabled(self) -> bool:
        return bool(self.bucket)


@dataclass
class AnalysisConfig:
    """Vision analysis model settings."""

    enabled: bool = True
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1500
    api_key_env: str = "ANTHROPIC_API_KEY"


@dataclass
class PipelineConfig:
    """Stage sequencing settings."""

    mandatory_stages: List[str] = field(default_factory=lambda: [
        "timing", "voiceover", "images", "render_prep",
    ])
    broll_scene_types: List[str] = field(default_factory=lambda: [
        "hook", "benefit", "story", "testimonial",
    ])
    enable_videos: bool = True
    enable_music: bool = True
    music_volume: float = 0.15
    music_style: str = "professional"
    image_style_modifiers: List[str] = field(default_factory=lambda: [
        "professional photography",
        "warm natural lighting",
        "clean composition",
        "4K ultra detailed",
        "soft color palette",
    ])
    output_path: str = "./output"

    VALID_STAGES = {
        "timing", "voiceover", "images", "videos", "music", "sound_design",
        "scene_analysis", "composition", "caching", "render_prep",
    }

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate stage names."""
        unknown = set(self.mandatory_stages) - self.VALID_STAGES
        if unknown:
            raise ConfigurationError(
                f"Unknown mandatory stages: {sorted(unknown)}",
                config_key="pipeline.mandatory_stages",
            )


# =============================================================================
# Main Configuration Class
# =============================================================================


SECTIONS = {
    "timing": TimingConfig,
    "fallback": FallbackConfig,
    "polling": PollingConfig,
    "audience": AudienceConfig,
    "placement": PlacementConfig,
    "quality": QualityConfig,
    "sound": SoundConfig,
    "storage": StorageConfig,
    "analysis": AnalysisConfig,
    "pipeline": PipelineConfig,
}


@dataclass
class Config:
    """
    Main configuration container with validation and loading.

    Provides a unified interface to all configuration settings with:
    - Type-safe access to configuration values
    - Validation on load and modification
    - Environment variable interpolation
    - Sensible defaults for all values
    """

    timing: TimingConfig = field(default_factory=TimingConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    audience: AudienceConfig = field(default_factory=AudienceConfig)
    placement: PlacementConfig = field(default_factory=PlacementConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    sound: SoundConfig = field(default_factory=SoundConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    # Raw config for provider-specific extensions
    _raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from file with environment variable interpolation.

        Args:
            path: Path to YAML config file (defaults.yaml)

        Returns:
            Validated Config instance
        """
        search_paths = [
            Path("./config/defaults.yaml"),
            Path("./defaults.yaml"),
            Path.home() / ".promo-producer" / "config.yaml",
        ]

        if path:
            if not Path(path).exists():
                raise ConfigurationError(f"Config file not found: {path}", config_key=str(path))
            search_paths.insert(0, Path(path))

        config_data = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.info(f"Loading config from: {search_path}")
                try:
                    with open(search_path, "r") as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in config file: {e}",
                        config_key=str(search_path),
                    )
        else:
            logger.info("No config file found, using defaults")

        config_data = cls._interpolate_env_vars(config_data)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        try:
            sections = {
                name: section_cls(**(data.get(name) or {}))
                for name, section_cls in SECTIONS.items()
            }
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")
        return cls(_raw=data, **sections)

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            # Handle ${VAR} and ${VAR:-default} patterns
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return re.sub(pattern, replace, data)
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {section: asdict(getattr(self, section)) for section in SECTIONS}

    def get_provider_config(self, provider: str) -> Dict[str, Any]:
        """Get provider-specific configuration."""
        return self.fallback.provider_settings.get(provider, {})


# =============================================================================
# Convenience Functions
# =============================================================================


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance (lazily loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = Config.load()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration to None (forces reload on next access)."""
    global _global_config
    _global_config = None
