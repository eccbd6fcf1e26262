"""
Core Module
===========

Core utilities, configuration, and exceptions for the AI Promo Video Producer.
"""

from .config import (
    Config,
    TimingConfig,
    FallbackConfig,
    PollingConfig,
    PlacementConfig,
    QualityConfig,
    StorageConfig,
    get_config,
    set_config,
    reset_config,
)
from .exceptions import (
    VideoProducerError,
    ConfigurationError,
    ProviderError,
    QuotaError,
    RateLimitError,
    GenerationError,
    ValidationError,
    ValidationRejection,
    CacheError,
    StageError,
    AnalysisDecodeError,
    SecurityError,
    TimeoutError,
    ResourceNotFoundError,
)
from .security import is_durable_url, sanitize_filename, sanitize_prompt, redact_api_key

__all__ = [
    # Configuration
    "Config",
    "TimingConfig",
    "FallbackConfig",
    "PollingConfig",
    "PlacementConfig",
    "QualityConfig",
    "StorageConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "VideoProducerError",
    "ConfigurationError",
    "ProviderError",
    "QuotaError",
    "RateLimitError",
    "GenerationError",
    "ValidationError",
    "ValidationRejection",
    "CacheError",
    "StageError",
    "AnalysisDecodeError",
    "SecurityError",
    "TimeoutError",
    "ResourceNotFoundError",
    # Security
    "is_durable_url",
    "sanitize_filename",
    "sanitize_prompt",
    "redact_api_key",
]
