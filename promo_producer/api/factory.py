"""
Provider Factory
================

Registry and factory for generation providers, plus fallback-chain
construction from configuration.
"""

import importlib
import logging
from typing import Optional, List, Dict, Type

from ..core.config import Config, get_config
from ..core.exceptions import ConfigurationError
from .base import BaseGenerationProvider

logger = logging.getLogger(__name__)

# Registry of available providers
_PROVIDERS: Dict[str, Type[BaseGenerationProvider]] = {}

# Module that registers each provider name, imported on first use
_PROVIDER_MODULES = {
    "fal-flux-pro": "fal",
    "fal-flux-dev": "fal",
    "fal-flux-schnell": "fal",
    "huggingface": "huggingface",
    "pexels-image": "stock",
    "pexels-video": "stock",
    "pixabay-video": "stock",
    "stock-sound": "stock",
    "elevenlabs-voice": "elevenlabs",
    "elevenlabs-music": "elevenlabs",
    "jamendo": "jamendo",
    "piapi-sound": "piapi",
}


def register_provider(name: str):
    """Decorator to register a provider class."""
    def decorator(cls: Type[BaseGenerationProvider]):
        _PROVIDERS[name.lower()] = cls
        return cls
    return decorator


def get_provider(
    name: str,
    api_key: Optional[str] = None,
    **kwargs,
) -> BaseGenerationProvider:
    """
    Get a generation provider instance.

    Args:
        name: Provider name (e.g., 'fal-flux-pro', 'pexels-video', 'jamendo')
        api_key: Optional API key (otherwise read from environment)
        **kwargs: Additional provider-specific arguments

    Returns:
        Configured provider instance

    Raises:
        ValueError: If provider name is not recognized
    """
    name_lower = name.lower()

    if name_lower not in _PROVIDERS:
        module = _PROVIDER_MODULES.get(name_lower)
        if module is None:
            raise ValueError(f"Unknown provider: {name}")
        importlib.import_module(f"{__package__}.{module}")

    provider_class = _PROVIDERS.get(name_lower)
    if provider_class is None:
        raise ValueError(f"Provider '{name}' not registered")

    return provider_class(api_key=api_key, **kwargs)


def list_providers() -> List[str]:
    """List all known provider names."""
    return sorted(set(_PROVIDER_MODULES) | set(_PROVIDERS))


def provider_kwargs(name: str, config: Config) -> Dict[str, object]:
    """Constructor arguments for a provider from configuration."""
    kwargs = {
        "timeout": config.fallback.request_timeout,
        "max_retries": config.fallback.max_retries,
        "retry_delay": config.fallback.retry_delay,
        "poll_interval": config.polling.interval_seconds,
        "max_poll_attempts": config.polling.max_attempts,
    }
    if name == "stock-sound" and config.sound.stock_base_url:
        kwargs["base_url"] = config.sound.stock_base_url
    kwargs.update(config.get_provider_config(name))
    return kwargs


def build_chain(
    names: List[str],
    config: Optional[Config] = None,
) -> List[BaseGenerationProvider]:
    """
    Instantiate an ordered provider chain.

    Raises:
        ConfigurationError: If a name is not a known provider
    """
    config = config or get_config()
    chain = []
    for name in names:
        try:
            chain.append(get_provider(name, **provider_kwargs(name, config)))
        except ValueError as e:
            raise ConfigurationError(str(e), config_key="fallback")
    logger.debug(f"Built provider chain: {[p.provider_name for p in chain]}")
    return chain
