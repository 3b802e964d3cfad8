"""
Provider Registry
=================

Maps provider names from ``provider.name`` in the config to the classes
that implement the image and video capabilities.
"""

import importlib
import logging
from typing import Optional, List, Dict, Type

from .base import BaseGenerativeProvider

logger = logging.getLogger(__name__)

_PROVIDERS: Dict[str, Type[BaseGenerativeProvider]] = {}

# Bundled providers, imported on first lookup
_BUNDLED = {"gemini": ".gemini"}


def register_provider(name: str):
    """Class decorator adding a provider under a case-insensitive name."""
    def decorator(cls: Type[BaseGenerativeProvider]):
        _PROVIDERS[name.lower()] = cls
        return cls
    return decorator


def _load_bundled(name: str) -> None:
    module = _BUNDLED.get(name)
    if module and name not in _PROVIDERS:
        importlib.import_module(module, package=__package__)


def get_provider(
    name: str,
    api_key: Optional[str] = None,
    **kwargs,
) -> BaseGenerativeProvider:
    """
    Build the provider registered as ``name``.

    ``api_key`` wins over the environment; remaining keyword arguments
    (``base_url``, ``timeout``, ``env_key_name``) go to the constructor.

    Raises:
        ValueError: No provider is registered under that name
    """
    key = name.lower()
    _load_bundled(key)

    try:
        provider_class = _PROVIDERS[key]
    except KeyError:
        raise ValueError(f"Unknown provider: {name} (known: {', '.join(list_providers())})") from None

    logger.debug(f"Creating provider: {key}")
    return provider_class(api_key=api_key, **kwargs)


def list_providers() -> List[str]:
    """Names of every bundled and registered provider."""
    for name in _BUNDLED:
        _load_bundled(name)
    return sorted(_PROVIDERS)
