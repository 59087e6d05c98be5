"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, aggregator_home
from .models import GlobalConfig, RateLimitPolicy, SourceConfig, SourceKind
from .registry import DEFAULT_SOURCES, SourceRegistry

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_SOURCES",
    "GlobalConfig",
    "RateLimitPolicy",
    "SourceConfig",
    "SourceKind",
    "SourceRegistry",
    "aggregator_home",
]
