"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    ExtractionConfig,
    FanoutConfig,
    FeedConfig,
    HarvestConfig,
    OutputConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ExtractionConfig",
    "FanoutConfig",
    "FeedConfig",
    "HarvestConfig",
    "OutputConfig",
]
