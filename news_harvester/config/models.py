"""Pydantic models describing a harvesting run."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


def _coerce_range(value: Any, name: str) -> tuple[float, float]:
    if value in (None, ""):
        return (0.0, 0.0)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = float(value[0]), float(value[1])
        if low < 0 or high < 0:
            raise ValueError(f"{name} values must be non-negative")
        if high < low:
            raise ValueError(f"{name} upper bound must be >= lower bound")
        return (low, high)
    raise ValueError(f"{name} expects a two-item list or tuple")


class FeedConfig(BaseModel):
    """Where and how the RSS search is queried."""

    base_url: str = "https://news.google.com/rss/search"
    language: str = "en-US"
    country: str = "US"
    edition: str = "US:en"
    timeout: float = 15.0

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value


class FanoutConfig(BaseModel):
    """Year-by-year fan-out over the feed search."""

    years_back: int = 25
    query_template: str = "{query} {year}"
    delay_range: tuple[float, float] = (0.8, 1.2)

    @field_validator("delay_range", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> tuple[float, float]:
        return _coerce_range(value, "delay_range")

    @model_validator(mode="after")
    def _validate(self) -> "FanoutConfig":
        if self.years_back < 1:
            raise ValueError("years_back must be >= 1")
        if "{query}" not in self.query_template:
            raise ValueError("query_template must contain '{query}'")
        try:
            self.query_template.format(query="", year=0)
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(f"query_template only accepts {{query}} and {{year}} placeholders: {exc!r}") from exc
        return self


class ExtractionConfig(BaseModel):
    """Redirect resolution and page extraction settings."""

    concurrency: int = 5
    page_timeout: float = 30.0
    redirect_timeout: float = 15.0
    accept_language: str = "en-US,en;q=0.9"
    user_agent_list: list[str] = Field(
        default_factory=lambda: [
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/123.0 Safari/537.36",
        ]
    )

    @model_validator(mode="after")
    def _validate(self) -> "ExtractionConfig":
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.page_timeout <= 0 or self.redirect_timeout <= 0:
            raise ValueError("timeouts must be > 0")
        return self


class OutputConfig(BaseModel):
    """Flat per-run output layout."""

    output_dir: Path = Field(default=Path("data/outputs"))
    manifest_name: str = "_manifest.json"
    max_stem_length: int = 120
    on_collision: Literal["overwrite", "suffix"] = "overwrite"

    @field_validator("output_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("max_stem_length")
    @classmethod
    def _stem_length(cls, value: int) -> int:
        if value < 8:
            raise ValueError("max_stem_length must be >= 8")
        return value


class HarvestConfig(BaseModel):
    """Top-level configuration for the harvesting pipeline."""

    feed: FeedConfig = Field(default_factory=FeedConfig)
    fanout: FanoutConfig = Field(default_factory=FanoutConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


__all__ = [
    "ExtractionConfig",
    "FanoutConfig",
    "FeedConfig",
    "HarvestConfig",
    "OutputConfig",
]
