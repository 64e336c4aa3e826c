"""Shared fixtures: feed payload builders, fake HTTP transports and stub stages."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from threading import Lock
from types import SimpleNamespace
from typing import Any, Callable, Iterable
from xml.sax.saxutils import escape

import httpx
import pytest

from news_harvester.config import ConfigLocator, ConfigRepository, HarvestConfig
from news_harvester.engine import ExtractedArticle, FeedItem
from news_harvester.exceptions import ExtractionError


def build_rss(entries: Iterable[dict[str, Any]]) -> bytes:
    """Render a minimal RSS 2.0 document shaped like a news search result."""

    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0"><channel>',
        "<title>Search results</title>",
        "<link>https://news.example.com</link>",
        "<description>Search results</description>",
    ]
    for entry in entries:
        parts.append("<item>")
        if entry.get("title") is not None:
            parts.append(f"<title>{escape(entry['title'])}</title>")
        if entry.get("link"):
            parts.append(f"<link>{escape(entry['link'])}</link>")
        published = entry.get("published")
        if isinstance(published, datetime):
            parts.append(f"<pubDate>{format_datetime(published, usegmt=True)}</pubDate>")
        elif isinstance(published, str):
            parts.append(f"<pubDate>{escape(published)}</pubDate>")
        if entry.get("source"):
            parts.append(f'<source url="https://publisher.example">{escape(entry["source"])}</source>')
        if entry.get("description"):
            parts.append(f"<description>{escape(entry['description'])}</description>")
        parts.append("</item>")
    parts.append("</channel></rss>")
    return "".join(parts).encode("utf-8")


def utc(year: int, month: int = 1, day: int = 1, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_item(
    title: str = "Story",
    link: str = "https://news.example.com/rss/articles/1",
    published: datetime | None = None,
    source: str | None = "Publisher",
    publisher_url: str | None = None,
) -> FeedItem:
    return FeedItem(
        title=title,
        tracking_link=link,
        published_at=published or utc(2024, 1, 1),
        source=source,
        publisher_url=publisher_url,
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> httpx.Client:
    kwargs.setdefault("follow_redirects", True)
    return httpx.Client(transport=httpx.MockTransport(handler), **kwargs)


class StubResolver:
    """Resolver returning mapped URLs, or the input unchanged."""

    def __init__(self, mapping: dict[str, str] | None = None) -> None:
        self.mapping = mapping or {}
        self.calls: list[str] = []
        self._lock = Lock()

    def resolve(self, url: str) -> str:
        with self._lock:
            self.calls.append(url)
        return self.mapping.get(url, url)

    def close(self) -> None:
        return


class StubExtractor:
    """Extractor producing deterministic articles; URLs in ``failing`` raise."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: list[str] = []
        self._lock = Lock()

    def extract(self, url: str) -> ExtractedArticle:
        with self._lock:
            self.calls.append(url)
        if url in self.failing:
            raise ExtractionError(f"Failed to download page: {url}", url=url)
        slug = url.rstrip("/").rsplit("/", 1)[-1]
        return ExtractedArticle(
            url=url,
            title=f"Article {slug}",
            author="Reporter",
            published_at="2024-01-01T00:00:00Z",
            paragraphs=[f"Body of {slug}", "Second paragraph"],
        )

    def close(self) -> None:
        return


class FakeFeedFetcher:
    """Feed fetcher returning canned items per query string."""

    def __init__(self, responses: dict[str, list[FeedItem]] | None = None, dropped: int = 0) -> None:
        self.responses = responses or {}
        self.dropped = dropped
        self.queries: list[str] = []
        self.last_dropped = 0

    def fetch(self, query: str) -> list[FeedItem]:
        self.queries.append(query)
        self.last_dropped = self.dropped
        return list(self.responses.get(query, []))

    def close(self) -> None:
        return


@pytest.fixture
def rss_payload() -> Callable[[Iterable[dict[str, Any]]], bytes]:
    return build_rss


@pytest.fixture
def feed_item() -> Callable[..., FeedItem]:
    return make_item


@pytest.fixture
def at_utc() -> Callable[..., datetime]:
    return utc


@pytest.fixture
def http_client() -> Callable[..., httpx.Client]:
    return mock_client


@pytest.fixture
def stubs() -> SimpleNamespace:
    return SimpleNamespace(resolver=StubResolver, extractor=StubExtractor, fetcher=FakeFeedFetcher)


@pytest.fixture
def harvest_config(tmp_path: Path) -> HarvestConfig:
    config = HarvestConfig()
    output = config.output.model_copy(update={"output_dir": tmp_path / "outputs"})
    fanout = config.fanout.model_copy(update={"delay_range": (0.0, 0.0)})
    return config.model_copy(update={"output": output, "fanout": fanout})


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("NEWS_HARVESTER_HOME", str(tmp_path))
    return ConfigRepository(ConfigLocator(project_root=tmp_path))
