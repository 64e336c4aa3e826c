"""RSS search fetching and feed entry mapping."""

from __future__ import annotations

import calendar
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import urlencode

import feedparser
import httpx
import structlog
from selectolax.parser import HTMLParser

from ..config import FeedConfig
from ..exceptions import FeedError

# Raised by feedparser for feeds that still parse correctly
_BENIGN_BOZO = (feedparser.CharacterEncodingOverride,)


@dataclass(frozen=True, slots=True)
class FeedItem:
    """One entry returned by a single feed search."""

    title: str
    tracking_link: str
    published_at: datetime
    source: str | None = None
    publisher_url: str | None = None

    @property
    def year(self) -> int:
        return self.published_at.year

    @property
    def month(self) -> int:
        return self.published_at.month

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.published_at.month]

    @property
    def day(self) -> int:
        return self.published_at.day

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "link": self.tracking_link,
            "publisherUrl": self.publisher_url,
            "source": self.source,
            "pubDate": self.published_at.isoformat(),
            "year": self.year,
            "month": self.month_name,
            "day": f"{self.day:02d}",
        }


# A feed item that survived deduplication
UniqueItem = FeedItem


def _entry_datetime(entry: Mapping[str, Any]) -> datetime | None:
    """Return the entry's publish time as UTC, preferring published over updated."""

    for key in ("published_parsed", "updated_parsed"):
        value = entry.get(key)
        if isinstance(value, time.struct_time):
            try:
                return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
            except (OverflowError, ValueError):
                continue
    return None


def _entry_source(entry: Mapping[str, Any]) -> str | None:
    source = entry.get("source") or {}
    if isinstance(source, Mapping):
        title = source.get("title")
        if isinstance(title, str) and title.strip():
            return title.strip()
    return None


def _description_href(entry: Mapping[str, Any]) -> str | None:
    description = entry.get("summary") or entry.get("description")
    if not isinstance(description, str) or "href" not in description:
        return None
    node = HTMLParser(description).css_first("a[href]")
    if node is None:
        return None
    href = (node.attributes.get("href") or "").strip()
    return href or None


def parse_entry(entry: Mapping[str, Any]) -> FeedItem | None:
    """Map a raw feedparser entry to a FeedItem, or None when it carries no usable date."""

    published_at = _entry_datetime(entry)
    if published_at is None:
        return None
    return FeedItem(
        title=(entry.get("title") or "").strip(),
        tracking_link=(entry.get("link") or "").strip(),
        published_at=published_at,
        source=_entry_source(entry),
        publisher_url=_description_href(entry),
    )


class FeedFetcher:
    """Issue one search against the RSS source and return structured entries."""

    def __init__(
        self,
        config: FeedConfig | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config or FeedConfig()
        self._client = client or httpx.Client(follow_redirects=True, timeout=self.config.timeout)
        self.logger = logger or structlog.get_logger("news_harvester.feed")
        self.last_dropped = 0

    def close(self) -> None:
        self._client.close()

    def build_url(self, query: str) -> str:
        params = {
            "q": query,
            "hl": self.config.language,
            "gl": self.config.country,
            "ceid": self.config.edition,
        }
        return f"{self.config.base_url}?{urlencode(params)}"

    def fetch(self, query: str) -> list[FeedItem]:
        """Return the feed items for ``query``; an unreachable or malformed feed yields []."""

        self.last_dropped = 0
        try:
            entries = self._fetch_entries(query)
        except FeedError as exc:
            self.logger.warning("feed_fetch_failed", query=query, error=str(exc))
            return []

        items: list[FeedItem] = []
        for entry in entries:
            item = parse_entry(entry)
            if item is None:
                self.last_dropped += 1
                continue
            items.append(item)
        if self.last_dropped:
            self.logger.debug("feed_entries_undated", query=query, dropped=self.last_dropped)
        self.logger.info("feed_fetched", query=query, items=len(items))
        return items

    def _fetch_entries(self, query: str) -> list[Mapping[str, Any]]:
        url = self.build_url(query)
        try:
            response = self._client.get(url, timeout=self.config.timeout)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FeedError(f"Failed to fetch feed: {url} ({exc})") from exc

        feed = feedparser.parse(response.content)
        if getattr(feed, "bozo", 0):
            exc = getattr(feed, "bozo_exception", None)
            if not isinstance(exc, _BENIGN_BOZO):
                msg = f"Invalid RSS feed: {url}"
                if exc:
                    msg += f" ({exc})"
                raise FeedError(msg)

        entries = getattr(feed, "entries", None)
        if not isinstance(entries, list):
            raise FeedError(f"Feed has no entries: {url}")
        return entries


__all__ = ["FeedFetcher", "FeedItem", "UniqueItem", "parse_entry"]
