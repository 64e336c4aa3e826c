"""Cross-query deduplication of feed items."""

from __future__ import annotations

from typing import Iterable, List, Set

from .feed import FeedItem, UniqueItem


def dedup_key(item: FeedItem) -> str:
    """Return the first non-empty of publisher URL, tracking link and title."""

    for candidate in (item.publisher_url, item.tracking_link, item.title):
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def deduplicate(items: Iterable[FeedItem]) -> List[UniqueItem]:
    """
    Keep the first occurrence per dedup key, then order newest first.

    The sort is stable, so re-running on an already unique, sorted sequence
    returns it unchanged.
    """
    seen: Set[str] = set()
    out: List[UniqueItem] = []
    for item in items:
        key = dedup_key(item)
        if key in seen:
            continue
        seen.add(key)
        out.append(item)
    out.sort(key=lambda it: it.published_at, reverse=True)
    return out


__all__ = ["dedup_key", "deduplicate"]
