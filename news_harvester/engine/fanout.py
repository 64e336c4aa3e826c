"""Sequential year-by-year fan-out over the feed search."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Sequence

import structlog

from .feed import FeedFetcher, FeedItem


def default_years(count: int = 25, today: date | None = None) -> list[int]:
    """Return the ``count`` most recent years, newest first."""

    current = (today or date.today()).year
    return [current - offset for offset in range(count)]


@dataclass
class FanoutResult:
    """Concatenated items plus per-stage diagnostics."""

    items: list[FeedItem] = field(default_factory=list)
    dropped_undated: int = 0
    empty_years: list[int] = field(default_factory=list)


class YearFanout:
    """Drive one FeedFetcher call per year, pausing between calls.

    The loop is strictly sequential. Parallel searches get throttled by the
    upstream aggregator, so the delay acts as the throughput ceiling.
    ``sleep`` and ``rng`` are injectable so tests never wait on the wall clock.
    """

    def __init__(
        self,
        fetcher: FeedFetcher,
        query_template: str = "{query} {year}",
        delay_range: tuple[float, float] = (0.8, 1.2),
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.query_template = query_template
        self.delay_range = delay_range
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.logger = logger or structlog.get_logger("news_harvester.fanout")

    def query_for(self, query: str, year: int) -> str:
        return self.query_template.format(query=query, year=year)

    def run(self, query: str, years: Sequence[int] | None = None) -> FanoutResult:
        years = list(years) if years is not None else default_years()
        result = FanoutResult()
        for index, year in enumerate(years):
            if index:
                self._pause()
            items = self.fetcher.fetch(self.query_for(query, year))
            result.dropped_undated += self.fetcher.last_dropped
            if not items:
                result.empty_years.append(year)
            result.items.extend(items)
            self.logger.info("year_fetched", query=query, year=year, items=len(items))
        self.logger.info(
            "fanout_complete",
            query=query,
            years=len(years),
            items=len(result.items),
            dropped_undated=result.dropped_undated,
        )
        return result

    def _pause(self) -> None:
        low, high = self.delay_range
        if high <= 0:
            return
        self._sleep(self._rng.uniform(low, high))


__all__ = ["FanoutResult", "YearFanout", "default_years"]
