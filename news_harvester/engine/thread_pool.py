"""Bounded-concurrency execution of the resolve, extract and persist steps."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Sequence

import structlog

from .extractor import ArticleExtractor, ExtractedArticle
from .feed import FeedItem
from .redirect import RedirectResolver

if TYPE_CHECKING:
    from .exporter.file_exporter import ArticleWriter


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Result of processing one item; either saved or failed."""

    ok: bool
    item: FeedItem
    resolved_url: str | None = None
    extracted: ExtractedArticle | None = None
    out_path: Path | None = None
    error: str | None = None

    @classmethod
    def success(
        cls, item: FeedItem, resolved_url: str, extracted: ExtractedArticle, out_path: Path
    ) -> "RunOutcome":
        return cls(ok=True, item=item, resolved_url=resolved_url, extracted=extracted, out_path=out_path)

    @classmethod
    def failure(cls, item: FeedItem, error: str) -> "RunOutcome":
        return cls(ok=False, item=item, error=error)


class ExtractionPool:
    """Run each item through its own worker slot, at most ``concurrency`` at a time.

    One item's failure never affects another: every exception raised while
    extracting or persisting becomes a failed RunOutcome. A raising ``on_outcome``
    callback is logged and does not stop the run. ``run`` returns only
    after every item has produced exactly one outcome, in completion order.
    """

    def __init__(
        self,
        resolver: RedirectResolver,
        extractor: ArticleExtractor,
        writer: "ArticleWriter",
        concurrency: int = 5,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.resolver = resolver
        self.extractor = extractor
        self.writer = writer
        self.concurrency = concurrency
        self.logger = logger or structlog.get_logger("news_harvester.pool")

    def run(
        self,
        items: Sequence[FeedItem],
        on_outcome: Callable[[RunOutcome], None] | None = None,
    ) -> list[RunOutcome]:
        outcomes: list[RunOutcome] = []
        if not items:
            return outcomes
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="harvest") as executor:
            futures: list[Future[RunOutcome]] = [executor.submit(self.process, item) for item in items]
            for future in as_completed(futures):
                outcome = future.result()
                outcomes.append(outcome)
                if on_outcome is not None:
                    try:
                        on_outcome(outcome)
                    except Exception as exc:  # noqa: BLE001
                        self.logger.warning("outcome_callback_failed", title=outcome.item.title, error=str(exc))
        self.logger.info(
            "pool_complete",
            requested=len(items),
            saved=sum(1 for outcome in outcomes if outcome.ok),
            failed=sum(1 for outcome in outcomes if not outcome.ok),
        )
        return outcomes

    def process(self, item: FeedItem) -> RunOutcome:
        target = item.publisher_url or item.tracking_link
        try:
            resolved = self.resolver.resolve(target)
            article = self.extractor.extract(resolved)
            out_path = self.writer.write(article)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("item_failed", title=item.title, url=target, error=str(exc))
            return RunOutcome.failure(item, str(exc))
        self.logger.info("item_saved", url=resolved, path=str(out_path), words=article.word_count)
        return RunOutcome.success(item, resolved, article, out_path)


__all__ = ["ExtractionPool", "RunOutcome"]
