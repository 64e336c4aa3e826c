"""Pipeline entry point wiring fan-out, dedup, extraction and manifest output."""

from __future__ import annotations

import random
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

import structlog

from .config import HarvestConfig
from .engine import (
    ArticleExtractor,
    ArticleWriter,
    ExtractedArticle,
    ExtractionPool,
    FanoutResult,
    FeedFetcher,
    FeedItem,
    Manifest,
    ManifestBuilder,
    RedirectResolver,
    RunOutcome,
    YearFanout,
    deduplicate,
    default_years,
)
from .engine.exporter import slugify
from .exceptions import InvalidQueryError
from .infra import UserAgentPool
from .logging_conf import run_logger


def _validate_query(query: object) -> str:
    if not isinstance(query, str) or not query.strip():
        raise InvalidQueryError("query must be a non-empty string")
    return query.strip()


class Harvester:
    """Central coordinator for one topic harvest.

    The output directory is always an explicit value: either passed to
    ``run``/``extract_one`` or taken from ``config.output.output_dir``.
    """

    def __init__(
        self,
        config: HarvestConfig | None = None,
        *,
        feed_fetcher: FeedFetcher | None = None,
        resolver: RedirectResolver | None = None,
        extractor: ArticleExtractor | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        log_dir: Path | None = None,
    ) -> None:
        self.config = config or HarvestConfig()
        extraction = self.config.extraction
        ua_pool = UserAgentPool(extraction.user_agent_list)
        self.feed_fetcher = feed_fetcher or FeedFetcher(self.config.feed)
        self.resolver = resolver or RedirectResolver(
            timeout=extraction.redirect_timeout,
            headers={"User-Agent": ua_pool.get()},
        )
        self.extractor = extractor or ArticleExtractor(
            timeout=extraction.page_timeout,
            user_agents=ua_pool,
            accept_language=extraction.accept_language,
        )
        self.fanout = YearFanout(
            self.feed_fetcher,
            query_template=self.config.fanout.query_template,
            delay_range=self.config.fanout.delay_range,
            sleep=sleep,
            rng=rng,
        )
        self._clock = clock
        self.log_dir = log_dir
        self.last_fanout: FanoutResult | None = None
        self.logger = structlog.get_logger("news_harvester").bind(component="harvester")

    def close(self) -> None:
        self.feed_fetcher.close()
        self.resolver.close()
        self.extractor.close()

    def __enter__(self) -> "Harvester":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    def default_years(self) -> list[int]:
        return default_years(self.config.fanout.years_back)

    def collect(self, query: str, years: Sequence[int] | None = None) -> list[FeedItem]:
        """Fan the query out over ``years`` and return the unique items, newest first."""

        query = _validate_query(query)
        years = list(years) if years is not None else self.default_years()
        result = self.fanout.run(query, years)
        self.last_fanout = result
        unique = deduplicate(result.items)
        self.logger.info(
            "collect_complete",
            query=query,
            fetched=len(result.items),
            unique=len(unique),
            dropped_undated=result.dropped_undated,
        )
        return unique

    def run(
        self,
        query: str,
        years: Sequence[int] | None = None,
        limit: int | None = None,
        concurrency: int | None = None,
        output_dir: Path | None = None,
        on_outcome: Callable[[RunOutcome], None] | None = None,
        on_collected: Callable[[int], None] | None = None,
    ) -> Manifest:
        """Run the full pipeline and return the persisted manifest.

        Only an invalid query/parameter or a failed manifest write raise;
        per-item failures end up in ``manifest.errors``.
        """

        query = _validate_query(query)
        if limit is not None and limit < 0:
            raise InvalidQueryError("limit must be >= 0")
        workers = concurrency if concurrency is not None else self.config.extraction.concurrency
        if workers < 1:
            raise InvalidQueryError("concurrency must be >= 1")
        target_dir = Path(output_dir) if output_dir is not None else self.config.output.output_dir
        run_log = run_logger(slugify(query, 80) or "query", query, self.log_dir)
        run_log.info("run_started", output_dir=str(target_dir), concurrency=workers, limit=limit)

        items = self.collect(query, years)
        if limit is not None:
            items = items[:limit]
        if on_collected is not None:
            on_collected(len(items))

        pool = ExtractionPool(
            self.resolver, self.extractor, self._writer(target_dir), concurrency=workers, logger=run_log
        )
        outcomes = pool.run(items, on_outcome=on_outcome)

        builder = ManifestBuilder(target_dir, filename=self.config.output.manifest_name, clock=self._clock)
        manifest = builder.build(query, outcomes)
        path = builder.write(manifest)
        run_log.info(
            "run_complete",
            requested=manifest.requested,
            saved=manifest.saved,
            failed=manifest.failed,
            manifest=str(path),
        )
        return manifest

    def extract_one(self, url: str, output_dir: Path | None = None) -> tuple[ExtractedArticle, Path]:
        """Resolve, extract and persist a single URL; extraction errors propagate."""

        if not isinstance(url, str) or not url.strip():
            raise InvalidQueryError("url must be a non-empty string")
        target_dir = Path(output_dir) if output_dir is not None else self.config.output.output_dir
        resolved = self.resolver.resolve(url.strip())
        article = self.extractor.extract(resolved)
        path = self._writer(target_dir).write(article)
        self.logger.info("single_extracted", url=resolved, path=str(path), words=article.word_count)
        return article, path

    def _writer(self, output_dir: Path) -> ArticleWriter:
        return ArticleWriter(
            output_dir,
            max_stem_length=self.config.output.max_stem_length,
            on_collision=self.config.output.on_collision,
        )


__all__ = ["Harvester"]
