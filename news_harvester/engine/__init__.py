"""Engine components: feed fan-out, dedup, redirect resolution, extraction and persistence."""

from .dedup import dedup_key, deduplicate
from .extractor import ArticleExtractor, ExtractedArticle
from .fanout import FanoutResult, YearFanout, default_years
from .feed import FeedFetcher, FeedItem, UniqueItem
from .redirect import RedirectResolver
from .thread_pool import ExtractionPool, RunOutcome
from .exporter import ArticleWriter, Manifest, ManifestBuilder

__all__ = [
    "ArticleExtractor",
    "ArticleWriter",
    "ExtractedArticle",
    "ExtractionPool",
    "FanoutResult",
    "FeedFetcher",
    "FeedItem",
    "Manifest",
    "ManifestBuilder",
    "RedirectResolver",
    "RunOutcome",
    "UniqueItem",
    "YearFanout",
    "dedup_key",
    "deduplicate",
    "default_years",
]
