"""Publisher page fetching and heuristic full-text extraction."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx
import structlog
from selectolax.parser import HTMLParser, Node

from ..exceptions import ExtractionError
from ..infra import UserAgentPool

_WHITESPACE = re.compile(r"\s+")

# Most specific article-body containers first, generic content areas last
BODY_SELECTORS: tuple[str, ...] = (
    "article .entry-content",
    "article .post-content",
    ".single-post .entry-content",
    ".td-post-content",
    ".tdb-block-inner .tdb-block-content",
    ".post-content",
    "article",
    ".content-area",
    ".main-content",
)

BLOCK_TAGS = frozenset({"h2", "h3", "p"})


@dataclass(frozen=True)
class FieldRule:
    """CSS selector plus the attribute to read; ``None`` reads the node text."""

    selector: str
    attribute: str | None = None

    def apply(self, parser: HTMLParser) -> str | None:
        node = parser.css_first(self.selector)
        if node is None:
            return None
        if self.attribute:
            value = node.attributes.get(self.attribute)
        else:
            value = node.text()
        return clean_text(value) or None


TITLE_RULES: tuple[FieldRule, ...] = (
    FieldRule("meta[property='og:title']", "content"),
    FieldRule("h1.entry-title"),
    FieldRule("h1"),
    FieldRule("title"),
)

AUTHOR_RULES: tuple[FieldRule, ...] = (
    FieldRule("meta[name='author']", "content"),
    FieldRule("[class*='author'] a"),
    FieldRule("[class*='author']"),
)

PUBLISHED_RULES: tuple[FieldRule, ...] = (
    FieldRule("meta[property='article:published_time']", "content"),
    FieldRule("time[datetime]", "datetime"),
    FieldRule("time"),
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def clean_text(value: str | None) -> str:
    return _WHITESPACE.sub(" ", value).strip() if value else ""


def first_match(parser: HTMLParser, rules: Sequence[FieldRule]) -> str | None:
    for rule in rules:
        value = rule.apply(parser)
        if value:
            return value
    return None


def count_words(text: str) -> int:
    return len(text.split())


@dataclass
class ExtractedArticle:
    """Readable content derived from one publisher page."""

    url: str
    title: str | None = None
    author: str | None = None
    published_at: str | None = None
    paragraphs: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(self.paragraphs)

    @property
    def word_count(self) -> int:
        return count_words(self.text)

    def to_payload(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "author": self.author,
            "publishedAt": self.published_at,
            "wordCount": self.word_count,
            "paragraphs": list(self.paragraphs),
            "text": self.text,
        }


def select_scope(parser: HTMLParser, selectors: Sequence[str] = BODY_SELECTORS) -> tuple[str | None, Node | None]:
    """Return the first selector that matches and its first node, else the document body."""

    for selector in selectors:
        node = parser.css_first(selector)
        if node is not None:
            return selector, node
    return None, parser.body or parser.root


def collect_blocks(scope: Node | None) -> list[str]:
    """Collect h2/h3/p text below ``scope`` in document order."""

    if scope is None:
        return []
    blocks: list[str] = []
    # "*" yields nodes in document order
    for node in scope.css("*"):
        if node.tag not in BLOCK_TAGS:
            continue
        text = clean_text(node.text())
        if text:
            blocks.append(text)
    return blocks


class ArticleExtractor:
    """Fetch a resolved URL and derive title, author, date and body paragraphs."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agents: UserAgentPool | None = None,
        accept_language: str = "en-US,en;q=0.9",
        client: httpx.Client | None = None,
        selectors: Sequence[str] = BODY_SELECTORS,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agents = user_agents or UserAgentPool()
        self.accept_language = accept_language
        self.selectors = tuple(selectors)
        self._client = client or httpx.Client(follow_redirects=True, timeout=timeout)
        self.logger = logger or structlog.get_logger("news_harvester.extractor")

    def close(self) -> None:
        self._client.close()

    def headers(self) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self.user_agents.get()
        headers["Accept-Language"] = self.accept_language
        return headers

    def fetch(self, url: str) -> str:
        try:
            response = self._client.get(url, headers=self.headers(), timeout=self.timeout)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ExtractionError(f"Failed to download page: {url} ({exc})", url=url) from exc
        return response.text

    def parse(self, html: str, url: str) -> ExtractedArticle:
        parser = HTMLParser(html)
        selector, scope = select_scope(parser, self.selectors)
        paragraphs = collect_blocks(scope)
        if not paragraphs:
            # The scope matched but held no paragraph tags
            paragraphs = [text for text in (clean_text(node.text()) for node in parser.css("p")) if text]
        self.logger.debug(
            "article_parsed",
            url=url,
            scope=selector or "body",
            paragraphs=len(paragraphs),
        )
        return ExtractedArticle(
            url=url,
            title=first_match(parser, TITLE_RULES),
            author=first_match(parser, AUTHOR_RULES),
            published_at=first_match(parser, PUBLISHED_RULES),
            paragraphs=paragraphs,
        )

    def extract(self, url: str) -> ExtractedArticle:
        return self.parse(self.fetch(url), url)


__all__ = [
    "AUTHOR_RULES",
    "ArticleExtractor",
    "BODY_SELECTORS",
    "ExtractedArticle",
    "FieldRule",
    "PUBLISHED_RULES",
    "TITLE_RULES",
    "clean_text",
    "collect_blocks",
    "count_words",
    "first_match",
    "select_scope",
]
