"""Per-article JSON persistence with slug based file names."""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from threading import Lock
from typing import Literal
from urllib.parse import urlparse

from ..extractor import ExtractedArticle
from .base import BaseExporter

CollisionPolicy = Literal["overwrite", "suffix"]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str | None, max_length: int = 120) -> str:
    """Lowercase ASCII slug; non-alphanumeric runs collapse to a single '-'."""

    if not value:
        return ""
    folded = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", folded.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def last_path_segment(url: str) -> str:
    segments = [part for part in urlparse(url).path.split("/") if part]
    return segments[-1] if segments else ""


class ArticleWriter(BaseExporter):
    """Serialize each extracted article to its own file in the output directory.

    Under ``overwrite`` two articles slugging to the same stem share a path and
    the last write wins. Under ``suffix`` stems are reserved per writer and
    repeats get ``-2``, ``-3``... appended.
    """

    def __init__(
        self,
        output_dir: Path,
        max_stem_length: int = 120,
        on_collision: CollisionPolicy = "overwrite",
    ) -> None:
        super().__init__(output_dir)
        if on_collision not in ("overwrite", "suffix"):
            raise ValueError(f"Unsupported collision policy: {on_collision}")
        self.max_stem_length = max_stem_length
        self.on_collision = on_collision
        self._reserved: set[str] = set()
        self._lock = Lock()

    def stem_for(self, article: ExtractedArticle) -> str:
        return (
            slugify(article.title, self.max_stem_length)
            or slugify(last_path_segment(article.url), self.max_stem_length)
            or "article"
        )

    def path_for(self, article: ExtractedArticle) -> Path:
        stem = self.stem_for(article)
        if self.on_collision == "suffix":
            stem = self._reserve(stem)
        return self.output_dir / f"{stem}.json"

    def write(self, article: ExtractedArticle) -> Path:
        return self.write_json(self.path_for(article), article.to_payload())

    def _reserve(self, stem: str) -> str:
        with self._lock:
            candidate = stem
            counter = 2
            while candidate in self._reserved:
                suffix = f"-{counter}"
                candidate = stem[: self.max_stem_length - len(suffix)] + suffix
                counter += 1
            self._reserved.add(candidate)
            return candidate


__all__ = ["ArticleWriter", "CollisionPolicy", "last_path_segment", "slugify"]
