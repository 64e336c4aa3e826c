"""Run-level manifest aggregation and persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from ..thread_pool import RunOutcome
from .base import BaseExporter


@dataclass
class Manifest:
    """Summary of one extraction batch."""

    query: str
    requested: int
    saved: int
    failed: int
    generated_at: datetime
    files: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "requested": self.requested,
            "saved": self.saved,
            "failed": self.failed,
            "generatedAt": self.generated_at.isoformat(),
            "files": list(self.files),
            "errors": list(self.errors),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManifestBuilder(BaseExporter):
    """Aggregate RunOutcomes into a Manifest and write it next to the articles."""

    def __init__(
        self,
        output_dir: Path,
        filename: str = "_manifest.json",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__(output_dir)
        self.filename = filename
        self._clock = clock or _utcnow

    @property
    def path(self) -> Path:
        return self.output_dir / self.filename

    def build(self, query: str, outcomes: Iterable[RunOutcome]) -> Manifest:
        files: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []
        requested = 0
        for outcome in outcomes:
            requested += 1
            item = outcome.item
            if outcome.ok:
                files.append(
                    {
                        "title": outcome.extracted.title or item.title,
                        "resolvedUrl": outcome.resolved_url,
                        "publishedAt": item.published_at.isoformat(),
                        "source": item.source,
                        "outPath": self._out_path(outcome.out_path),
                        "words": outcome.extracted.word_count,
                    }
                )
            else:
                errors.append(
                    {
                        "title": item.title,
                        "trackingLink": item.tracking_link,
                        "message": outcome.error,
                    }
                )
        return Manifest(
            query=query,
            requested=requested,
            saved=len(files),
            failed=len(errors),
            generated_at=self._clock(),
            files=files,
            errors=errors,
        )

    def write(self, manifest: Manifest) -> Path:
        return self.write_json(self.path, manifest.to_payload())

    def _out_path(self, path: Path | None) -> str | None:
        if path is None:
            return None
        try:
            return self.relative(path)
        except ValueError:
            return path.as_posix()


__all__ = ["Manifest", "ManifestBuilder"]
