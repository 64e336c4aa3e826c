"""Shared JSON file persistence for per-run outputs."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ...exceptions import PersistError


class BaseExporter:
    """Write JSON documents into a single flat output directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def ensure_dir(self) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistError(f"Cannot create output directory {self.output_dir}: {exc}") from exc

    def relative(self, path: Path) -> str:
        return path.relative_to(self.output_dir).as_posix()

    def write_json(self, path: Path, payload: Any) -> Path:
        """Serialize ``payload`` next to ``path`` and move it into place.

        Concurrent writers of the same path never interleave: each rename
        replaces the whole file, so the last one to finish wins.
        """

        self.ensure_dir()
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
        except OSError as exc:
            raise PersistError(f"Failed to write {path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                json.dump(payload, stream, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistError(f"Failed to write {path}: {exc}") from exc
        return path


__all__ = ["BaseExporter"]
