"""Configuration loading helpers for news-harvester."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import HarvestConfig

CONFIG_FILENAME = "harvest_config.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("NEWS_HARVESTER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: HarvestConfig | None = None

    def load(self, path: Path | None = None) -> HarvestConfig:
        """Load the configuration, writing defaults on first use.

        An explicit ``path`` bypasses the cache and is never written back.
        Relative output directories are anchored at the project root.
        """

        if path is not None:
            if not path.exists():
                raise FileNotFoundError(f"Configuration not found: {path}")
            return self._anchor(HarvestConfig.model_validate(_read_file(path)))
        if self._cache is not None:
            return self._cache
        config_path = self.locator.config_path()
        if config_path.exists():
            config = HarvestConfig.model_validate(_read_file(config_path))
        else:
            config = HarvestConfig()
            self.save(config)
        self._cache = self._anchor(config)
        return self._cache

    def save(self, config: HarvestConfig, path: Path | None = None) -> Path:
        target = path or self.locator.config_path()
        _write_file(target, config.model_dump(mode="json"))
        if path is None:
            self._cache = None
        return target

    def _anchor(self, config: HarvestConfig) -> HarvestConfig:
        output_dir = config.output.output_dir
        if output_dir.is_absolute():
            return config
        output = config.output.model_copy(
            update={"output_dir": (self.locator.project_root / output_dir).resolve()}
        )
        return config.model_copy(update={"output": output})


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_FILENAME"]
