"""structlog setup: JSON lines on the console, a global harvest log and per-query run logs."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

ROOT_LOGGER = "news_harvester"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
RUNS_DIRNAME = "runs"

_LOGGING_INITIALISED = False


def _default_log_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "logs"


def _json_formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(JSON_FORMAT)


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "formatter": "json",
        "encoding": "utf-8",
    }


def logging_dict(log_dir: Path, level: str) -> dict[str, Any]:
    """Build the dictConfig payload; harvest.log gets INFO+, error.log only errors."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": _json_formatter}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "harvest_file": _file_handler(log_dir / "harvest.log", "INFO"),
            "error_file": _file_handler(log_dir / "error.log", "ERROR"),
        },
        "loggers": {
            ROOT_LOGGER: {
                "handlers": ["console", "harvest_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure stdlib handlers once and route structlog through them."""

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        log_dir = log_dir or _default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(logging_dict(log_dir, "DEBUG" if verbose else "INFO"))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                # JSON rendering happens in the stdlib formatter
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(ROOT_LOGGER)


def run_log_path(log_dir: Path, name: str) -> Path:
    return log_dir / RUNS_DIRNAME / f"{name}.log"


def run_logger(name: str, query: str, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Return a logger bound to ``query``.

    With ``log_dir`` set, the events are also appended to ``runs/<name>.log``
    in addition to the global handlers they propagate to.
    """

    logger_name = f"{ROOT_LOGGER}.run.{name}"
    if log_dir is not None:
        path = run_log_path(log_dir, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        py_logger = logging.getLogger(logger_name)
        if not any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(path)
            for handler in py_logger.handlers
        ):
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setFormatter(_json_formatter())
            handler.setLevel(logging.INFO)
            py_logger.addHandler(handler)
    return structlog.get_logger(logger_name).bind(query=query)


def available_run_logs(log_dir: Path) -> list[Path]:
    runs_dir = log_dir / RUNS_DIRNAME
    if not runs_dir.exists():
        return []
    return sorted(runs_dir.glob("*.log"))


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = [
    "available_run_logs",
    "configure_logging",
    "logging_dict",
    "run_log_path",
    "run_logger",
    "tail_log",
]
