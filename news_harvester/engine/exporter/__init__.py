"""Flat-file outputs: per-article JSON and the run manifest."""

from .base import BaseExporter
from .file_exporter import ArticleWriter, slugify
from .manifest import Manifest, ManifestBuilder

__all__ = ["ArticleWriter", "BaseExporter", "Manifest", "ManifestBuilder", "slugify"]
