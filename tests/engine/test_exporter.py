from __future__ import annotations

import json
import threading
from datetime import datetime, timezone

import pytest

from news_harvester.engine import ArticleWriter, ExtractedArticle, ManifestBuilder, RunOutcome
from news_harvester.engine.exporter import slugify
from news_harvester.engine.exporter.file_exporter import last_path_segment
from news_harvester.exceptions import PersistError

FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_slugify() -> None:
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("  Café déjà vu  ") == "cafe-deja-vu"
    assert slugify("ঢাকায় বন্যা") == ""
    assert slugify(None) == ""
    assert slugify("one two three four", max_length=9) == "one-two-t"
    assert slugify("one two three", max_length=8) == "one-two"


def test_last_path_segment() -> None:
    assert last_path_segment("https://p.example/bangladesh/177928") == "177928"
    assert last_path_segment("https://p.example/news/story-name/") == "story-name"
    assert last_path_segment("https://p.example") == ""


def test_stem_falls_back_to_url_then_default(tmp_path) -> None:
    writer = ArticleWriter(tmp_path)

    assert writer.stem_for(ExtractedArticle(url="https://p.example/a", title="Flood Update")) == "flood-update"
    assert writer.stem_for(ExtractedArticle(url="https://p.example/news/177928", title="বন্যা")) == "177928"
    assert writer.stem_for(ExtractedArticle(url="https://p.example/", title=None)) == "article"


def test_write_article_payload(tmp_path) -> None:
    writer = ArticleWriter(tmp_path / "out")
    article = ExtractedArticle(url="https://p.example/a", title="ঢাকা Floods", paragraphs=["প্রথম লাইন", "Second"])

    path = writer.write(article)

    assert path == tmp_path / "out" / "floods.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["paragraphs"] == ["প্রথম লাইন", "Second"]
    assert payload["wordCount"] == 3
    assert "প্রথম" in path.read_text(encoding="utf-8")


def test_overwrite_collision_last_write_wins(tmp_path) -> None:
    writer = ArticleWriter(tmp_path)
    first = writer.write(ExtractedArticle(url="https://p.example/1", title="Same Title", paragraphs=["one"]))
    second = writer.write(ExtractedArticle(url="https://p.example/2", title="Same Title", paragraphs=["two"]))

    assert first == second
    assert json.loads(second.read_text(encoding="utf-8"))["url"] == "https://p.example/2"
    assert len(list(tmp_path.glob("*.json"))) == 1


def test_suffix_collision_keeps_both(tmp_path) -> None:
    writer = ArticleWriter(tmp_path, on_collision="suffix")
    paths = [
        writer.write(ExtractedArticle(url=f"https://p.example/{index}", title="Same Title"))
        for index in range(3)
    ]

    assert [path.name for path in paths] == ["same-title.json", "same-title-2.json", "same-title-3.json"]


def test_unknown_collision_policy_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        ArticleWriter(tmp_path, on_collision="rename")


def test_write_into_unusable_directory_raises(tmp_path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")
    writer = ArticleWriter(blocker)

    with pytest.raises(PersistError):
        writer.write(ExtractedArticle(url="https://p.example/a", title="A"))


def _outcomes(tmp_path, feed_item, at_utc):
    writer = ArticleWriter(tmp_path)
    saved_item = feed_item(title="Feed title", link="https://t.example/1", published=at_utc(2024, 7, 3), source="Star")
    article = ExtractedArticle(url="https://p.example/story", title=None, paragraphs=["four words right here"])
    path = writer.write(article)
    failed_item = feed_item(title="Broken", link="https://t.example/2")
    return [
        RunOutcome.success(saved_item, "https://p.example/story", article, path),
        RunOutcome.failure(failed_item, "Failed to download page: https://t.example/2"),
    ]


def test_manifest_build(tmp_path, feed_item, at_utc) -> None:
    builder = ManifestBuilder(tmp_path, clock=lambda: FIXED_NOW)

    manifest = builder.build("floods", _outcomes(tmp_path, feed_item, at_utc))

    assert manifest.requested == 2
    assert manifest.saved == 1
    assert manifest.failed == 1
    assert manifest.requested == manifest.saved + manifest.failed
    assert manifest.files == [
        {
            "title": "Feed title",
            "resolvedUrl": "https://p.example/story",
            "publishedAt": "2024-07-03T00:00:00+00:00",
            "source": "Star",
            "outPath": "story.json",
            "words": 4,
        }
    ]
    assert manifest.errors == [
        {
            "title": "Broken",
            "trackingLink": "https://t.example/2",
            "message": "Failed to download page: https://t.example/2",
        }
    ]


def test_manifest_write(tmp_path, feed_item, at_utc) -> None:
    builder = ManifestBuilder(tmp_path, clock=lambda: FIXED_NOW)
    manifest = builder.build("floods", _outcomes(tmp_path, feed_item, at_utc))

    path = builder.write(manifest)

    assert path == tmp_path / "_manifest.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["query"] == "floods"
    assert payload["generatedAt"] == "2025-01-02T03:04:05+00:00"
    assert set(payload) == {"query", "requested", "saved", "failed", "generatedAt", "files", "errors"}


def test_empty_manifest(tmp_path) -> None:
    builder = ManifestBuilder(tmp_path, filename="run.json", clock=lambda: FIXED_NOW)

    manifest = builder.build("nothing", [])
    path = builder.write(manifest)

    assert (manifest.requested, manifest.saved, manifest.failed) == (0, 0, 0)
    assert path.name == "run.json"
    assert json.loads(path.read_text(encoding="utf-8"))["files"] == []


def test_concurrent_overwrite_never_leaves_partial_json(tmp_path) -> None:
    writer = ArticleWriter(tmp_path)
    long_article = ExtractedArticle(
        url="https://p.example/long", title="Same Title", paragraphs=[f"paragraph {index} " * 20 for index in range(200)]
    )
    short_article = ExtractedArticle(url="https://p.example/short", title="Same Title", paragraphs=["x"])
    target = tmp_path / "same-title.json"

    for _ in range(50):
        barrier = threading.Barrier(2)

        def write(article: ExtractedArticle) -> None:
            barrier.wait()
            writer.write(article)

        threads = [threading.Thread(target=write, args=(article,)) for article in (long_article, short_article)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        payload = json.loads(target.read_text(encoding="utf-8"))
        assert payload["url"] in {"https://p.example/long", "https://p.example/short"}

    assert [path.name for path in tmp_path.iterdir()] == ["same-title.json"]
