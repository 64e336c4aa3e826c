from __future__ import annotations

import random
from datetime import date

from news_harvester.engine import YearFanout, default_years


def test_default_years_newest_first() -> None:
    assert default_years(3, today=date(2025, 6, 1)) == [2025, 2024, 2023]
    assert len(default_years()) == 25


def test_fanout_runs_years_in_order_with_delays(stubs, feed_item, at_utc) -> None:
    fetcher = stubs.fetcher(
        {
            "padma bridge 2024": [feed_item(title="A", link="https://x.example/a", published=at_utc(2024, 5, 1))],
            "padma bridge 2023": [feed_item(title="B", link="https://x.example/b", published=at_utc(2023, 5, 1))],
        }
    )
    delays: list[float] = []
    fanout = YearFanout(fetcher, sleep=delays.append, rng=random.Random(7))

    result = fanout.run("padma bridge", [2024, 2023, 2022])

    assert fetcher.queries == ["padma bridge 2024", "padma bridge 2023", "padma bridge 2022"]
    assert [item.title for item in result.items] == ["A", "B"]
    assert len(delays) == 2
    assert all(0.8 <= delay <= 1.2 for delay in delays)
    assert result.empty_years == [2022]


def test_fanout_continues_after_empty_year(stubs, feed_item) -> None:
    fetcher = stubs.fetcher({"topic 2021": [feed_item(title="Only")]}, dropped=1)
    fanout = YearFanout(fetcher, sleep=lambda _: None)

    result = fanout.run("topic", [2023, 2022, 2021])

    assert len(fetcher.queries) == 3
    assert [item.title for item in result.items] == ["Only"]
    assert result.empty_years == [2023, 2022]
    assert result.dropped_undated == 3


def test_fanout_single_year_never_sleeps(stubs) -> None:
    calls: list[float] = []
    fanout = YearFanout(stubs.fetcher(), sleep=calls.append)

    fanout.run("topic", [2020])

    assert calls == []


def test_custom_query_template(stubs) -> None:
    fetcher = stubs.fetcher()
    fanout = YearFanout(fetcher, query_template="{query} after:{year}-01-01", sleep=lambda _: None)

    fanout.run("election", [2018])

    assert fetcher.queries == ["election after:2018-01-01"]
