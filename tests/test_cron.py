"""Tests for cron expression helpers."""

from datetime import datetime, timezone

import pytest

from procwatch.core.errors import InvalidInputError
from procwatch.engine.cron import describe, next_run, next_runs, parse_cron


@pytest.mark.parametrize(
    "expression",
    ["* * * *", "61 * * * *", "0 24 * * *", "0 0 0 * *", "0 0 * 13 *", "*/0 * * * *", "a b c d e"],
)
def test_invalid_expressions_are_rejected(expression: str) -> None:
    with pytest.raises(InvalidInputError):
        parse_cron(expression)


def test_next_runs_every_fifteen_minutes() -> None:
    after = datetime(2026, 1, 5, 10, 7, tzinfo=timezone.utc)

    runs = next_runs("*/15 * * * *", after, count=3, tz="UTC")

    assert runs == [
        datetime(2026, 1, 5, 10, 15, tzinfo=timezone.utc),
        datetime(2026, 1, 5, 10, 30, tzinfo=timezone.utc),
        datetime(2026, 1, 5, 10, 45, tzinfo=timezone.utc),
    ]


def test_next_run_honours_timezone() -> None:
    # 02:00 in New York during winter is 07:00 UTC
    after = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

    assert next_run("0 2 * * *", after, tz="America/New_York") == datetime(
        2026, 1, 6, 7, 0, tzinfo=timezone.utc
    )


def test_weekday_field_selects_sundays() -> None:
    # 2026-01-05 is a Monday
    after = datetime(2026, 1, 5, 0, 0, tzinfo=timezone.utc)

    runs = next_runs("0 0 * * 0", after, count=2, tz="UTC")

    assert [r.date().isoformat() for r in runs] == ["2026-01-11", "2026-01-18"]


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        next_runs("0 0 * * *", datetime(2026, 1, 1, tzinfo=timezone.utc), tz="Mars/Olympus")


def test_describe_known_and_custom() -> None:
    assert describe("0 0 * * *") == "Daily at midnight"
    assert describe("0  *  * * *") == "Every hour"
    assert describe("5 4 * * 2") == "Custom schedule"
