"""Tests for activity.services._helpers."""

import json
from datetime import UTC, date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from activity.services._helpers import (
    as_utc,
    day_start,
    dump_json,
    next_day_start,
    now_utc,
    parse_day,
    resolve_zone,
)
from db.enums import HistoryAction


def test_now_utc_is_aware() -> None:
    assert now_utc().tzinfo is UTC


def test_as_utc_naive_and_aware() -> None:
    naive: datetime = datetime(2026, 10, 17, 12, 0)
    assert as_utc(naive) == datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
    ist: datetime = datetime(2026, 10, 17, 17, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert as_utc(ist) == datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


def test_parse_day() -> None:
    assert parse_day("2026-10-17") == date(2026, 10, 17)
    assert parse_day("2026-10-17T08:00:00Z") == date(2026, 10, 17)
    assert parse_day(date(2026, 1, 2)) == date(2026, 1, 2)
    assert parse_day(datetime(2026, 1, 2, 3, 4)) == date(2026, 1, 2)


def test_parse_day_malformed_is_none() -> None:
    assert parse_day(None) is None
    assert parse_day("") is None
    assert parse_day("17/10/2026") is None
    assert parse_day("2026-13-40") is None


def test_day_bounds_in_zone() -> None:
    zone: ZoneInfo = ZoneInfo("Asia/Kolkata")
    assert day_start(date(2026, 10, 17), zone) == datetime(2026, 10, 16, 18, 30, tzinfo=UTC)
    assert next_day_start(date(2026, 10, 17), zone) == datetime(2026, 10, 17, 18, 30, tzinfo=UTC)


def test_resolve_zone_fallback() -> None:
    assert str(resolve_zone("Europe/Paris")) == "Europe/Paris"
    assert str(resolve_zone("Nowhere/Special", fallback="Asia/Kolkata")) == "Asia/Kolkata"
    assert str(resolve_zone(None)) == "UTC"
    assert str(resolve_zone("a" * 5000, fallback="Asia/Kolkata")) == "Asia/Kolkata"


def test_dump_json_handles_non_serializable() -> None:
    raw: str = dump_json({"d": date(2026, 1, 1)})
    assert json.loads(raw)["d"] == "2026-01-01"


def test_action_classify() -> None:
    assert HistoryAction.classify("revision") is HistoryAction.REVISION
    assert HistoryAction.classify(" Delete ") is HistoryAction.DELETE
    assert HistoryAction.classify("merge") is HistoryAction.UPDATE
    assert HistoryAction.classify(None) is HistoryAction.UPDATE
