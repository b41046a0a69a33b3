"""Shared utilities for the service layer."""

import json
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger(__name__)


def now_utc() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC. Naive values (SQLite) are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def resolve_zone(name: str | None, fallback: str = "UTC") -> tzinfo:
    """Look up an IANA zone, falling back when the name is blank or unknown."""
    for candidate in (name, fallback):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate.strip())
        except (ZoneInfoNotFoundError, ValueError, OSError):
            logger.warning("Unknown time zone, ignoring", zone=candidate)
    return UTC


def parse_day(raw: str | date | None) -> date | None:
    """Parse a YYYY-MM-DD (or ISO datetime) bound. Unparsable input means no bound."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text: str = raw.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug("Ignoring malformed date bound", value=text)
        return None


def day_start(day: date, zone: tzinfo) -> datetime:
    """First instant of ``day`` in ``zone``, expressed in UTC."""
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(UTC)


def next_day_start(day: date, zone: tzinfo) -> datetime:
    return day_start(day + timedelta(days=1), zone)


def dump_json(obj: object, indent: int | None = None) -> str:
    return json.dumps(obj, default=str, ensure_ascii=False, indent=indent)
