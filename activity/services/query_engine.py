"""Query/filter engine: store retrieval, free-text search and day grouping."""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Callable, Iterable, Sequence

import structlog

from db.models import HistoryEntries
from activity.services._helpers import as_utc, day_start, next_day_start, parse_day, resolve_zone
from activity.services.history_store import HistoryFilter, HistoryStore

logger = structlog.get_logger(__name__)

# Select controls send "all" for an unfiltered axis.
_ANY: frozenset[str] = frozenset({"", "all", "*"})


def _axis(value: str | None) -> str | None:
    if value is None:
        return None
    text: str = value.strip()
    return None if text.lower() in _ANY else text


def _bound(resolve: Callable[[date, tzinfo], datetime], day: date | None, zone: tzinfo) -> datetime | None:
    """UTC instant for a day bound; days at the edge of the calendar mean no bound."""
    if day is None:
        return None
    try:
        return resolve(day, zone)
    except OverflowError:
        logger.debug("Ignoring out-of-range date bound", day=day.isoformat())
        return None


@dataclass(frozen=True)
class HistoryCriteria:
    """What a viewer asked for. Every axis is optional."""

    search: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    action: str | None = None
    date_from: str | date | None = None
    date_to: str | date | None = None
    timezone: str | None = None
    limit: int | None = None

    @property
    def has_active_filters(self) -> bool:
        return any(
            (
                (self.search or "").strip(),
                _axis(self.entity_type),
                _axis(self.action),
                parse_day(self.date_from),
                parse_day(self.date_to),
            )
        )


@dataclass
class DayGroup:
    day: date
    entries: list[HistoryEntries] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entries)


@dataclass
class FilterOptions:
    entity_types: list[str]
    actions: list[str]


def matches_search(entry: HistoryEntries, term: str | None) -> bool:
    """Case-insensitive substring match on name, action, user or type."""
    if not term:
        return True
    needle: str = term.casefold()
    haystack = (entry.entity_name, entry.action, entry.user_name, entry.entity_type)
    return any(needle in value.casefold() for value in haystack if value)


def local_day(entry: HistoryEntries, zone: tzinfo) -> date:
    return as_utc(entry.created_at).astimezone(zone).date()


def group_by_day(entries: Iterable[HistoryEntries], zone: tzinfo) -> list[DayGroup]:
    """Bucket entries by local calendar day, newest day first.

    Entries keep their incoming order inside each day.
    """
    groups: dict[date, DayGroup] = {}
    for entry in entries:
        day: date = local_day(entry, zone)
        group: DayGroup | None = groups.get(day)
        if group is None:
            group = groups[day] = DayGroup(day)
        group.entries.append(entry)
    return sorted(groups.values(), key=lambda g: g.day, reverse=True)


class QueryEngine:
    """Composes store retrieval with search and calendar-day grouping."""

    def __init__(
        self,
        store: HistoryStore,
        default_zone: tzinfo,
        default_limit: int | None = None,
    ):
        self.store = store
        self.default_zone = default_zone
        self.default_limit = default_limit

    def zone_for(self, criteria: HistoryCriteria) -> tzinfo:
        if criteria.timezone:
            return resolve_zone(criteria.timezone, fallback=str(self.default_zone))
        return self.default_zone

    def to_filter(self, criteria: HistoryCriteria) -> HistoryFilter:
        """Structural part of the criteria, with day bounds resolved in the viewer's zone."""
        zone: tzinfo = self.zone_for(criteria)
        first: date | None = parse_day(criteria.date_from)
        last: date | None = parse_day(criteria.date_to)
        return HistoryFilter(
            entity_type=_axis(criteria.entity_type),
            entity_id=_axis(criteria.entity_id),
            action=_axis(criteria.action),
            since=_bound(day_start, first, zone),
            until=_bound(next_day_start, last, zone),
            limit=criteria.limit or self.default_limit,
        )

    def filter(self, criteria: HistoryCriteria) -> list[HistoryEntries]:
        """Entries passing every filter, in store order (newest first)."""
        candidates: Sequence[HistoryEntries] = self.store.query(self.to_filter(criteria))
        term: str = (criteria.search or "").strip()
        matched: list[HistoryEntries] = [e for e in candidates if matches_search(e, term)]
        logger.debug(
            "History filtered",
            candidates=len(candidates),
            matched=len(matched),
            search=bool(term),
        )
        return matched

    def find(self, criteria: HistoryCriteria) -> list[DayGroup]:
        return group_by_day(self.filter(criteria), self.zone_for(criteria))

    def filter_options(self) -> FilterOptions:
        """Distinct entity types and actions across all entries, ignoring filters."""
        return FilterOptions(
            entity_types=self.store.distinct_entity_types(),
            actions=self.store.distinct_actions(),
        )
