"""Presentation adapter: display-ready shapes for the history UI."""

from datetime import date, datetime, tzinfo

from db.enums import HistoryAction
from db.models import HistoryEntries
from activity.services._helpers import as_utc
from activity.services._types import (
    ActionStyle,
    DayGroupUI,
    EntryDetailUI,
    EntryUI,
    FilterOption,
    FilterOptionsUI,
    HistoryPageUI,
)
from activity.services.change_codec import decode, to_change_views
from activity.services.query_engine import DayGroup, FilterOptions

ACTION_STYLES: dict[HistoryAction, ActionStyle] = {
    HistoryAction.CREATE: ActionStyle(icon="plus", color="green"),
    HistoryAction.UPDATE: ActionStyle(icon="file-edit", color="blue"),
    HistoryAction.DELETE: ActionStyle(icon="trash-2", color="red"),
    HistoryAction.CANCEL: ActionStyle(icon="x", color="orange"),
    HistoryAction.REVISION: ActionStyle(icon="rotate-ccw", color="purple"),
}

EMPTY_FILTERED = "Try adjusting your filters to see more results."
EMPTY_UNFILTERED = "Activity history will appear here as changes are made."


def action_style(action: str | None) -> ActionStyle:
    """Icon and color for an action; unrecognized actions get the update style."""
    return ACTION_STYLES[HistoryAction.classify(action)]


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def entity_label(entry: HistoryEntries) -> str:
    return entry.entity_name or f"{entry.entity_type} #{entry.entity_id}"


def _clock(moment: datetime, seconds: bool = False) -> str:
    text: str = moment.strftime("%I:%M:%S %p" if seconds else "%I:%M %p")
    return text[1:] if text.startswith("0") else text


def format_day(day: date) -> str:
    """e.g. ``Saturday, October 17, 2026``."""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def format_time(moment: datetime, zone: tzinfo) -> str:
    """e.g. ``3:05 PM``."""
    return _clock(as_utc(moment).astimezone(zone))


def format_timestamp(moment: datetime, zone: tzinfo) -> str:
    """e.g. ``Oct 17, 2026, 3:05:12 PM``."""
    local: datetime = as_utc(moment).astimezone(zone)
    return f"{local:%b} {local.day}, {local.year}, {_clock(local, seconds=True)}"


def count_label(count: int) -> str:
    return f"{count} change" if count == 1 else f"{count} changes"


def present_entry(entry: HistoryEntries, zone: tzinfo) -> EntryUI:
    """List-row view of an entry. Changes are not decoded here."""
    style: ActionStyle = action_style(entry.action)
    return EntryUI(
        id=entry.id,
        entityType=entry.entity_type,
        entityId=entry.entity_id,
        entityName=entry.entity_name,
        label=entity_label(entry),
        action=entry.action,
        actionKind=HistoryAction.classify(entry.action).value,
        actionLabel=capitalize(entry.action),
        icon=style["icon"],
        color=style["color"],
        userId=entry.user_id,
        userName=entry.user_name,
        createdAt=as_utc(entry.created_at).isoformat(),
        time=format_time(entry.created_at, zone),
    )


def present_detail(entry: HistoryEntries, zone: tzinfo) -> EntryDetailUI:
    """Detail view of one entry, with its change payload decoded."""
    changes = to_change_views(decode(entry.changes))
    return EntryDetailUI(
        **present_entry(entry, zone),
        timestamp=format_timestamp(entry.created_at, zone),
        hasChanges=bool(changes),
        changes=changes,
    )


def present_group(group: DayGroup, zone: tzinfo) -> DayGroupUI:
    return DayGroupUI(
        date=group.day.isoformat(),
        label=format_day(group.day),
        count=group.count,
        countLabel=count_label(group.count),
        entries=[present_entry(e, zone) for e in group.entries],
    )


def present_page(
    groups: list[DayGroup],
    zone: tzinfo,
    has_active_filters: bool = False,
) -> HistoryPageUI:
    total: int = sum(g.count for g in groups)
    empty: str | None = None
    if total == 0:
        empty = EMPTY_FILTERED if has_active_filters else EMPTY_UNFILTERED
    return HistoryPageUI(
        groups=[present_group(g, zone) for g in groups],
        total=total,
        hasActiveFilters=has_active_filters,
        emptyMessage=empty,
        timezone=str(zone),
    )


def present_filter_options(options: FilterOptions) -> FilterOptionsUI:
    return FilterOptionsUI(
        entityTypes=[FilterOption(value=v, label=capitalize(v)) for v in options.entity_types],
        actions=[FilterOption(value=v, label=capitalize(v)) for v in options.actions],
    )
