"""Typed dicts for service-layer return values.

Keeps route-facing methods explicit about their shape instead of returning bare dicts.
UI-facing shapes use camelCase keys, matching the JSON the front end consumes.
"""

import sys

if sys.version_info >= (3, 12):
    from typing import TypedDict
else:
    from typing_extensions import TypedDict

# -- Change Codec ----------------------------------------------------------

# "from" is a keyword, hence the functional form.
DiffTriple = TypedDict("DiffTriple", {"field": str, "from": str, "to": str})


class ChangeView(TypedDict):
    field: str
    before: str | None
    after: str
    isAddition: bool


# -- Presentation ----------------------------------------------------------


class ActionStyle(TypedDict):
    icon: str
    color: str


class EntryUI(TypedDict):
    id: int
    entityType: str
    entityId: str
    entityName: str | None
    label: str
    action: str
    actionKind: str
    actionLabel: str
    icon: str
    color: str
    userId: str | None
    userName: str | None
    createdAt: str
    time: str


class EntryDetailUI(EntryUI):
    timestamp: str
    hasChanges: bool
    changes: list[ChangeView]


class DayGroupUI(TypedDict):
    date: str
    label: str
    count: int
    countLabel: str
    entries: list[EntryUI]


class HistoryPageUI(TypedDict, total=False):
    groups: list[DayGroupUI]
    total: int
    hasActiveFilters: bool
    emptyMessage: str | None
    timezone: str
    error: str


class FilterOption(TypedDict):
    value: str
    label: str


class FilterOptionsUI(TypedDict):
    entityTypes: list[FilterOption]
    actions: list[FilterOption]


# -- Health ----------------------------------------------------------------


class DbInfoDict(TypedDict, total=False):
    backend_type: str
    database_url_or_path: str | None
    tables_present: list[str]
    tables_missing: list[str]
    schema_initialized: bool
    pid: int
    error: str
