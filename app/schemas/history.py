"""History request/response schemas."""

from typing import Any

from pydantic import Field

from app.schemas.common import CamelModel


class DiffTripleIn(CamelModel):
    field: str = Field(..., min_length=1)
    from_: Any = Field(None, alias="from")
    to: Any = None


class HistoryRecord(CamelModel):
    entity_type: str = Field(..., min_length=1, max_length=64)
    entity_id: str | int
    entity_name: str | None = Field(None, max_length=256)
    action: str = Field(..., min_length=1, max_length=32, description="create | update | delete | cancel | revision")
    changes: str | list[DiffTripleIn] | dict[str, Any] | None = None
    user_id: str | int | None = None
    user_name: str | None = Field(None, max_length=256)

    def changes_payload(self) -> str | list[dict[str, Any]] | dict[str, Any] | None:
        """``changes`` with diff triples keyed by their wire names."""
        if isinstance(self.changes, list):
            return [t.model_dump(by_alias=True) for t in self.changes]
        return self.changes


class HistoryRecorded(CamelModel):
    id: int


class ChangeViewResponse(CamelModel):
    field: str
    before: str | None
    after: str
    is_addition: bool


class EntryResponse(CamelModel):
    id: int
    entity_type: str
    entity_id: str
    entity_name: str | None
    label: str
    action: str
    action_kind: str
    action_label: str
    icon: str
    color: str
    user_id: str | None
    user_name: str | None
    created_at: str
    time: str


class EntryDetailResponse(EntryResponse):
    timestamp: str
    has_changes: bool
    changes: list[ChangeViewResponse] = []


class DayGroupResponse(CamelModel):
    date: str
    label: str
    count: int
    count_label: str
    entries: list[EntryResponse]


class HistoryPageResponse(CamelModel):
    groups: list[DayGroupResponse]
    total: int
    has_active_filters: bool
    empty_message: str | None = None
    timezone: str
    error: str | None = None


class FilterOptionResponse(CamelModel):
    value: str
    label: str


class FilterOptionsResponse(CamelModel):
    entity_types: list[FilterOptionResponse]
    actions: list[FilterOptionResponse]
