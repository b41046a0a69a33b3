"""History service: the write and read interface other services and routes use."""

from collections.abc import Mapping, Sequence
from datetime import datetime, tzinfo

import structlog
from sqlalchemy.orm import Session

from config import HistorySettings, get_settings
from db.models import HistoryEntries
from activity.services._helpers import resolve_zone
from activity.services._types import DiffTriple, EntryDetailUI, EntryUI, FilterOptionsUI, HistoryPageUI
from activity.services.change_codec import LegacyMapping, decode, encode
from activity.services.errors import HistoryNotFoundError, HistoryStorageError
from activity.services.history_store import HistoryStore, NewHistoryEntry
from activity.services.presentation import (
    present_detail,
    present_entry,
    present_filter_options,
    present_page,
)
from activity.services.query_engine import DayGroup, HistoryCriteria, QueryEngine

logger = structlog.get_logger(__name__)

ChangesInput = str | Sequence[Mapping[str, object]] | Mapping[str, object] | None


def serialize_changes(changes: ChangesInput) -> str | None:
    """Store-ready text for a ``changes`` argument.

    Diff lists and mappings are written in the canonical list format; strings
    are stored verbatim (already serialized, or free text).
    """
    if changes is None:
        return None
    if isinstance(changes, str):
        return changes or None
    if isinstance(changes, Mapping):
        return encode(LegacyMapping({str(k): v for k, v in changes.items()}).to_triples())
    return encode(changes)


class HistoryService:
    """Records history entries and serves the grouped history view."""

    def __init__(self, session: Session, settings: HistorySettings | None = None):
        self.session = session
        self.settings = settings or get_settings().history
        self.store = HistoryStore(session)
        self.engine = QueryEngine(
            self.store,
            default_zone=resolve_zone(self.settings.timezone),
            default_limit=self.settings.default_limit,
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def record(
        self,
        entity_type: str,
        entity_id: str | int,
        action: str,
        entity_name: str | None = None,
        changes: ChangesInput = None,
        user_id: str | int | None = None,
        user_name: str | None = None,
        created_at: datetime | None = None,
    ) -> int:
        """Record one mutation. Call exactly once per logical change; no retries here."""
        entry_id: int = self.store.append(
            NewHistoryEntry(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                entity_name=entity_name,
                changes=serialize_changes(changes),
                user_id=user_id,
                user_name=user_name,
                created_at=created_at,
            )
        )
        logger.info(
            "History entry recorded",
            entry_id=entry_id,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
        )
        return entry_id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find(self, criteria: HistoryCriteria) -> list[DayGroup]:
        return self.engine.find(criteria)

    def history_page(self, criteria: HistoryCriteria) -> HistoryPageUI:
        """Grouped, display-ready history. Storage failures become an error flag."""
        zone: tzinfo = self.engine.zone_for(criteria)
        active: bool = criteria.has_active_filters
        try:
            groups: list[DayGroup] = self.engine.find(criteria)
        except HistoryStorageError as e:
            logger.warning("History query failed, returning empty page", error=str(e))
            page: HistoryPageUI = present_page([], zone, has_active_filters=active)
            page["error"] = "Failed to fetch history"
            return page
        return present_page(groups, zone, has_active_filters=active)

    def list_entries(self, criteria: HistoryCriteria) -> list[EntryUI]:
        zone: tzinfo = self.engine.zone_for(criteria)
        return [present_entry(e, zone) for e in self.engine.filter(criteria)]

    def entity_timeline(
        self, entity_type: str, entity_id: str, timezone: str | None = None
    ) -> HistoryPageUI:
        """Every entry for one business object. Unknown objects give an empty page."""
        return self.history_page(
            HistoryCriteria(entity_type=entity_type, entity_id=entity_id, timezone=timezone)
        )

    def filter_options(self) -> FilterOptionsUI:
        return present_filter_options(self.engine.filter_options())

    def get_entry(self, entry_id: int) -> HistoryEntries:
        entry: HistoryEntries | None = self.store.get(entry_id)
        if entry is None:
            raise HistoryNotFoundError(f"History entry {entry_id} not found")
        return entry

    def decode_changes(self, entry_id: int) -> list[DiffTriple]:
        return decode(self.get_entry(entry_id).changes)

    def entry_detail(self, entry_id: int, timezone: str | None = None) -> EntryDetailUI:
        zone: tzinfo = self.engine.zone_for(HistoryCriteria(timezone=timezone))
        return present_detail(self.get_entry(entry_id), zone)
