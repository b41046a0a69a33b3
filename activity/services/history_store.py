"""History store: append-only persistence of audit entries."""

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import structlog
from sqlalchemy import Select, distinct, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import HistoryEntries
from activity.services._helpers import as_utc, now_utc
from activity.services.errors import HistoryStorageError, HistoryValidationError

logger = structlog.get_logger(__name__)


@dataclass
class NewHistoryEntry:
    """An entry as handed to ``append``; the store assigns ``id``."""

    entity_type: str
    entity_id: str | int
    action: str
    entity_name: str | None = None
    changes: str | None = None
    user_id: str | int | None = None
    user_name: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class HistoryFilter:
    """Structural filters. ``None`` on an axis means no filter on it.

    ``since`` is inclusive and ``until`` exclusive, both compared in UTC.
    """

    entity_type: str | None = None
    entity_id: str | None = None
    action: str | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int | None = None


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text: str = str(value).strip()
    return text or None


class HistoryStore:
    """Append and filtered retrieval over ``history_entries``.

    Entries are only ever inserted; there is no update or delete path.
    """

    def __init__(self, session: Session):
        self.session = session

    def append(self, entry: NewHistoryEntry) -> int:
        """Persist one entry and return its id.

        Raises HistoryValidationError when a required field is blank (nothing is
        written) and HistoryStorageError when the database rejects the insert.
        """
        entity_type: str | None = _clean(entry.entity_type)
        entity_id: str | None = _clean(entry.entity_id)
        action: str | None = _clean(entry.action)
        missing: list[str] = [
            name
            for name, value in (
                ("entityType", entity_type),
                ("entityId", entity_id),
                ("action", action),
            )
            if value is None
        ]
        if missing:
            raise HistoryValidationError(missing)

        row = HistoryEntries(
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=_clean(entry.entity_name),
            # Unknown actions are kept verbatim; readers classify them.
            action=action,
            changes=entry.changes or None,
            user_id=_clean(entry.user_id),
            user_name=_clean(entry.user_name),
            created_at=as_utc(entry.created_at) if entry.created_at else now_utc(),
        )
        try:
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("History append failed", entity_type=entity_type, error=str(e))
            raise HistoryStorageError(f"Could not append history entry: {e}") from e

        logger.debug("History entry appended", entry_id=row.id, entity_type=entity_type, action=action)
        return row.id

    def get(self, entry_id: int) -> HistoryEntries | None:
        try:
            return self.session.get(HistoryEntries, entry_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise HistoryStorageError(f"Could not load history entry {entry_id}: {e}") from e

    def _statement(self, flt: HistoryFilter) -> Select:
        stmt = select(HistoryEntries)
        if flt.entity_type is not None:
            stmt = stmt.where(HistoryEntries.entity_type == flt.entity_type)
        if flt.entity_id is not None:
            stmt = stmt.where(HistoryEntries.entity_id == flt.entity_id)
        if flt.action is not None:
            stmt = stmt.where(HistoryEntries.action == flt.action)
        if flt.since is not None:
            stmt = stmt.where(HistoryEntries.created_at >= as_utc(flt.since))
        if flt.until is not None:
            stmt = stmt.where(HistoryEntries.created_at < as_utc(flt.until))
        # Newest first; entries sharing an instant keep insertion order.
        stmt = stmt.order_by(HistoryEntries.created_at.desc(), HistoryEntries.id.asc())
        if flt.limit:
            stmt = stmt.limit(flt.limit)
        return stmt

    def query(self, flt: HistoryFilter | None = None) -> Sequence[HistoryEntries]:
        """Entries matching every given axis, newest first."""
        try:
            return self.session.scalars(self._statement(flt or HistoryFilter())).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("History query failed", error=str(e))
            raise HistoryStorageError(f"Could not query history: {e}") from e

    def _distinct(self, column) -> list[str]:
        try:
            return list(self.session.scalars(select(distinct(column)).order_by(column)).all())
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("History options query failed", error=str(e))
            raise HistoryStorageError(f"Could not list distinct values: {e}") from e

    def distinct_entity_types(self) -> list[str]:
        return self._distinct(HistoryEntries.entity_type)

    def distinct_actions(self) -> list[str]:
        return self._distinct(HistoryEntries.action)
