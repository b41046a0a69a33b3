"""Enumeration types for the activity history engine."""

from enum import Enum


class HistoryAction(str, Enum):
    """Kind of state change recorded against a business object."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CANCEL = "cancel"
    REVISION = "revision"

    @classmethod
    def classify(cls, raw: str | None) -> "HistoryAction":
        """Map a stored action string to a known kind; unknown values read as UPDATE."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.UPDATE
