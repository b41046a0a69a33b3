"""Shared exception hierarchy for the history services."""


class HistoryError(Exception):
    """Base exception for history errors."""


class HistoryValidationError(HistoryError):
    """An entry is missing a required field. Nothing was persisted."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required field(s): {', '.join(missing)}")


class HistoryNotFoundError(HistoryError):
    """A single entry lookup found nothing."""


class HistoryStorageError(HistoryError):
    """The underlying database failed to read or write."""


# ── Codec ─────────────────────────────────────────────────────────────────────


class DecodeAnomaly(HistoryError):
    """A change payload did not match the shape being tried.

    Only raised inside the change codec, which always recovers by trying the
    next shape.
    """
