"""Change codec: normalizes stored change payloads into field-level diffs.

The ``changes`` column has been written in three shapes over time:

* ``DiffList``      ``[{"field": "status", "from": "draft", "to": "paid"}, ...]`` (current)
* ``LegacyMapping`` ``{"status": "paid"}`` (new values only, no previous value)
* ``RawText``       anything that is not structured JSON, e.g. ``"Marked as paid"``

``parse_payload`` resolves the shape once, by trying each in turn; ``decode``
flattens any shape into a list of ``DiffTriple``. Neither raises.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog

from activity.services.errors import DecodeAnomaly
from activity.services._types import ChangeView, DiffTriple

logger = structlog.get_logger(__name__)

# Stands in for the previous value when the payload never recorded one.
UNKNOWN = "<unknown>"

RAW_TEXT_FIELD = "details"


@dataclass(frozen=True)
class DiffList:
    triples: list[DiffTriple] = field(default_factory=list)

    def to_triples(self) -> list[DiffTriple]:
        return list(self.triples)


@dataclass(frozen=True)
class LegacyMapping:
    values: dict[str, str] = field(default_factory=dict)

    def to_triples(self) -> list[DiffTriple]:
        return [_triple(name, UNKNOWN, value) for name, value in self.values.items()]


@dataclass(frozen=True)
class RawText:
    text: str

    def to_triples(self) -> list[DiffTriple]:
        return [_triple(RAW_TEXT_FIELD, UNKNOWN, self.text)]


ChangePayload = DiffList | LegacyMapping | RawText


def _triple(name: str, before: str, after: str) -> DiffTriple:
    return {"field": name, "from": before, "to": after}


def _text(value: object) -> str:
    """Textual form of a JSON value: strings verbatim, everything else as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Shape attempts: each raises DecodeAnomaly when the input is not its shape
# ---------------------------------------------------------------------------


def _load(raw: str) -> object:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeAnomaly(f"not JSON: {e}") from e


def _as_diff_list(parsed: object) -> DiffList:
    if not isinstance(parsed, list):
        raise DecodeAnomaly("not a list")
    triples: list[DiffTriple] = []
    for item in parsed:
        if not isinstance(item, dict) or "field" not in item:
            raise DecodeAnomaly("list item is not a diff triple")
        before: object = item.get("from")
        triples.append(
            _triple(
                _text(item["field"]),
                UNKNOWN if before is None else _text(before),
                _text(item.get("to")),
            )
        )
    return DiffList(triples)


def _as_mapping(parsed: object) -> LegacyMapping:
    if not isinstance(parsed, dict):
        raise DecodeAnomaly("not a mapping")
    return LegacyMapping({str(k): _text(v) for k, v in parsed.items()})


def parse_payload(raw: str | None) -> ChangePayload:
    """Resolve a stored payload to its shape. Empty input is an empty DiffList."""
    if raw is None or not raw.strip():
        return DiffList()

    try:
        parsed: object = _load(raw)
    except DecodeAnomaly as e:
        logger.debug("Change payload is free text", reason=str(e))
        return RawText(raw)

    if parsed is None:
        return DiffList()

    for attempt in (_as_diff_list, _as_mapping):
        try:
            return attempt(parsed)
        except DecodeAnomaly:
            continue

    # Valid JSON but a bare scalar or an irregular list: keep the text.
    logger.debug("Change payload is unstructured JSON", kind=type(parsed).__name__)
    return RawText(raw)


def decode(raw: str | None) -> list[DiffTriple]:
    """Decode a stored payload into ``{field, from, to}`` triples. Never raises."""
    return parse_payload(raw).to_triples()


def encode(triples: Iterable[Mapping[str, object]]) -> str:
    """Serialize diff triples in the canonical list format."""
    return json.dumps(
        [
            {
                "field": _text(t["field"]),
                "from": UNKNOWN if t.get("from") is None else _text(t["from"]),
                "to": _text(t.get("to")),
            }
            for t in triples
        ],
        ensure_ascii=False,
    )


def is_addition(triple: DiffTriple) -> bool:
    """True when there is no previous value to show, only the new one."""
    return triple["from"] == UNKNOWN


def build_diff(before: Mapping[str, object] | None, after: Mapping[str, object]) -> list[DiffTriple]:
    """Diff two snapshots of an object into canonical triples.

    Keys only in ``after`` become additions; keys only in ``before`` are
    recorded with an empty ``to``. Unchanged keys are skipped.
    """
    before = before or {}
    triples: list[DiffTriple] = []
    for key, new in after.items():
        if key not in before:
            triples.append(_triple(str(key), UNKNOWN, _text(new)))
        elif before[key] != new:
            triples.append(_triple(str(key), _text(before[key]), _text(new)))
    for key, old in before.items():
        if key not in after:
            triples.append(_triple(str(key), _text(old), ""))
    return triples


def to_change_views(triples: Iterable[DiffTriple]) -> list[ChangeView]:
    """Shape triples for the detail view; additions carry no ``before``."""
    views: list[ChangeView] = []
    for t in triples:
        addition: bool = is_addition(t)
        views.append(
            ChangeView(
                field=t["field"],
                before=None if addition else t["from"],
                after=t["to"],
                isAddition=addition,
            )
        )
    return views
