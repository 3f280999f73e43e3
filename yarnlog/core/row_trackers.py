"""Row tracker engine.

A project keeps an ordered list of row trackers, one per section being knitted
("Body", "Sleeves", ...). Each tracker counts the current row and optionally a
target row count; ``total_rows == 0`` means there is no target.

Every operation is pure: it takes a list of trackers and returns a new list.
The trackers are persisted as part of the project document, so callers
read-modify-write the whole list.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
import math
import re
from typing import Any

from ..errors import TrackerIndexError
from .formatting import round_half_up

DEFAULT_SECTION = "Main"

_LEADING_INT = re.compile(r"[+-]?\d+")


def parse_non_negative_int_or_zero(value: Any) -> int:
    """Parse free-form numeric input, falling back to 0.

    Strings are read like a browser's ``parseInt``: leading whitespace is
    skipped and the leading integer prefix is used (``"12 rows" -> 12``,
    ``"3.9" -> 3``). Anything unparsable or negative gives 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return 0
        parsed = int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value.strip())
        if not match:
            return 0
        parsed = int(match.group())
    else:
        return 0
    return parsed if parsed > 0 else 0


@dataclass(frozen=True)
class RowTracker:
    """Progress counter for one section of a project."""

    section: str = ""
    current_row: int = 0
    total_rows: int = 0

    @property
    def is_complete(self) -> bool:
        return is_complete(self)

    @classmethod
    def from_document(cls, doc: "RowTracker | Mapping[str, Any]") -> "RowTracker":
        """Build a tracker from a stored or submitted document.

        Accepts both the camelCase wire keys and snake_case keys. Numeric
        fields go through :func:`parse_non_negative_int_or_zero`.
        """
        if isinstance(doc, RowTracker):
            return doc
        section = doc.get("section")
        return cls(
            section=section if isinstance(section, str) else "",
            current_row=parse_non_negative_int_or_zero(
                doc.get("currentRow", doc.get("current_row"))
            ),
            total_rows=parse_non_negative_int_or_zero(doc.get("totalRows", doc.get("total_rows"))),
        )

    def to_document(self) -> dict[str, Any]:
        """Persisted shape of the tracker."""
        return {
            "section": self.section,
            "currentRow": self.current_row,
            "totalRows": self.total_rows,
        }


# === Update operations ===


@dataclass(frozen=True)
class SetSection:
    value: str


@dataclass(frozen=True)
class SetCurrentRow:
    value: int

    @classmethod
    def parse(cls, raw: Any) -> "SetCurrentRow":
        return cls(parse_non_negative_int_or_zero(raw))


@dataclass(frozen=True)
class SetTotalRows:
    value: int

    @classmethod
    def parse(cls, raw: Any) -> "SetTotalRows":
        return cls(parse_non_negative_int_or_zero(raw))


TrackerUpdate = SetSection | SetCurrentRow | SetTotalRows


@dataclass(frozen=True)
class TrackerProgress:
    """Aggregate progress over all trackers of a project."""

    sections: int
    targeted_sections: int
    completed_sections: int
    rows_done: int
    rows_total: int
    percentage: int


def is_complete(tracker: RowTracker) -> bool:
    """A tracker is complete once it has a target and reached it."""
    return tracker.total_rows > 0 and tracker.current_row >= tracker.total_rows


def load_trackers(docs: Iterable[RowTracker | Mapping[str, Any]] | None) -> list[RowTracker]:
    return [RowTracker.from_document(doc) for doc in docs or []]


def dump_trackers(trackers: Iterable[RowTracker]) -> list[dict[str, Any]]:
    return [tracker.to_document() for tracker in trackers]


def _check_index(trackers: list[RowTracker], index: int) -> None:
    if index < 0 or index >= len(trackers):
        raise TrackerIndexError(index, len(trackers))


def add_tracker(trackers: Iterable[RowTracker]) -> list[RowTracker]:
    """Append an empty tracker. Section names need not be unique."""
    return [*trackers, RowTracker()]


def remove_tracker(trackers: Iterable[RowTracker], index: int) -> list[RowTracker]:
    """Remove the tracker at ``index``.

    Keeping at least one tracker is left to the client.
    """
    current = list(trackers)
    _check_index(current, index)
    return current[:index] + current[index + 1 :]


def apply_update(tracker: RowTracker, update: TrackerUpdate) -> RowTracker:
    match update:
        case SetSection(value=section):
            return replace(tracker, section=section)
        case SetCurrentRow(value=row):
            return replace(tracker, current_row=parse_non_negative_int_or_zero(row))
        case SetTotalRows(value=total):
            return replace(tracker, total_rows=parse_non_negative_int_or_zero(total))
    raise TypeError(f"Unknown tracker update: {update!r}")


def update_tracker(
    trackers: Iterable[RowTracker], index: int, update: TrackerUpdate
) -> list[RowTracker]:
    """Apply one update operation to the tracker at ``index``."""
    current = list(trackers)
    _check_index(current, index)
    current[index] = apply_update(current[index], update)
    return current


def normalize_for_save(
    trackers: Iterable[RowTracker | Mapping[str, Any]], reset_progress: bool = False
) -> list[RowTracker]:
    """Clean submitted trackers before they are stored.

    Trackers with neither a section name nor a positive target are dropped.
    The remaining ones get a stripped section name (``"Main"`` when blank) and
    integer counters. With ``reset_progress`` every current row starts at 0,
    which is what a freshly started project wants.
    """
    normalized = []
    for tracker in load_trackers(trackers):
        section = tracker.section.strip()
        if not section and tracker.total_rows <= 0:
            continue
        normalized.append(
            RowTracker(
                section=section or DEFAULT_SECTION,
                current_row=0 if reset_progress else tracker.current_row,
                total_rows=tracker.total_rows,
            )
        )
    return normalized


def progress_summary(trackers: Iterable[RowTracker]) -> TrackerProgress:
    """Sum progress over the trackers that have a target."""
    current = list(trackers)
    targeted = [t for t in current if t.total_rows > 0]
    rows_total = sum(t.total_rows for t in targeted)
    rows_done = sum(min(t.current_row, t.total_rows) for t in targeted)
    return TrackerProgress(
        sections=len(current),
        targeted_sections=len(targeted),
        completed_sections=sum(1 for t in targeted if is_complete(t)),
        rows_done=rows_done,
        rows_total=rows_total,
        percentage=round_half_up(rows_done / rows_total * 100) if rows_total else 0,
    )
