"""
List filter/sort engine for the customer list view.

Works on serialized customer records (the dicts returned by the API) and is a
pure function of its inputs: the same records and FilterSpec always produce
the same output, and re-applying a spec to its own output changes nothing.

Passes, in order: search (name OR email, case-insensitive substring),
nationality (exact), created_at date range (inclusive, millisecond
timestamps), then a single stable sort.
"""
from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from app.crm.constants import DEFAULT_SORT, SORT_FIELDS

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(value: Any) -> int | None:
    """Milliseconds since the epoch; naive values are UTC. None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def collation_key(value: Any) -> tuple[str, str]:
    # Accents and case are ignored first; the raw text breaks ties.
    text = str(value or "")
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return (folded, text)


@dataclass(frozen=True)
class DateRange:
    start_ms: int
    end_ms: int

    @classmethod
    def parse(cls, start: str | None, end: str | None) -> "DateRange | None":
        """Both bounds are required together; a lone bound means no range."""
        start = (start or "").strip()
        end = (end or "").strip()
        if not start or not end:
            return None
        start_ms = to_millis(start)
        end_ms = to_millis(end)
        if start_ms is None or end_ms is None:
            raise ValueError(f"Invalid date range: {start!r} to {end!r}")
        return cls(start_ms=start_ms, end_ms=end_ms)

    def contains(self, ms: int | None) -> bool:
        return ms is not None and self.start_ms <= ms <= self.end_ms


@dataclass(frozen=True)
class SortSpec:
    field: str = "name"
    direction: str = "asc"

    @classmethod
    def parse(cls, raw: str | None) -> "SortSpec":
        """`<field>-<direction>`, e.g. `date-desc`. Unknown fields are kept and sort as a no-op."""
        value = (raw or "").strip() or DEFAULT_SORT
        sort_field, _, direction = value.partition("-")
        return cls(field=sort_field, direction=direction)

    @property
    def descending(self) -> bool:
        return self.direction != "asc"

    def __str__(self) -> str:
        return f"{self.field}-{self.direction}"


@dataclass(frozen=True)
class FilterSpec:
    search_query: str = ""
    nationality: str | None = None
    date_range: DateRange | None = None
    sort_by: SortSpec = field(default_factory=SortSpec)

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "FilterSpec":
        return cls(
            search_query=args.get("search") or "",
            nationality=(args.get("nationality") or "").strip() or None,
            date_range=DateRange.parse(args.get("startDate"), args.get("endDate")),
            sort_by=SortSpec.parse(args.get("sortBy")),
        )


def _matches_search(record: Mapping[str, Any], needle: str) -> bool:
    name = str(record.get("name") or "").lower()
    email = str(record.get("email") or "").lower()
    return needle in name or needle in email


def sort_records(records: list[Mapping[str, Any]], sort_by: SortSpec) -> list[Mapping[str, Any]]:
    if sort_by.field not in SORT_FIELDS:
        return list(records)
    if sort_by.field == "date":
        key = lambda r: to_millis(r.get("created_at")) or 0  # noqa: E731
    else:
        key = lambda r: collation_key(r.get(sort_by.field))  # noqa: E731
    # sorted() is stable in both directions, so ties keep their input order.
    return sorted(records, key=key, reverse=sort_by.descending)


def apply_filters(records: Iterable[Mapping[str, Any]], spec: FilterSpec) -> list[Mapping[str, Any]]:
    filtered = list(records)

    if spec.search_query:
        needle = spec.search_query.lower()
        filtered = [r for r in filtered if _matches_search(r, needle)]

    if spec.nationality:
        filtered = [r for r in filtered if r.get("nationality") == spec.nationality]

    if spec.date_range:
        filtered = [r for r in filtered if spec.date_range.contains(to_millis(r.get("created_at")))]

    return sort_records(filtered, spec.sort_by)
