"""Calendar windows and their partition names / query conditions."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

YEAR_FORMAT = "yyyy"
MONTH_FORMAT = "MMM-yyyy"
DEFAULT_PLACEHOLDER = "{0}"

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Longest tokens first so "MMMM" wins over "MMM" and "MM".
_NAME_TOKENS = re.compile(r"yyyy|yy|MMMM|MMM|MM|M|dd|d")


def _boundary(value: date) -> str:
    """Render a window boundary as a sortable YYYYMMDD literal."""
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open date range ``[start, end)`` over ``date_column``."""

    start: date
    end: date
    date_column: str

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(
                f"Window start {self.start.isoformat()} must precede end {self.end.isoformat()}"
            )

    @property
    def condition(self) -> str:
        return (
            f"{self.date_column} >= '{_boundary(self.start)}' "
            f"AND {self.date_column} < '{_boundary(self.end)}'"
        )


@dataclass(frozen=True)
class ResolvedPartition:
    """Partition name and source query derived from a window."""

    name: str
    query: str


def year_window(year: int, date_column: str) -> TimeWindow:
    return TimeWindow(date(year, 1, 1), date(year + 1, 1, 1), date_column)


def month_window(year: int, month: int, date_column: str) -> TimeWindow:
    if month == 12:
        end = date(year + 1, 1, 1)
    else:
        end = date(year, month + 1, 1)
    return TimeWindow(date(year, month, 1), end, date_column)


def format_anchor(anchor: date, pattern: str) -> str:
    """Format ``anchor`` with a yyyy/MMM style pattern.

    Month names are always English so names never depend on the host locale.
    Patterns containing ``%`` are handed to ``strftime`` unchanged.
    """
    if "%" in pattern:
        return anchor.strftime(pattern)

    def _render(match: re.Match) -> str:
        token = match.group(0)
        if token == "yyyy":
            return f"{anchor.year:04d}"
        if token == "yy":
            return f"{anchor.year % 100:02d}"
        if token == "MMMM":
            return _MONTH_NAMES[anchor.month - 1]
        if token == "MMM":
            return _MONTH_NAMES[anchor.month - 1][:3]
        if token == "MM":
            return f"{anchor.month:02d}"
        if token == "M":
            return str(anchor.month)
        if token == "dd":
            return f"{anchor.day:02d}"
        return str(anchor.day)

    return _NAME_TOKENS.sub(_render, pattern)


def partition_name(prefix: str, window: TimeWindow, name_format: str) -> str:
    return prefix + format_anchor(window.start, name_format)


def substitute_condition(template: str, placeholder: str, condition: str) -> str:
    """Replace the first ``placeholder`` occurrence; absent token leaves the template as is."""
    return template.replace(placeholder, condition, 1)


def resolve_partition(
    template: str,
    placeholder: str,
    window: TimeWindow,
    prefix: str,
    name_format: str,
) -> ResolvedPartition:
    """Map a window onto its partition name and filtered source query.

    Pure and deterministic: identical inputs always give the identical name
    and query, which is what makes repeated create-or-replace calls safe.
    """
    return ResolvedPartition(
        name=partition_name(prefix, window, name_format),
        query=substitute_condition(template, placeholder, window.condition),
    )


__all__ = [
    "DEFAULT_PLACEHOLDER",
    "MONTH_FORMAT",
    "ResolvedPartition",
    "TimeWindow",
    "YEAR_FORMAT",
    "format_anchor",
    "month_window",
    "partition_name",
    "resolve_partition",
    "substitute_condition",
    "year_window",
]
