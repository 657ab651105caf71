"""Structured outcome reports and their table/JSON rendering."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Mapping, Optional

from tabulate import tabulate

CREATE = "create"
PROCESS = "process"
DELETE = "delete"


@dataclass(frozen=True)
class OperationReport:
    """Outcome of one remote step against one target."""

    target: str
    step: str
    ok: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def success(cls, target: str, step: str) -> "OperationReport":
        return cls(target=target, step=step, ok=True)

    @classmethod
    def failure(cls, target: str, step: str, exc: Exception) -> "OperationReport":
        return cls(
            target=target,
            step=step,
            ok=False,
            error=str(exc),
            error_kind=type(exc).__name__,
        )


@dataclass
class RolloverReport:
    policy: str
    today: date
    reports: List[OperationReport] = field(default_factory=list)

    def extend(self, reports: Iterable[OperationReport]) -> None:
        self.reports.extend(reports)

    @property
    def failed(self) -> List[OperationReport]:
        return [report for report in self.reports if not report.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


def _as_dicts(rows: Iterable[OperationReport]) -> List[dict]:
    return [
        {
            "target": row.target,
            "step": row.step,
            "ok": row.ok,
            "error_kind": row.error_kind,
            "error": row.error,
        }
        for row in rows
    ]


def format_reports(reports: Iterable[OperationReport], output_format: str = "table") -> str:
    rows = list(reports)
    if not rows:
        return "No operations were run."
    if output_format == "json":
        return json.dumps(_as_dicts(rows), indent=2)

    table_data = [
        [
            row.target,
            row.step,
            "ok" if row.ok else "FAILED",
            row.error_kind or "-",
            row.error or "-",
        ]
        for row in rows
    ]
    headers = ["target", "step", "status", "error_kind", "error"]
    return tabulate(table_data, headers=headers, tablefmt="plain")


def format_rollover(report: RolloverReport, output_format: str = "table") -> str:
    if output_format == "json":
        return json.dumps(
            {
                "policy": report.policy,
                "today": report.today.isoformat(),
                "ok": report.ok,
                "reports": _as_dicts(report.reports),
            },
            indent=2,
        )
    summary = (
        f"Rollover {report.policy} for {report.today.isoformat()} | "
        f"steps={len(report.reports)} failures={len(report.failed)}"
    )
    return f"{format_reports(report.reports)}\n\n{summary}"


def format_plan(rows: Iterable[Mapping[str, object]], output_format: str = "table") -> str:
    """Render planned steps, each given as a flat mapping of column -> value."""
    data = list(rows)
    if not data:
        return "Nothing planned."
    if output_format == "json":
        return json.dumps(data, indent=2)
    headers = list(data[0].keys())
    table_data = [[row.get(header, "-") for header in headers] for row in data]
    return tabulate(table_data, headers=headers, tablefmt="plain")


__all__ = [
    "CREATE",
    "DELETE",
    "OperationReport",
    "PROCESS",
    "RolloverReport",
    "format_plan",
    "format_reports",
    "format_rollover",
]
