"""Calendar rollover policies for yearly and monthly partitions.

Planning is pure: ``plan_year`` / ``plan_year_month`` turn a policy and a day
into an ordered tuple of steps. ``RolloverScheduler`` then runs those steps
one at a time, collecting a report per remote call. A failed step is reported
and the remaining steps still run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .config import RolloverPolicy
from .executor import PartitionOperationExecutor
from .processing import FULL_REFRESH
from .reports import RolloverReport
from .safe_delete import PartitionIdentity, RecreateSpec, SafeDelete, delete_partition
from .tmsl import CreateOrReplace
from .windows import (
    MONTH_FORMAT,
    YEAR_FORMAT,
    ResolvedPartition,
    TimeWindow,
    month_window,
    resolve_partition,
    year_window,
)

logger = logging.getLogger(__name__)

GRACE_DAYS = 7


class YearState(str, Enum):
    NORMAL = "normal"
    GRACE_WINDOW = "grace-window"


def year_state(today: date) -> YearState:
    """First ``GRACE_DAYS`` days of January still accept last year's late data."""
    if today.month == 1 and today.day <= GRACE_DAYS:
        return YearState.GRACE_WINDOW
    return YearState.NORMAL


@dataclass(frozen=True)
class CreateStep:
    window: TimeWindow
    name_format: str
    refresh_mode: Optional[str]
    reason: str

    action = "create"


@dataclass(frozen=True)
class SafeDeleteStep:
    window: TimeWindow
    name_format: str
    reason: str

    action = "safe-delete"


PlannedStep = Union[CreateStep, SafeDeleteStep]


def _refresh(policy: RolloverPolicy, mode: Optional[str] = None) -> Optional[str]:
    if policy.create_only:
        return None
    return mode or policy.refresh_mode


def plan_year(policy: RolloverPolicy, today: date) -> Tuple[PlannedStep, ...]:
    steps = [
        CreateStep(
            window=year_window(today.year, policy.date_column),
            name_format=YEAR_FORMAT,
            refresh_mode=_refresh(policy),
            reason="current year",
        )
    ]
    if year_state(today) is YearState.GRACE_WINDOW:
        steps.append(
            CreateStep(
                window=year_window(today.year - 1, policy.date_column),
                name_format=YEAR_FORMAT,
                refresh_mode=_refresh(policy),
                reason="previous year (grace window)",
            )
        )
    return tuple(steps)


def plan_year_month(policy: RolloverPolicy, today: date) -> Tuple[PlannedStep, ...]:
    steps: list[PlannedStep] = [
        CreateStep(
            window=month_window(today.year, today.month, policy.date_column),
            name_format=MONTH_FORMAT,
            refresh_mode=_refresh(policy),
            reason="current month",
        )
    ]
    if today.day != 1:
        return tuple(steps)

    if today.month != 1:
        steps.append(
            CreateStep(
                window=month_window(today.year, today.month - 1, policy.date_column),
                name_format=MONTH_FORMAT,
                refresh_mode=_refresh(policy),
                reason="previous month closed",
            )
        )
        return tuple(steps)

    last_year = today.year - 1
    steps.append(
        CreateStep(
            window=year_window(last_year, policy.date_column),
            name_format=YEAR_FORMAT,
            refresh_mode=_refresh(policy, FULL_REFRESH),
            reason="year-end consolidation",
        )
    )
    for month in range(1, 13):
        steps.append(
            SafeDeleteStep(
                window=month_window(last_year, month, policy.date_column),
                name_format=MONTH_FORMAT,
                reason="superseded by yearly partition",
            )
        )
    return tuple(steps)


def resolve_step(policy: RolloverPolicy, step: PlannedStep) -> ResolvedPartition:
    return resolve_partition(
        template=policy.sql_template,
        placeholder=policy.placeholder_token,
        window=step.window,
        prefix=policy.partition_prefix,
        name_format=step.name_format,
    )


def describe_step(policy: RolloverPolicy, step: PlannedStep) -> Dict[str, str]:
    """Flat row describing ``step`` for plan listings."""
    resolved = resolve_step(policy, step)
    refresh = step.refresh_mode if isinstance(step, CreateStep) else None
    return {
        "partition": resolved.name,
        "action": step.action,
        "start": step.window.start.isoformat(),
        "end": step.window.end.isoformat(),
        "refresh": refresh or "-",
        "reason": step.reason,
    }


class RolloverScheduler:
    """Runs planned steps for one policy, strictly in order."""

    def __init__(self, executor: PartitionOperationExecutor, policy: RolloverPolicy) -> None:
        self.executor = executor
        self.policy = policy

    @property
    def label(self) -> str:
        return f"{self.policy.database}/{self.policy.table}"

    def run_year(self, today: date) -> RolloverReport:
        state = year_state(today)
        logger.info("Year rollover for %s on %s (state=%s)", self.label, today, state.value)
        return self.run(plan_year(self.policy, today), today)

    def run_year_month(self, today: date) -> RolloverReport:
        logger.info("Year/month rollover for %s on %s", self.label, today)
        return self.run(plan_year_month(self.policy, today), today)

    def run(self, steps: Tuple[PlannedStep, ...], today: date) -> RolloverReport:
        report = RolloverReport(policy=self.label, today=today)
        for step in steps:
            resolved = resolve_step(self.policy, step)
            logger.info("%s %s (%s)", step.action, resolved.name, step.reason)
            if isinstance(step, CreateStep):
                report.extend(
                    self.executor.execute(
                        CreateOrReplace(
                            database=self.policy.database,
                            table=self.policy.table,
                            partition=resolved.name,
                            query=resolved.query,
                            data_source=self.policy.data_source,
                        ),
                        refresh_mode=step.refresh_mode,
                    )
                )
            else:
                report.extend(
                    delete_partition(
                        self.executor,
                        PartitionIdentity(
                            database=self.policy.database,
                            table=self.policy.table,
                            name=resolved.name,
                            prefix=self.policy.partition_prefix,
                        ),
                        SafeDelete(
                            RecreateSpec(
                                query=resolved.query,
                                data_source=self.policy.data_source,
                            )
                        ),
                    )
                )
        if report.failed:
            logger.warning(
                "Rollover for %s finished with %s failed step(s)", self.label, len(report.failed)
            )
        return report


__all__ = [
    "CreateStep",
    "GRACE_DAYS",
    "PlannedStep",
    "RolloverScheduler",
    "SafeDeleteStep",
    "YearState",
    "describe_step",
    "plan_year",
    "plan_year_month",
    "resolve_step",
    "year_state",
]
