"""Partition deletes that never depend on the service's not-found behavior."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .executor import PartitionOperationExecutor
from .reports import OperationReport
from .tmsl import CreateOrReplace, Delete

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionIdentity:
    database: str
    table: str
    name: str
    prefix: str = ""


@dataclass(frozen=True)
class RecreateSpec:
    """Source used to (re)create a partition right before deleting it."""

    query: str
    data_source: str
    refresh_mode: Optional[str] = None


@dataclass(frozen=True)
class PlainDelete:
    """Delete directly; the caller asserts the partition exists."""


@dataclass(frozen=True)
class SafeDelete:
    recreate: RecreateSpec


DeleteMode = Union[PlainDelete, SafeDelete]


def delete_partition(
    executor: PartitionOperationExecutor,
    identity: PartitionIdentity,
    mode: DeleteMode = PlainDelete(),
) -> List[OperationReport]:
    """Delete ``identity``, recreating it first when ``mode`` is ``SafeDelete``.

    A failed recreate aborts before the delete is sent. A failed refresh of the
    recreated partition does not: the partition exists, so the delete proceeds.
    """
    reports: List[OperationReport] = []
    if isinstance(mode, SafeDelete):
        created = executor.execute(
            CreateOrReplace(
                database=identity.database,
                table=identity.table,
                partition=identity.name,
                query=mode.recreate.query,
                data_source=mode.recreate.data_source,
            ),
            refresh_mode=mode.recreate.refresh_mode,
        )
        reports.extend(created)
        if not created[0].ok:
            logger.error(
                "Recreate of %s/%s/%s failed; delete not attempted",
                identity.database,
                identity.table,
                identity.name,
            )
            return reports

    reports.extend(
        executor.execute(
            Delete(
                database=identity.database,
                table=identity.table,
                partition=identity.name,
            )
        )
    )
    return reports


__all__ = [
    "DeleteMode",
    "PartitionIdentity",
    "PlainDelete",
    "RecreateSpec",
    "SafeDelete",
    "delete_partition",
]
