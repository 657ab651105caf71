"""Processing (refresh) requests and their target scope."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

FULL_REFRESH = "full"


@dataclass(frozen=True)
class DatabaseScope:
    """Refresh the whole database."""

    def describe(self, database: str) -> str:
        return database


@dataclass(frozen=True)
class TableScope:
    table: str

    def describe(self, database: str) -> str:
        return f"{database}/{self.table}"


@dataclass(frozen=True)
class PartitionScope:
    table: str
    partition: str

    def describe(self, database: str) -> str:
        return f"{database}/{self.table}/{self.partition}"


ProcessingScope = Union[DatabaseScope, TableScope, PartitionScope]


def select_scope(
    table: Optional[str] = None, partition: Optional[str] = None
) -> ProcessingScope:
    """Pick the most specific scope: partition, then table, then database."""
    if partition:
        if not table:
            raise ValueError(f"Partition '{partition}' requires its table")
        return PartitionScope(table=table, partition=partition)
    if table:
        return TableScope(table=table)
    return DatabaseScope()


@dataclass(frozen=True)
class ProcessingRequest:
    server: str
    database: str
    scope: ProcessingScope
    refresh_mode: str

    @classmethod
    def for_target(
        cls,
        server: str,
        database: str,
        refresh_mode: str,
        table: Optional[str] = None,
        partition: Optional[str] = None,
    ) -> "ProcessingRequest":
        return cls(
            server=server,
            database=database,
            scope=select_scope(table=table, partition=partition),
            refresh_mode=refresh_mode,
        )

    @property
    def target(self) -> str:
        return self.scope.describe(self.database)

    def objects(self) -> list[dict]:
        """Objects list of the refresh payload; empty for a database refresh."""
        if isinstance(self.scope, PartitionScope):
            return [{"table": self.scope.table, "partition": self.scope.partition}]
        if isinstance(self.scope, TableScope):
            return [{"table": self.scope.table}]
        return []


__all__ = [
    "DatabaseScope",
    "FULL_REFRESH",
    "PartitionScope",
    "ProcessingRequest",
    "ProcessingScope",
    "TableScope",
    "select_scope",
]
