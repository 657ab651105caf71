"""Error hierarchy for partition lifecycle operations."""
from __future__ import annotations


class PartitionManagerError(Exception):
    """Base class for all partition manager errors."""


class ConnectionFailure(PartitionManagerError):
    """Raised when the execution service cannot be reached or authenticated.

    Fatal for the whole invocation; never captured into a report.
    """


class BuildFailure(PartitionManagerError):
    """Raised when an operation document cannot be built from its inputs."""


class ExecutionFailure(PartitionManagerError):
    """Raised when the execution service rejects a create, delete or process call."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        if self.detail:
            return f"{base}: {self.detail}"
        return base


class ProcessingFailure(ExecutionFailure):
    """Raised when a processing (refresh) request fails."""


__all__ = [
    "BuildFailure",
    "ConnectionFailure",
    "ExecutionFailure",
    "PartitionManagerError",
    "ProcessingFailure",
]
