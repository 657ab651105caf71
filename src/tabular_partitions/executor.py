"""Sends partition operations to the execution service."""
from __future__ import annotations

import logging
from typing import List, Optional

from .config import SessionSettings
from .errors import ConnectionFailure, ExecutionFailure, ProcessingFailure
from .processing import ProcessingRequest
from .reports import CREATE, DELETE, PROCESS, OperationReport
from .service import ExecutionService
from .tmsl import CreateOrReplace, PartitionOperation, build_document

logger = logging.getLogger(__name__)


def operation_target(operation: PartitionOperation) -> str:
    return f"{operation.database}/{operation.table}/{operation.partition}"


class PartitionOperationExecutor:
    """The only component that talks to the execution service."""

    def __init__(self, service: ExecutionService, settings: SessionSettings) -> None:
        self.service = service
        self.settings = settings

    def ensure_connected(self) -> None:
        """Connect once if needed; ``ConnectionFailure`` aborts the caller's operation."""
        if self.service.is_connected():
            return
        logger.info(
            "Connecting to %s (tenant=%s location=%s)",
            self.settings.server,
            self.settings.tenant,
            self.settings.location,
        )
        self.service.connect(
            self.settings.tenant, self.settings.credential, self.settings.location
        )
        if not self.service.is_connected():
            raise ConnectionFailure(
                f"Execution service for {self.settings.server} did not report a connection"
            )

    def execute(
        self, operation: PartitionOperation, refresh_mode: Optional[str] = None
    ) -> List[OperationReport]:
        """Run ``operation``; a create may chain a partition refresh.

        The refresh is a separate report. When it fails the create still
        counts as done and is not rolled back.
        """
        target = operation_target(operation)
        step = CREATE if isinstance(operation, CreateOrReplace) else DELETE
        document = build_document(operation, strict=self.settings.strict_documents)
        logger.info("Running %s for %s", operation.kind, target)
        try:
            self.service.execute(document)
        except ExecutionFailure as exc:
            logger.error("%s of %s failed: %s", step, target, exc)
            return [OperationReport.failure(target, step, exc)]

        reports = [OperationReport.success(target, step)]
        if isinstance(operation, CreateOrReplace) and refresh_mode:
            request = ProcessingRequest.for_target(
                server=self.settings.server,
                database=operation.database,
                refresh_mode=refresh_mode,
                table=operation.table,
                partition=operation.partition,
            )
            reports.append(self.process(request))
        return reports

    def process(self, request: ProcessingRequest) -> OperationReport:
        logger.info("Processing %s (refresh=%s)", request.target, request.refresh_mode)
        try:
            self.service.process(request)
        except ExecutionFailure as exc:
            if not isinstance(exc, ProcessingFailure):
                exc = ProcessingFailure(exc.args[0], detail=exc.detail)
            logger.error("Processing of %s failed: %s", request.target, exc)
            return OperationReport.failure(request.target, PROCESS, exc)
        return OperationReport.success(request.target, PROCESS)


__all__ = ["PartitionOperationExecutor", "operation_target"]
