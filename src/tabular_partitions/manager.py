"""Caller-facing partition lifecycle operations."""
from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional, Tuple

from .config import RolloverPolicy, SessionSettings
from .executor import PartitionOperationExecutor
from .processing import ProcessingRequest
from .reports import OperationReport, RolloverReport
from .rollover import PlannedStep, RolloverScheduler, plan_year, plan_year_month
from .safe_delete import DeleteMode, PartitionIdentity, PlainDelete, delete_partition
from .service import AnalysisServicesClient, ExecutionService
from .tmsl import CreateOrReplace
from .windows import YEAR_FORMAT, TimeWindow, resolve_partition


class PartitionManager:
    """Binds session settings and an execution service to the lifecycle operations.

    Every operation that reaches the service first checks the connection;
    a ``ConnectionFailure`` propagates and nothing is sent.
    """

    def __init__(
        self,
        settings: SessionSettings,
        service: ExecutionService | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings
        self.service = service or AnalysisServicesClient.from_settings(settings)
        self.executor = PartitionOperationExecutor(self.service, settings)
        self._clock = clock

    def create_partition(
        self,
        database: str,
        table: str,
        partition: str,
        query: str,
        data_source: str,
        refresh_mode: Optional[str] = None,
    ) -> List[OperationReport]:
        self.executor.ensure_connected()
        return self.executor.execute(
            CreateOrReplace(
                database=database,
                table=table,
                partition=partition,
                query=query,
                data_source=data_source,
            ),
            refresh_mode=refresh_mode,
        )

    def create_time_based_partition(
        self,
        policy: RolloverPolicy,
        start: date,
        end: date,
        name_format: str = YEAR_FORMAT,
        process: bool = True,
    ) -> List[OperationReport]:
        """Create-or-replace the partition covering ``[start, end)``.

        Idempotent: the same inputs always resolve to the same name and query.
        """
        window = TimeWindow(start, end, policy.date_column)
        resolved = resolve_partition(
            template=policy.sql_template,
            placeholder=policy.placeholder_token,
            window=window,
            prefix=policy.partition_prefix,
            name_format=name_format,
        )
        refresh_mode = policy.refresh_mode if process and not policy.create_only else None
        return self.create_partition(
            database=policy.database,
            table=policy.table,
            partition=resolved.name,
            query=resolved.query,
            data_source=policy.data_source,
            refresh_mode=refresh_mode,
        )

    def delete_partition(
        self,
        database: str,
        table: str,
        partition: str,
        mode: DeleteMode = PlainDelete(),
    ) -> List[OperationReport]:
        self.executor.ensure_connected()
        return delete_partition(
            self.executor,
            PartitionIdentity(database=database, table=table, name=partition),
            mode,
        )

    def process(
        self,
        database: str,
        table: Optional[str] = None,
        partition: Optional[str] = None,
        refresh_mode: Optional[str] = None,
    ) -> OperationReport:
        request = ProcessingRequest.for_target(
            server=self.settings.server,
            database=database,
            refresh_mode=refresh_mode or self.settings.refresh_mode,
            table=table,
            partition=partition,
        )
        self.executor.ensure_connected()
        return self.executor.process(request)

    def plan_year_partition(
        self, policy: RolloverPolicy, today: Optional[date] = None
    ) -> Tuple[PlannedStep, ...]:
        return plan_year(policy, today or self._clock())

    def plan_year_month_partition(
        self, policy: RolloverPolicy, today: Optional[date] = None
    ) -> Tuple[PlannedStep, ...]:
        return plan_year_month(policy, today or self._clock())

    def manage_year_partition(
        self, policy: RolloverPolicy, today: Optional[date] = None
    ) -> RolloverReport:
        today = today or self._clock()
        self.executor.ensure_connected()
        return RolloverScheduler(self.executor, policy).run_year(today)

    def manage_year_month_partition(
        self, policy: RolloverPolicy, today: Optional[date] = None
    ) -> RolloverReport:
        today = today or self._clock()
        self.executor.ensure_connected()
        return RolloverScheduler(self.executor, policy).run_year_month(today)


__all__ = ["PartitionManager"]
