"""Command line interface for partition lifecycle jobs."""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import typer

from .config import ConfigLoader, RolloverPolicy, SessionSettings
from .errors import ConnectionFailure
from .manager import PartitionManager
from .reports import OperationReport, format_plan, format_reports, format_rollover
from .rollover import describe_step
from .safe_delete import PlainDelete, RecreateSpec, SafeDelete
from .windows import YEAR_FORMAT

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

app = typer.Typer(help="Tabular partition lifecycle controller")
partition_app = typer.Typer(help="Single partition commands")
app.add_typer(partition_app, name="partition")
rollover_app = typer.Typer(help="Calendar rollover commands")
app.add_typer(rollover_app, name="rollover")


@dataclass
class CliState:
    config_path: Optional[str] = None
    overrides: Dict[str, str] = field(default_factory=dict)
    output_format: str = "table"
    _loader: Optional[ConfigLoader] = None

    @property
    def loader(self) -> ConfigLoader:
        if self._loader is None:
            try:
                self._loader = ConfigLoader(path=self.config_path)
            except (FileNotFoundError, ValueError) as exc:
                typer.echo(str(exc), err=True)
                raise typer.Exit(code=2)
        return self._loader

    def settings(self) -> SessionSettings:
        return self.loader.session.model_copy(update=self.overrides)

    def policy(self, name: str, create_only: bool = False) -> RolloverPolicy:
        try:
            policy = self.loader.get_policy(name)
        except KeyError as exc:
            typer.echo(exc.args[0], err=True)
            raise typer.Exit(code=2)
        if create_only:
            policy = policy.model_copy(update={"create_only": True})
        return policy


def _build_manager(settings: SessionSettings) -> PartitionManager:
    return PartitionManager(settings)


def _parse_day(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        typer.echo(f"Invalid date '{value}', expected YYYY-MM-DD", err=True)
        raise typer.Exit(code=2)


def _finish(reports: List[OperationReport], rendered: str) -> None:
    typer.echo(rendered)
    if any(not report.ok for report in reports):
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", help="Path to the YAML configuration"),
    tenant: Optional[str] = typer.Option(None, "--tenant"),
    location: Optional[str] = typer.Option(None, "--location"),
    server: Optional[str] = typer.Option(None, "--server"),
    credential: Optional[str] = typer.Option(
        None, "--credential", help="Environment prefix of the client credentials"
    ),
    output_format: str = typer.Option("table", "--format", help="table or json"),
) -> None:
    """Connection overrides apply on top of the configured session."""
    overrides = {
        key: value
        for key, value in (
            ("tenant", tenant),
            ("location", location),
            ("server", server),
            ("credential", credential),
        )
        if value is not None
    }
    if "location" in overrides:
        overrides["location"] = overrides["location"].replace(" ", "").lower()
    ctx.obj = CliState(config_path=config, overrides=overrides, output_format=output_format)


@partition_app.command("create")
def partition_create(
    ctx: typer.Context,
    database: str = typer.Option(..., "--database"),
    table: str = typer.Option(..., "--table"),
    partition: str = typer.Option(..., "--partition"),
    query: str = typer.Option(..., "--query"),
    data_source: str = typer.Option(..., "--data-source"),
    process: bool = typer.Option(True, "--process/--no-process"),
    refresh_mode: Optional[str] = typer.Option(None, "--refresh-mode"),
) -> None:
    """Create or replace one partition from an explicit query."""
    state: CliState = ctx.obj
    settings = state.settings()
    manager = _build_manager(settings)
    mode = (refresh_mode or settings.refresh_mode) if process else None
    try:
        reports = manager.create_partition(database, table, partition, query, data_source, mode)
    except ConnectionFailure as exc:
        typer.echo(f"Connection failed: {exc}", err=True)
        raise typer.Exit(code=2)
    _finish(reports, format_reports(reports, state.output_format))


@partition_app.command("create-window")
def partition_create_window(
    ctx: typer.Context,
    policy_name: str = typer.Option(..., "--policy"),
    start: str = typer.Option(..., "--start", help="Inclusive start date (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", help="Exclusive end date (YYYY-MM-DD)"),
    name_format: str = typer.Option(YEAR_FORMAT, "--name-format"),
    process: bool = typer.Option(True, "--process/--no-process"),
) -> None:
    """Create or replace the partition of a configured policy for [start, end)."""
    state: CliState = ctx.obj
    policy = state.policy(policy_name)
    start_date = _parse_day(start)
    end_date = _parse_day(end)
    if start_date >= end_date:
        typer.echo("start must be < end", err=True)
        raise typer.Exit(code=2)
    manager = _build_manager(state.settings())
    try:
        reports = manager.create_time_based_partition(
            policy, start_date, end_date, name_format=name_format, process=process
        )
    except ConnectionFailure as exc:
        typer.echo(f"Connection failed: {exc}", err=True)
        raise typer.Exit(code=2)
    _finish(reports, format_reports(reports, state.output_format))


@partition_app.command("delete")
def partition_delete(
    ctx: typer.Context,
    database: str = typer.Option(..., "--database"),
    table: str = typer.Option(..., "--table"),
    partition: str = typer.Option(..., "--partition"),
    safe: bool = typer.Option(False, "--safe", help="Recreate the partition before deleting it"),
    query: Optional[str] = typer.Option(None, "--query"),
    data_source: Optional[str] = typer.Option(None, "--data-source"),
) -> None:
    """Delete one partition, optionally through create-then-delete."""
    state: CliState = ctx.obj
    if safe:
        if not query or not data_source:
            typer.echo("--safe requires --query and --data-source", err=True)
            raise typer.Exit(code=2)
        mode = SafeDelete(RecreateSpec(query=query, data_source=data_source))
    else:
        mode = PlainDelete()
    manager = _build_manager(state.settings())
    try:
        reports = manager.delete_partition(database, table, partition, mode)
    except ConnectionFailure as exc:
        typer.echo(f"Connection failed: {exc}", err=True)
        raise typer.Exit(code=2)
    _finish(reports, format_reports(reports, state.output_format))


@partition_app.command("process")
def partition_process(
    ctx: typer.Context,
    database: str = typer.Option(..., "--database"),
    table: Optional[str] = typer.Option(None, "--table"),
    partition: Optional[str] = typer.Option(None, "--partition"),
    refresh_mode: Optional[str] = typer.Option(None, "--refresh-mode"),
) -> None:
    """Refresh a database, a table or a single partition."""
    state: CliState = ctx.obj
    if partition and not table:
        typer.echo("--partition requires --table", err=True)
        raise typer.Exit(code=2)
    manager = _build_manager(state.settings())
    try:
        report = manager.process(database, table, partition, refresh_mode)
    except ConnectionFailure as exc:
        typer.echo(f"Connection failed: {exc}", err=True)
        raise typer.Exit(code=2)
    _finish([report], format_reports([report], state.output_format))


def _rollover(
    ctx: typer.Context,
    policy_name: str,
    today: Optional[str],
    create_only: bool,
    plan_only: bool,
    monthly: bool,
) -> None:
    state: CliState = ctx.obj
    policy = state.policy(policy_name, create_only=create_only)
    day = _parse_day(today)
    logger.info(
        "Starting %s rollover policy=%s today=%s create_only=%s plan=%s",
        "year-month" if monthly else "year",
        policy_name,
        day or "system clock",
        policy.create_only,
        plan_only,
    )
    manager = _build_manager(state.settings())
    if plan_only:
        if monthly:
            steps = manager.plan_year_month_partition(policy, day)
        else:
            steps = manager.plan_year_partition(policy, day)
        typer.echo(format_plan([describe_step(policy, step) for step in steps], state.output_format))
        return
    try:
        if monthly:
            report = manager.manage_year_month_partition(policy, day)
        else:
            report = manager.manage_year_partition(policy, day)
    except ConnectionFailure as exc:
        typer.echo(f"Connection failed: {exc}", err=True)
        raise typer.Exit(code=2)
    _finish(report.reports, format_rollover(report, state.output_format))


@rollover_app.command("year")
def rollover_year(
    ctx: typer.Context,
    policy_name: str = typer.Option(..., "--policy"),
    today: Optional[str] = typer.Option(None, "--today", help="Evaluate as of this date"),
    create_only: bool = typer.Option(False, "--create-only", help="Skip processing"),
    plan_only: bool = typer.Option(False, "--plan", help="Print the plan without running it"),
) -> None:
    """Keep the current year's partition fresh; refresh last year during the grace window."""
    _rollover(ctx, policy_name, today, create_only, plan_only, monthly=False)


@rollover_app.command("year-month")
def rollover_year_month(
    ctx: typer.Context,
    policy_name: str = typer.Option(..., "--policy"),
    today: Optional[str] = typer.Option(None, "--today", help="Evaluate as of this date"),
    create_only: bool = typer.Option(False, "--create-only", help="Skip processing"),
    plan_only: bool = typer.Option(False, "--plan", help="Print the plan without running it"),
) -> None:
    """Monthly partitions, consolidated into a yearly partition every January 1st."""
    _rollover(ctx, policy_name, today, create_only, plan_only, monthly=True)


if __name__ == "__main__":
    app()
