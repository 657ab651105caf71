"""Pytest configuration: local environment variables and an in-memory execution service."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

try:
    from tabular_partitions.env import load_env
except ImportError as exc:
    raise RuntimeError(
        "tabular_partitions is not importable. Activate your virtualenv and run "
        "'pip install -e .[test]' before running pytest."
    ) from exc

from tabular_partitions.config import RolloverPolicy, SessionSettings
from tabular_partitions.errors import ConnectionFailure, ExecutionFailure, ProcessingFailure

# Load default runtime env first, then overlay .env.test if provided
load_env()
test_env = Path(".env.test")
if test_env.exists():
    load_env(dotenv_path=test_env, override=True)


class FakeExecutionService:
    """Keeps partitions in memory; deleting a missing partition fails like the real service may."""

    def __init__(self) -> None:
        self.connected = False
        self.connect_error: Exception | None = None
        self.partitions: dict[tuple[str, str], set[str]] = {}
        self.calls: list[tuple] = []
        self.fail_create: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_process: set[str] = set()

    def is_connected(self) -> bool:
        return self.connected

    def connect(self, tenant: str, credential: str, location: str) -> None:
        self.calls.append(("connect", tenant, credential, location))
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def execute(self, document: str) -> None:
        if not self.connected:
            raise ConnectionFailure("not connected")
        payload = json.loads(document)
        if "createOrReplace" in payload:
            obj = payload["createOrReplace"]["object"]
            self.calls.append(("createOrReplace", obj["partition"]))
            if obj["partition"] in self.fail_create:
                raise ExecutionFailure("create rejected", detail=obj["partition"])
            self.partitions.setdefault((obj["database"], obj["table"]), set()).add(
                obj["partition"]
            )
            return
        obj = payload["delete"]["object"]
        self.calls.append(("delete", obj["partition"]))
        if obj["partition"] in self.fail_delete:
            raise ExecutionFailure("delete rejected", detail=obj["partition"])
        existing = self.partitions.get((obj["database"], obj["table"]), set())
        if obj["partition"] not in existing:
            raise ExecutionFailure("partition not found", detail=obj["partition"])
        existing.remove(obj["partition"])

    def process(self, request) -> None:
        if not self.connected:
            raise ConnectionFailure("not connected")
        self.calls.append(("process", request.target, request.refresh_mode))
        if request.target in self.fail_process:
            raise ProcessingFailure("refresh failed", detail=request.target)

    def existing(self, database: str, table: str) -> set[str]:
        return set(self.partitions.get((database, table), set()))

    def steps(self) -> list[tuple]:
        return [call for call in self.calls if call[0] != "connect"]


@pytest.fixture
def fake_service() -> FakeExecutionService:
    return FakeExecutionService()


@pytest.fixture
def settings() -> SessionSettings:
    return SessionSettings(
        tenant="tenant-id",
        credential="AAS",
        location="westeurope",
        server="analytics",
        refresh_mode="full",
        tmsl_endpoint="https://gateway.example.net/tmsl",
    )


@pytest.fixture
def policy() -> RolloverPolicy:
    return RolloverPolicy(
        database="Sales",
        table="FactSales",
        data_source="SqlDW",
        partition_prefix="Fact_",
        sql_template="SELECT * FROM dbo.FactSales WHERE {0}",
        placeholder_token="{0}",
        date_column="OrderDate",
        refresh_mode="automatic",
    )
