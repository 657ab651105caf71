"""Typed configuration loader for partition lifecycle jobs."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .env import load_env
from .processing import FULL_REFRESH
from .windows import DEFAULT_PLACEHOLDER

load_env()

DEFAULT_CONFIG_PATH = "config/partitions.yaml"


class SessionSettings(BaseModel):
    """Connection and execution defaults threaded through every operation."""

    model_config = ConfigDict(frozen=True)

    tenant: str
    credential: str = Field("AAS", description="Environment prefix of the client credentials")
    location: str
    server: str
    refresh_mode: str = FULL_REFRESH
    tmsl_endpoint: Optional[str] = None
    timeout_seconds: float = 600.0
    poll_interval_seconds: float = 10.0
    strict_documents: bool = False

    @field_validator("location", mode="before")
    @classmethod
    def _normalize_location(cls, value):
        if value is None:
            return value
        return str(value).replace(" ", "").lower()

    @field_validator("tenant", "server", mode="before")
    @classmethod
    def _ensure_string(cls, value):
        if value is None:
            return value
        return str(value)


class RolloverPolicy(BaseModel):
    """Immutable inputs of one rollover evaluation."""

    model_config = ConfigDict(frozen=True)

    database: str
    table: str
    data_source: str
    partition_prefix: str = ""
    sql_template: str
    placeholder_token: str = DEFAULT_PLACEHOLDER
    date_column: str
    refresh_mode: str = FULL_REFRESH
    create_only: bool = False

    @field_validator("sql_template", "date_column", "placeholder_token")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PolicyDefinition(BaseModel):
    """A named policy as written in YAML; refresh mode may defer to the session."""

    name: str
    database: str
    table: str
    data_source: str
    partition_prefix: str = ""
    sql_template: str
    placeholder_token: str = DEFAULT_PLACEHOLDER
    date_column: str
    refresh_mode: Optional[str] = None
    create_only: bool = False

    def to_policy(self, default_refresh_mode: str) -> RolloverPolicy:
        payload = self.model_dump(exclude={"name"})
        payload["refresh_mode"] = self.refresh_mode or default_refresh_mode
        return RolloverPolicy(**payload)


class PartitionConfig(BaseModel):
    session: SessionSettings
    partitions: List[PolicyDefinition] = Field(default_factory=list)

    @field_validator("partitions")
    @classmethod
    def _unique_names(cls, value: List[PolicyDefinition]) -> List[PolicyDefinition]:
        names = [item.name for item in value]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate partition policy names: {', '.join(duplicates)}")
        return value


class ConfigLoader:
    """Loads YAML driven configuration and validates it with Pydantic."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.config_path = Path(
            path or os.getenv("TABULAR_PARTITIONS_CONFIG", DEFAULT_CONFIG_PATH)
        )
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        self.model = self._parse_yaml()

    def _parse_yaml(self) -> PartitionConfig:
        raw: dict
        with self.config_path.open("r", encoding="utf-8") as fp:
            raw = yaml.safe_load(fp) or {}
        try:
            return PartitionConfig(**raw)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc

    @property
    def session(self) -> SessionSettings:
        return self.model.session

    def get_policy(self, name: str) -> RolloverPolicy:
        for definition in self.model.partitions:
            if definition.name == name:
                return definition.to_policy(self.model.session.refresh_mode)
        raise KeyError(f"Partition policy '{name}' not found in configuration")


__all__ = [
    "ConfigLoader",
    "PartitionConfig",
    "PolicyDefinition",
    "RolloverPolicy",
    "SessionSettings",
]
