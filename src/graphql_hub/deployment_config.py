"""Deployment configuration (``deployment.json``) using Pydantic.

Example:
    {
        "infrastructure": {"host": "0.0.0.0", "port": 8000, "log_profile": "default"},
        "projects": {"root": "colours/projects"},
        "provisioning": {
            "enabled": true,
            "init_command": ["npx", "prisma", "init"],
            "migrate_command": ["npx", "prisma", "migrate", "deploy"],
            "datasource": {"datasourceProvider": "sqlite", "url": "file:./dev.db"}
        }
    }
"""

import json
import os
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from graphql_hub.provisioning import (
    DEFAULT_INIT_COMMAND,
    DEFAULT_MIGRATE_COMMAND,
    DEFAULT_TIMEOUT_SECONDS,
    DatasourceConfig,
)


_LOG_LEVEL_PATTERN = r"^(debug|info|warning|error|critical)$"


class LogProfileConfig(BaseModel):
    """Named logging profile (quiet production vs. verbose debugging)."""

    model_config = {"extra": "forbid"}

    level: Annotated[str, Field(pattern=_LOG_LEVEL_PATTERN, description="Root log level")] = "info"
    json_output: Annotated[bool, Field(description="Emit structured JSON logs")] = True
    trace_categories: Annotated[
        list[str],
        Field(description="Logger names to set at trace_level", examples=[["graphql_hub.registry"]]),
    ] = Field(default_factory=list)
    trace_level: Annotated[str, Field(pattern=_LOG_LEVEL_PATTERN)] = "debug"
    logger_levels: Annotated[
        dict[str, str],
        Field(description="Per-logger level overrides", examples=[{"uvicorn.access": "warning"}]),
    ] = Field(default_factory=dict)
    access_log: Annotated[bool, Field(description="Enable uvicorn access logging")] = False

    @field_validator("logger_levels")
    @classmethod
    def validate_logger_levels(cls, value: dict[str, str]) -> dict[str, str]:
        allowed_levels = {"debug", "info", "warning", "error", "critical"}
        invalid = {name: level for name, level in value.items() if level not in allowed_levels}
        if invalid:
            details = ", ".join(f"{name}={level}" for name, level in invalid.items())
            raise ValueError(f"Invalid log level(s) in logger_levels: {details}")
        return value


class ObservabilityCollectorConfig(BaseModel):
    """OTLP export settings."""

    model_config = {"extra": "forbid"}

    enabled: bool = False
    otlp_protocol: Literal["http", "grpc"] = "grpc"
    collector_endpoint: Annotated[
        str,
        Field(examples=["http://localhost:4317", "http://localhost:4318/v1/traces"]),
    ] = "http://localhost:4317"
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: Annotated[int, Field(ge=1, le=60)] = 10
    grpc_insecure: bool = True
    resource_attributes: dict[str, str] = Field(default_factory=dict)


class InfrastructureConfig(BaseModel):
    """HTTP server, logging and observability settings."""

    model_config = {"extra": "forbid"}

    host: str = "0.0.0.0"
    port: Annotated[int, Field(ge=1, le=65535)] = 8000
    log_profile: str = "default"
    log_profiles: dict[str, LogProfileConfig] = Field(default_factory=lambda: {"default": LogProfileConfig()})
    observability_collector: ObservabilityCollectorConfig = Field(default_factory=ObservabilityCollectorConfig)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "testserver"])
    max_concurrent_loads: Annotated[
        int,
        Field(ge=1, le=256, description="Projects loaded in parallel during reload"),
    ] = 8

    @model_validator(mode="after")
    def validate_log_profile_exists(self) -> "InfrastructureConfig":
        if self.log_profile not in self.log_profiles:
            available = ", ".join(sorted(self.log_profiles))
            raise ValueError(f"log_profile '{self.log_profile}' not found in log_profiles. Available: {available}")
        return self

    def get_active_log_profile(self) -> LogProfileConfig:
        return self.log_profiles[self.log_profile]

    @property
    def debug(self) -> bool:
        return self.get_active_log_profile().level == "debug"


class ProjectsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    root: Annotated[str, Field(min_length=1, description="Directory holding one folder per project")] = (
        "colours/projects"
    )

    @property
    def root_path(self) -> Path:
        return Path(self.root).expanduser()


class ProvisioningConfig(BaseModel):
    """External init/migrate commands run when a project is created."""

    model_config = {"extra": "forbid"}

    enabled: bool = True
    init_command: Annotated[list[str], Field(min_length=1)] = Field(
        default_factory=lambda: list(DEFAULT_INIT_COMMAND)
    )
    migrate_command: Annotated[list[str], Field(min_length=1)] = Field(
        default_factory=lambda: list(DEFAULT_MIGRATE_COMMAND)
    )
    datasource: DatasourceConfig = Field(default_factory=DatasourceConfig)
    timeout_seconds: Annotated[
        float | None,
        Field(gt=0, description="Per-command timeout; null disables it"),
    ] = DEFAULT_TIMEOUT_SECONDS


class DeploymentConfig(BaseModel):
    """Complete configuration of one hub process."""

    model_config = {"extra": "forbid"}

    infrastructure: InfrastructureConfig = Field(default_factory=InfrastructureConfig)
    projects: ProjectsConfig = Field(default_factory=ProjectsConfig)
    provisioning: ProvisioningConfig = Field(default_factory=ProvisioningConfig)

    @classmethod
    def from_json_file(cls, path: Path) -> "DeploymentConfig":
        """Load configuration from JSON.

        ``PROJECTS_ROOT`` in the environment overrides ``projects.root``.

        Raises:
            FileNotFoundError: If the file doesn't exist
            pydantic.ValidationError: If the config is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Deployment config not found: {path}")

        with path.open() as f:
            data = json.load(f)

        if projects_root := os.environ.get("PROJECTS_ROOT"):
            data.setdefault("projects", {})["root"] = projects_root

        return cls.model_validate(data)
