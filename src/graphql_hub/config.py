"""Environment-driven configuration using Pydantic Settings."""

import shlex
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration loaded from environment variables (and ``.env``).

    Used when no ``deployment.json`` is present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Projects
    projects_root: str = Field(default="colours/projects", description="Directory holding one folder per project")
    max_concurrent_loads: int = Field(default=8, ge=1, description="Projects loaded in parallel during reload")

    # Server settings
    hub_host: str = Field(default="127.0.0.1", description="Server bind address")
    hub_port: int = Field(default=8000, ge=1, le=65535, description="Server listen port")

    # Logging
    log_level: Literal["debug", "info", "warning", "error", "critical"] = Field(
        default="info", description="Root log level"
    )
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    # Provisioning
    provisioning_enabled: bool = Field(default=True, description="Run init/migrate commands for new projects")
    init_command: str = Field(default="npx prisma init", description="Datastore init command (shell-style)")
    migrate_command: str = Field(
        default="npx prisma migrate deploy", description="Datastore migration command (shell-style)"
    )
    datasource_provider: Literal["sqlite", "postgresql", "mysql", "sqlserver", "mongodb", "cockroachdb"] = Field(
        default="sqlite", description="Datasource provider passed to the init command"
    )
    datasource_url: str = Field(default="file:./dev.db", description="Datasource url passed to the init command")
    provision_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Timeout applied to each provisioning command"
    )

    def get_init_command(self) -> list[str]:
        """Init command split into argv form."""
        return shlex.split(self.init_command)

    def get_migrate_command(self) -> list[str]:
        return shlex.split(self.migrate_command)
