"""Datastore provisioning for newly created projects.

Provisioning runs two external commands inside the project's working
directory: an ``init`` command whose flags are derived from a
``DatasourceConfig`` record, followed by a ``migrate`` command. Both must exit
with status zero.
"""

from __future__ import annotations

import asyncio
from asyncio.subprocess import PIPE
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from time import perf_counter
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from graphql_hub.domain.model import Project
from graphql_hub.errors import ProvisioningError
from graphql_hub.observability.metrics import PROVISION_DURATION


logger = logging.getLogger(__name__)

DEFAULT_INIT_COMMAND: tuple[str, ...] = ("npx", "prisma", "init")
DEFAULT_MIGRATE_COMMAND: tuple[str, ...] = ("npx", "prisma", "migrate", "deploy")
DEFAULT_TIMEOUT_SECONDS = 300.0

_UPPER = re.compile(r"[A-Z]")

DatasourceProvider = Literal["sqlite", "postgresql", "mysql", "sqlserver", "mongodb", "cockroachdb"]


class DatasourceConfig(BaseModel):
    """Options passed to the init command (``--datasource-provider``, ``--url``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    datasource_provider: DatasourceProvider = "sqlite"
    url: str = "file:./dev.db"

    def as_options(self) -> dict[str, Any]:
        """Camel-cased option record, the input of ``build_flag_arguments``."""
        return self.model_dump(by_alias=True, exclude_none=True)


def to_kebab(key: str) -> str:
    return _UPPER.sub(lambda match: f"-{match.group(0).lower()}", key).lstrip("-")


def build_flag_arguments(options: Mapping[str, Any]) -> list[str]:
    """Serialize an option record into command-line flags.

    ``{"datasourceProvider": "sqlite", "force": True}`` becomes
    ``["--datasource-provider", "sqlite", "--force"]``. ``False`` and ``None``
    values are dropped.
    """
    arguments: list[str] = []
    for key, value in options.items():
        if value is None or value is False:
            continue
        flag = f"--{to_kebab(key)}"
        if value is True:
            arguments.append(flag)
        else:
            arguments.extend([flag, str(value)])
    return arguments


@dataclass(slots=True)
class CommandResult:
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    async def run(self, command: Sequence[str], *, cwd: Path, timeout: float | None) -> CommandResult: ...


class SubprocessCommandRunner:
    """Run commands with ``asyncio.create_subprocess_exec``.

    Output is stderr when the command wrote any, otherwise stdout.
    """

    async def run(self, command: Sequence[str], *, cwd: Path, timeout: float | None) -> CommandResult:
        try:
            process = await asyncio.create_subprocess_exec(*command, cwd=str(cwd), stdout=PIPE, stderr=PIPE)
        except OSError as exc:
            raise ProvisioningError(
                f"Failed to start {command[0]}: {exc}",
                output=str(exc),
                command=list(command),
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ProvisioningError(
                f"Command timed out after {timeout:.0f}s: {' '.join(command)}",
                output=f"timed out after {timeout}s",
                command=list(command),
            ) from exc
        except asyncio.CancelledError:
            logger.warning("Provisioning cancelled; killing %s (pid %s)", command[0], process.pid)
            process.kill()
            await asyncio.shield(process.wait())
            raise

        stderr_text = stderr.decode(errors="replace").strip()
        stdout_text = stdout.decode(errors="replace").strip()
        return CommandResult(returncode=process.returncode or 0, output=stderr_text or stdout_text)


@dataclass(slots=True)
class ProvisionResult:
    project_alias: str
    duration_seconds: float
    outputs: list[str] = field(default_factory=list)


class ProvisionWorker:
    """Initializes and migrates the datastore of a new project."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        init_command: Sequence[str] = DEFAULT_INIT_COMMAND,
        migrate_command: Sequence[str] = DEFAULT_MIGRATE_COMMAND,
        timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.runner = runner or SubprocessCommandRunner()
        self.init_command = list(init_command)
        self.migrate_command = list(migrate_command)
        self.timeout_seconds = timeout_seconds
        self._in_flight: set[str] = set()

    def is_provisioning(self, alias: str) -> bool:
        return alias in self._in_flight

    async def provision(self, project: Project, datasource: DatasourceConfig, directory: Path) -> ProvisionResult:
        """Run init then migrate in ``directory``.

        Raises:
            ProvisioningError: on spawn failure, timeout, non-zero exit, or when
                the same project is already being provisioned.
        """
        if project.alias in self._in_flight:
            raise ProvisioningError(f"Provisioning already in progress for '{project.alias}'")

        self._in_flight.add(project.alias)
        start = perf_counter()
        outcome = "error"
        try:
            init = [*self.init_command, *build_flag_arguments(datasource.as_options())]
            outputs = [
                await self._run_step("init", project, init, directory),
                await self._run_step("migrate", project, self.migrate_command, directory),
            ]
            outcome = "success"
        finally:
            self._in_flight.discard(project.alias)
            PROVISION_DURATION.labels(outcome=outcome).observe(perf_counter() - start)

        duration = perf_counter() - start
        logger.info("[%s] Provisioning complete in %.2fs", project.alias, duration)
        return ProvisionResult(project_alias=project.alias, duration_seconds=duration, outputs=outputs)

    async def _run_step(self, step: str, project: Project, command: list[str], directory: Path) -> str:
        logger.info("[%s] Running %s: %s", project.alias, step, " ".join(command))
        result = await self.runner.run(command, cwd=directory, timeout=self.timeout_seconds)
        if not result.ok:
            logger.warning("[%s] %s exited with %d: %s", project.alias, step, result.returncode, result.output)
            raise ProvisioningError(
                f"{step} failed with exit code {result.returncode}",
                output=result.output,
                command=command,
                returncode=result.returncode,
            )
        return result.output
