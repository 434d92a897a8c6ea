"""Project registry: the authoritative alias -> loaded project mapping.

Readers (the router, the root GraphQL surface) call ``lookup`` /
``list_projects`` against the current snapshot. Writers (``reload``,
``create_project``) build a complete new mapping and publish it with a single
reference assignment, so a reader sees either the previous snapshot or the new
one, never a mix.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Protocol
from uuid import uuid4

from graphql_hub.domain.alias import normalize_alias
from graphql_hub.domain.model import LoadedProject, Project, ProjectInput, ProjectMeta
from graphql_hub.errors import AliasTakenError, ProvisioningError, TenantArtifactError
from graphql_hub.observability import PROJECT_LOAD_FAILURES, PROJECTS_LOADED, RELOAD_COUNT, create_span
from graphql_hub.provisioning import DatasourceConfig, ProvisionWorker
from graphql_hub.store import ProjectDirectory, discard, promote, scan_aliases, staging_directory


logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_LOADS = 8


class ProjectLoader(Protocol):
    def load(self, alias: str) -> LoadedProject: ...


def _generate_id() -> str:
    return uuid4().hex


class ProjectRegistry:
    """Discovers, loads, holds, reloads and creates projects.

    Usage:
        registry = ProjectRegistry(root, SchemaLoader(root), ProvisionWorker())
        await registry.reload()
        loaded = registry.lookup("demo-project")
    """

    def __init__(
        self,
        projects_root: Path | str,
        loader: ProjectLoader,
        provisioner: ProvisionWorker | None = None,
        *,
        datasource: DatasourceConfig | None = None,
        max_concurrent_loads: int = DEFAULT_MAX_CONCURRENT_LOADS,
        id_factory: Callable[[], str] = _generate_id,
    ) -> None:
        self.projects_root = Path(projects_root)
        self.loader = loader
        self.provisioner = provisioner
        self.datasource = datasource or DatasourceConfig()
        self.max_concurrent_loads = max_concurrent_loads
        self._id_factory = id_factory

        self._snapshot: Mapping[str, LoadedProject] = MappingProxyType({})
        self._last_reload_failures: Mapping[str, str] = MappingProxyType({})
        self._reload_lock = asyncio.Lock()
        # Entries exist only while some create_project call holds or awaits them.
        self._alias_locks: dict[str, asyncio.Lock] = {}
        self._alias_lock_users: Counter[str] = Counter()

    @property
    def snapshot(self) -> Mapping[str, LoadedProject]:
        return self._snapshot

    @property
    def last_reload_failures(self) -> Mapping[str, str]:
        """Aliases skipped by the most recent reload, with the reason."""
        return self._last_reload_failures

    @property
    def provisioning_enabled(self) -> bool:
        return self.provisioner is not None

    def lookup(self, alias: str) -> LoadedProject | None:
        return self._snapshot.get(alias)

    def list_projects(self) -> list[LoadedProject]:
        snapshot = self._snapshot
        return [snapshot[alias] for alias in sorted(snapshot)]

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, alias: object) -> bool:
        return alias in self._snapshot

    async def reload(self) -> Mapping[str, LoadedProject]:
        """Rescan the projects root and publish a fresh snapshot.

        Projects that fail to load are logged and left out; they never fail the
        reload as a whole.
        """
        async with self._reload_lock:
            with create_span("registry.reload", attributes={"hub.projects_root": str(self.projects_root)}):
                try:
                    aliases = await asyncio.to_thread(self._scan)
                except OSError:
                    RELOAD_COUNT.labels(outcome="error").inc()
                    logger.exception("Cannot scan projects root %s", self.projects_root)
                    raise

                semaphore = asyncio.Semaphore(self.max_concurrent_loads)
                results = await asyncio.gather(*(self._load_one(alias, semaphore) for alias in aliases))

                loaded: dict[str, LoadedProject] = {}
                failures: dict[str, str] = {}
                for alias, project, error in results:
                    if project is not None:
                        loaded[alias] = project
                    else:
                        failures[alias] = error or "unknown error"

                snapshot = MappingProxyType(loaded)
                self._snapshot = snapshot
                self._last_reload_failures = MappingProxyType(failures)

            RELOAD_COUNT.labels(outcome="success").inc()
            PROJECTS_LOADED.labels(registry="default").set(len(snapshot))
            logger.info("Registry reloaded: %d projects loaded, %d skipped", len(loaded), len(failures))
            return snapshot

    def _scan(self) -> list[str]:
        self.projects_root.mkdir(parents=True, exist_ok=True)
        return scan_aliases(self.projects_root)

    async def _load_one(
        self, alias: str, semaphore: asyncio.Semaphore
    ) -> tuple[str, LoadedProject | None, str | None]:
        async with semaphore:
            try:
                return alias, await asyncio.to_thread(self.loader.load, alias), None
            except TenantArtifactError as exc:
                logger.warning("Skipping project %s: %s", alias, exc)
                PROJECT_LOAD_FAILURES.labels(project=alias).inc()
                return alias, None, str(exc)
            except Exception as exc:
                logger.error("Unexpected error loading project %s: %s", alias, exc, exc_info=True)
                PROJECT_LOAD_FAILURES.labels(project=alias).inc()
                return alias, None, repr(exc)

    async def create_project(self, project_input: ProjectInput) -> Project:
        """Validate, provision, persist and publish a new project.

        Nothing is written under ``<root>/<alias>`` unless provisioning
        succeeds; work happens in a hidden staging directory that is renamed
        into place at the end.

        Raises:
            InvalidAliasError: alias malformed, too short or reserved.
            AliasTakenError: alias already used.
            ProvisioningError: datastore provisioning or artifact writing failed.
        """
        project_id = self._id_factory()
        alias = normalize_alias(project_input.alias, project_input.name, project_id)
        meta = ProjectMeta(id=project_id, name=project_input.name.strip() or None)

        async with self._alias_lock(alias):
            target = ProjectDirectory(self.projects_root, alias)
            if alias in self._snapshot or target.exists():
                raise AliasTakenError("Project alias is taken")

            project = Project.from_meta(alias, meta, target.path)
            staging = staging_directory(self.projects_root, alias, project_id)
            logger.info("Creating project %s (%s) in %s", alias, project_id, staging.path)

            with create_span("registry.create_project", attributes={"hub.project": alias}):
                promoted = False
                try:
                    await asyncio.to_thread(staging.path.mkdir, parents=True)
                    if self.provisioner is not None:
                        await self.provisioner.provision(project, self.datasource, staging.path)
                    await asyncio.to_thread(self._persist, staging, target, meta)
                    promoted = True
                except FileExistsError as exc:
                    raise AliasTakenError("Project alias is taken") from exc
                except OSError as exc:
                    raise ProvisioningError(f"Failed to write project artifacts: {exc}", output=str(exc)) from exc
                finally:
                    # Also runs on cancellation; kept synchronous so it cannot be interrupted.
                    if not promoted:
                        discard(staging)

        await self.reload()
        logger.info("Project %s created", alias)
        return project

    @asynccontextmanager
    async def _alias_lock(self, alias: str) -> AsyncIterator[None]:
        lock = self._alias_locks.setdefault(alias, asyncio.Lock())
        self._alias_lock_users[alias] += 1
        try:
            async with lock:
                yield
        finally:
            self._alias_lock_users[alias] -= 1
            if not self._alias_lock_users[alias]:
                del self._alias_lock_users[alias]
                del self._alias_locks[alias]

    @staticmethod
    def _persist(staging: ProjectDirectory, target: ProjectDirectory, meta: ProjectMeta) -> None:
        staging.write_artifacts(meta)
        promote(staging, target)
