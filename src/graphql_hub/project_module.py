"""Project modules: the schema + resolver pair a project serves.

The registry only sees ``ProjectModule`` values produced by a
``ProjectModuleLoader``. ``FilesystemModuleLoader`` is the default loader and
reads ``typeDefs.graphql`` / ``resolvers.py`` from the project directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import importlib.util
import logging
from typing import Any, Protocol

from ariadne import load_schema_from_path
from ariadne.exceptions import GraphQLFileSyntaxError

from graphql_hub.errors import TenantArtifactError
from graphql_hub.store import RESOLVERS_FILENAME, TYPE_DEFS_FILENAME, ProjectDirectory


logger = logging.getLogger(__name__)

RESOLVERS_ATTRIBUTE = "resolvers"


@dataclass(frozen=True)
class ProjectModule:
    """Schema definition and resolver map of one project.

    ``resolvers`` maps GraphQL type names to either a ``{field: callable}``
    mapping or a ready-made ariadne bindable (e.g. ``ScalarType``).
    """

    type_defs: str
    resolvers: Mapping[str, Any] = field(default_factory=dict)


class ProjectModuleLoader(Protocol):
    def load(self, directory: ProjectDirectory) -> ProjectModule: ...


class FilesystemModuleLoader:
    """Load project modules from files inside the project directory."""

    def __init__(self, module_namespace: str = "graphql_hub_projects") -> None:
        self.module_namespace = module_namespace

    def load(self, directory: ProjectDirectory) -> ProjectModule:
        type_defs = self._load_type_defs(directory)
        resolvers = self._load_resolvers(directory)
        return ProjectModule(type_defs=type_defs, resolvers=resolvers)

    def _load_type_defs(self, directory: ProjectDirectory) -> str:
        path = directory.type_defs_path
        if not path.is_file():
            raise TenantArtifactError(directory.alias, f"missing {TYPE_DEFS_FILENAME}")
        try:
            return load_schema_from_path(str(path))
        except GraphQLFileSyntaxError as exc:
            raise TenantArtifactError(directory.alias, f"invalid {TYPE_DEFS_FILENAME}: {exc}") from exc
        except OSError as exc:
            raise TenantArtifactError(directory.alias, f"cannot read {TYPE_DEFS_FILENAME}: {exc}") from exc

    def _load_resolvers(self, directory: ProjectDirectory) -> Mapping[str, Any]:
        path = directory.resolvers_path
        if not path.is_file():
            raise TenantArtifactError(directory.alias, f"missing {RESOLVERS_FILENAME}")

        # Modules are not cached in sys.modules so every reload re-executes the file.
        spec = importlib.util.spec_from_file_location(f"{self.module_namespace}.{directory.alias}", path)
        if spec is None or spec.loader is None:
            raise TenantArtifactError(directory.alias, f"cannot import {RESOLVERS_FILENAME}")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except (Exception, SystemExit, KeyboardInterrupt) as exc:
            # sys.exit() in project code stays contained to that project.
            raise TenantArtifactError(directory.alias, f"error executing {RESOLVERS_FILENAME}: {exc!r}") from exc

        resolvers = getattr(module, RESOLVERS_ATTRIBUTE, None)
        if not isinstance(resolvers, Mapping):
            raise TenantArtifactError(
                directory.alias,
                f"{RESOLVERS_FILENAME} must define a '{RESOLVERS_ATTRIBUTE}' mapping",
            )
        logger.debug("[%s] Loaded resolvers for %d types", directory.alias, len(resolvers))
        return resolvers
