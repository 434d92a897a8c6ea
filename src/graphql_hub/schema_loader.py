"""Build ready-to-serve project handlers from on-disk artifacts."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from pathlib import Path
from typing import Any

from ariadne import ObjectType, make_executable_schema
from ariadne.asgi import GraphQL
from graphql import GraphQLSchema
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, Router

from graphql_hub.domain.model import LoadedProject, Project, ProjectMeta
from graphql_hub.errors import TenantArtifactError
from graphql_hub.project_module import FilesystemModuleLoader, ProjectModule, ProjectModuleLoader
from graphql_hub.store import ProjectDirectory


logger = logging.getLogger(__name__)


def build_bindables(alias: str, resolvers: Mapping[str, Any]) -> list[Any]:
    """Convert a ``{Type: {field: resolver}}`` map into ariadne bindables."""
    bindables: list[Any] = []
    for type_name, value in resolvers.items():
        if hasattr(value, "bind_to_schema"):
            bindables.append(value)
            continue
        if not isinstance(value, Mapping):
            raise TenantArtifactError(alias, f"resolvers for '{type_name}' must be a mapping of field resolvers")
        object_type = ObjectType(type_name)
        for field_name, resolver in value.items():
            if not callable(resolver):
                raise TenantArtifactError(alias, f"resolver '{type_name}.{field_name}' is not callable")
            object_type.set_field(field_name, resolver)
        bindables.append(object_type)
    return bindables


def build_schema(alias: str, module: ProjectModule) -> GraphQLSchema:
    bindables = build_bindables(alias, module.resolvers)
    try:
        return make_executable_schema(module.type_defs, *bindables)
    except Exception as exc:
        raise TenantArtifactError(alias, f"schema does not match resolvers: {exc}") from exc


def build_project_app(project: Project, meta: ProjectMeta, schema: GraphQLSchema, *, debug: bool = False) -> Router:
    """Per-project handler: ``GET /`` returns metadata, ``/graphql`` runs queries."""

    def context_factory(request: Request, _data: Any = None) -> dict[str, Any]:
        return {"request": request, "meta": meta, "project": project}

    graphql_app = GraphQL(schema, context_value=context_factory, debug=debug)

    async def project_meta(_: Request) -> JSONResponse:
        return JSONResponse(meta.as_record())

    return Router(
        routes=[
            Route("/", endpoint=project_meta, methods=["GET"]),
            Route("/graphql", endpoint=graphql_app),
        ]
    )


class SchemaLoader:
    """Turns ``<root>/<alias>`` into a ``LoadedProject``.

    Loading is synchronous and touches the filesystem; callers that run inside
    the event loop should offload it to a thread.
    """

    def __init__(
        self,
        projects_root: Path | str,
        module_loader: ProjectModuleLoader | None = None,
        *,
        debug: bool = False,
    ) -> None:
        self.projects_root = Path(projects_root)
        self.module_loader = module_loader or FilesystemModuleLoader()
        self.debug = debug

    def load(self, alias: str) -> LoadedProject:
        """Load one project.

        Raises:
            TenantArtifactError: if any artifact is missing or malformed.
        """
        directory = ProjectDirectory(self.projects_root, alias)
        if not directory.path.is_dir():
            raise TenantArtifactError(alias, f"project directory not found: {directory.path}")

        meta = directory.read_meta()
        module = self.module_loader.load(directory)
        schema = build_schema(alias, module)

        project = Project.from_meta(alias, meta, directory.path)
        prefix = f"/{alias}"
        app = build_project_app(project, meta, schema, debug=self.debug)
        logger.info("[%s] Loaded project %s (%s)", alias, project.name, project.id)
        return LoadedProject(
            project=project,
            meta=meta,
            app=app,
            prefix=prefix,
            graphql_path=f"{prefix}/graphql",
        )
