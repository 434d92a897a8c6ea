"""Dynamic per-project request routing.

``DynamicRouter`` is mounted for ``/{alias}`` and ``/{alias}/{path:path}``.
For every request it looks the alias up in the registry snapshot and either
hands the request to the project's own ASGI app or answers with a structured
404. Failures inside a project's handler stay inside that request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from graphql_hub.errors import ProjectNotFoundError
from graphql_hub.observability import REQUEST_COUNT, REQUEST_LATENCY, bind_project, track_latency


if TYPE_CHECKING:
    from starlette.types import Message, Receive, Scope, Send

    from graphql_hub.registry import ProjectRegistry


logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = {"errors": [{"message": "internal server error", "messageCode": "internalError"}]}


def split_project_path(path: str) -> tuple[str, str]:
    """``/demo/graphql`` -> ``("demo", "/graphql")``; ``/demo`` -> ``("demo", "/")``."""
    alias, _, rest = path.lstrip("/").partition("/")
    return alias, "/" + rest


def not_found_response(alias: str) -> JSONResponse:
    error = ProjectNotFoundError(alias)
    return JSONResponse({"errors": [error.to_dict()]}, status_code=404)


class DynamicRouter:
    """ASGI app dispatching requests to projects by their first path segment."""

    def __init__(self, registry: ProjectRegistry) -> None:
        self.registry = registry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        root_path = scope.get("root_path", "")
        path = scope["path"]
        relative = path[len(root_path) :] if root_path and path.startswith(root_path) else path
        alias, sub_path = split_project_path(relative)

        loaded = self.registry.lookup(alias)
        if loaded is None:
            logger.debug("No project registered for alias %r", alias)
            REQUEST_COUNT.labels(project="", status="not_found").inc()
            await not_found_response(alias)(scope, receive, send)
            return

        bind_project(alias)
        prefix = root_path + loaded.prefix
        child_scope = {
            **scope,
            "root_path": prefix,
            "path": prefix + sub_path,
            "raw_path": (prefix + sub_path).encode(),
            "path_params": {},
        }

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        status = "ok"
        try:
            with track_latency(REQUEST_LATENCY, project=alias):
                await loaded.app(child_scope, receive, send_wrapper)
        except Exception as exc:
            status = "error"
            logger.error("Project %s failed handling %s %s: %s", alias, scope.get("method"), path, exc, exc_info=True)
            if not response_started:
                await JSONResponse(INTERNAL_ERROR_BODY, status_code=500)(scope, receive, send)
        finally:
            REQUEST_COUNT.labels(project=alias, status=status).inc()
