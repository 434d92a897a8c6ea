"""Health endpoint factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse


if TYPE_CHECKING:
    from starlette.requests import Request

    from graphql_hub.registry import ProjectRegistry


def build_health_endpoint(registry: ProjectRegistry):
    """Return an endpoint summarizing the registry snapshot.

    Status is ``degraded`` when the last reload skipped any project; the
    response code is always 200.
    """

    async def health_check(_: Request) -> JSONResponse:
        failures = dict(registry.last_reload_failures)
        return JSONResponse(
            {
                "status": "degraded" if failures else "healthy",
                "project_count": len(registry),
                "projects": [loaded.alias for loaded in registry.list_projects()],
                "failed_projects": failures,
                "provisioning_enabled": registry.provisioning_enabled,
            }
        )

    return health_check
