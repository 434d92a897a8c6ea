"""Composable builder for the multi-project GraphQL server."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import Response
from starlette.routing import Route

from graphql_hub.observability import (
    SERVICE_NAME,
    TraceContextMiddleware,
    configure_logging,
    enable_log_export,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    init_tracing,
    trace_request,
)
from graphql_hub.runtime.health import build_health_endpoint

from .config import Settings
from .deployment_config import DeploymentConfig
from .provisioning import ProvisionWorker
from .registry import ProjectRegistry
from .root_schema import create_root_graphql_app
from .router import DynamicRouter
from .schema_loader import SchemaLoader


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request


logger = logging.getLogger(__name__)


def _build_env_deployment_from_env() -> DeploymentConfig:
    """Create a DeploymentConfig from environment variables (no deployment.json)."""
    settings = Settings()
    return DeploymentConfig.model_validate(
        {
            "infrastructure": {
                "host": settings.hub_host,
                "port": settings.hub_port,
                "max_concurrent_loads": settings.max_concurrent_loads,
                "log_profiles": {
                    "default": {"level": settings.log_level, "json_output": settings.json_logs},
                },
            },
            "projects": {"root": settings.projects_root},
            "provisioning": {
                "enabled": settings.provisioning_enabled,
                "init_command": settings.get_init_command(),
                "migrate_command": settings.get_migrate_command(),
                "datasource": {
                    "datasourceProvider": settings.datasource_provider,
                    "url": settings.datasource_url,
                },
                "timeout_seconds": settings.provision_timeout_seconds,
            },
        }
    )


def build_registry(config: DeploymentConfig) -> ProjectRegistry:
    """Wire loader, provisioner and registry from configuration."""
    root = config.projects.root_path
    provisioning = config.provisioning
    provisioner = None
    if provisioning.enabled:
        provisioner = ProvisionWorker(
            init_command=provisioning.init_command,
            migrate_command=provisioning.migrate_command,
            timeout_seconds=provisioning.timeout_seconds,
        )
    else:
        logger.info("Provisioning disabled; new projects get schema artifacts only")

    return ProjectRegistry(
        root,
        SchemaLoader(root, debug=config.infrastructure.debug),
        provisioner,
        datasource=provisioning.datasource,
        max_concurrent_loads=config.infrastructure.max_concurrent_loads,
    )


class AppBuilder:
    """Builds the ASGI app from deployment config or environment variables."""

    def __init__(self, config_path: Path | str | None = None) -> None:
        self.config_path = Path(config_path) if config_path else Path("deployment.json")
        self.env_driven_config = False
        self.deployment_config: DeploymentConfig | None = None
        self.registry: ProjectRegistry | None = None

    def build(self) -> Starlette | None:
        """Build and return the Starlette application (None if config is invalid)."""
        config_payload = self._load_config()
        if config_payload is None:
            return None
        self.deployment_config, self.env_driven_config = config_payload
        infra = self.deployment_config.infrastructure

        self._init_observability()

        self.registry = build_registry(self.deployment_config)
        app = Starlette(
            debug=infra.debug,
            routes=self._build_routes(self.registry),
            lifespan=self._build_lifespan(self.registry),
        )
        if infra.trusted_hosts:
            app.add_middleware(TrustedHostMiddleware, allowed_hosts=infra.trusted_hosts)
        app.add_middleware(BaseHTTPMiddleware, dispatch=trace_request)
        app.add_middleware(TraceContextMiddleware)
        app.state.registry = self.registry

        logger.info("GraphQL hub initialized (projects root: %s)", self.registry.projects_root)
        return app

    def _load_config(self) -> tuple[DeploymentConfig, bool] | None:
        if self.config_path.exists():
            logger.info("Loading deployment configuration from %s", self.config_path)
            try:
                return DeploymentConfig.from_json_file(self.config_path), False
            except ValidationError as exc:
                logger.error("Deployment configuration is invalid: %s", exc)
                return None

        logger.info("Deployment config %s not found, using environment settings", self.config_path)
        try:
            return _build_env_deployment_from_env(), True
        except ValidationError as exc:
            logger.error("Environment-driven configuration is invalid: %s", exc)
            return None

    def _init_observability(self) -> None:
        assert self.deployment_config is not None
        infra = self.deployment_config.infrastructure
        profile = infra.get_active_log_profile()
        configure_logging(
            level=profile.level,
            json_output=profile.json_output,
            logger_levels=profile.logger_levels,
            trace_categories=profile.trace_categories,
            trace_level=profile.trace_level,
            access_log=profile.access_log,
        )
        collector = infra.observability_collector
        attributes = dict(collector.resource_attributes)
        init_metrics(SERVICE_NAME, attributes, exporter_config=collector)
        init_tracing(SERVICE_NAME, attributes, exporter_config=collector)
        enable_log_export(collector, service_name=SERVICE_NAME, resource_attributes=attributes)

    def _build_routes(self, registry: ProjectRegistry) -> list[Route]:
        assert self.deployment_config is not None
        debug = self.deployment_config.infrastructure.debug
        router = DynamicRouter(registry)
        root_app = create_root_graphql_app(registry, debug=debug)
        return [
            Route("/health", endpoint=build_health_endpoint(registry), methods=["GET"]),
            Route("/metrics", endpoint=self._build_metrics_endpoint(), methods=["GET"]),
            Route("/graphql", endpoint=root_app),
            Route("/graphql/", endpoint=root_app),
            Route("/{alias}", endpoint=router),
            Route("/{alias}/{path:path}", endpoint=router),
        ]

    def _build_metrics_endpoint(self):
        async def metrics_endpoint(_: Request) -> Response:
            return Response(content=get_metrics(), media_type=get_metrics_content_type())

        return metrics_endpoint

    def _build_lifespan(self, registry: ProjectRegistry):
        @asynccontextmanager
        async def lifespan(_: Starlette) -> AsyncIterator[None]:
            await registry.reload()
            logger.info("Serving %d projects", len(registry))
            yield
            logger.info("GraphQL hub shutting down")

        return lifespan
