"""Main ASGI application entry point.

    Starlette App
      ├── /graphql           → project management (list / reload / create)
      ├── /health, /metrics
      ├── /<alias>           → project metadata
      └── /<alias>/graphql   → the project's own schema

Usage:
    graphql-hub
    DEPLOYMENT_CONFIG=/path/to/deployment.json graphql-hub
"""

import logging
import os
from pathlib import Path

from starlette.applications import Starlette

from .app_builder import AppBuilder


logger = logging.getLogger(__name__)


def create_app(config_path: Path | None = None) -> Starlette | None:
    """Create the ASGI application; returns None when configuration is invalid."""
    return AppBuilder(config_path).build()


def main() -> None:
    import uvicorn

    builder = AppBuilder(Path(os.getenv("DEPLOYMENT_CONFIG", "deployment.json")))
    app = builder.build()
    if app is None or builder.deployment_config is None:
        raise SystemExit(1)

    infra = builder.deployment_config.infrastructure
    logger.info("Starting GraphQL hub on %s:%d", infra.host, infra.port)
    logger.info("Health check: http://%s:%d/health", infra.host, infra.port)

    uvicorn.run(
        app,
        host=infra.host,
        port=infra.port,
        log_level=infra.get_active_log_profile().level,
        log_config=None,
    )


if __name__ == "__main__":
    main()
