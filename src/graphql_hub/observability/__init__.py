"""Observability: structured logging, tracing and metrics."""

from graphql_hub.observability.context import (
    RequestContext,
    bind_project,
    clear_context,
    current_context,
    start_request_context,
)
from graphql_hub.observability.exporters import SERVICE_NAME
from graphql_hub.observability.logging import JsonFormatter, configure_logging, enable_log_export
from graphql_hub.observability.metrics import (
    PROJECT_LOAD_FAILURES,
    PROJECTS_LOADED,
    PROVISION_DURATION,
    RELOAD_COUNT,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    MetricBridge,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from graphql_hub.observability.tracing import (
    TraceContextMiddleware,
    create_span,
    init_tracing,
    project_from_path,
    trace_request,
)


__all__ = [
    "SERVICE_NAME",
    "PROJECTS_LOADED",
    "PROJECT_LOAD_FAILURES",
    "PROVISION_DURATION",
    "RELOAD_COUNT",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "JsonFormatter",
    "MetricBridge",
    "RequestContext",
    "TraceContextMiddleware",
    "bind_project",
    "clear_context",
    "configure_logging",
    "create_span",
    "current_context",
    "enable_log_export",
    "get_metrics",
    "get_metrics_content_type",
    "init_metrics",
    "init_tracing",
    "project_from_path",
    "start_request_context",
    "trace_request",
    "track_latency",
]
