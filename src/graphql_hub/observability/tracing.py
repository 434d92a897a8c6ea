"""OpenTelemetry tracing and the request-scoped middleware around it."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode

from graphql_hub.domain.alias import RESERVED_ALIASES
from graphql_hub.observability.context import bind_project, start_request_context, update_span_id
from graphql_hub.observability.exporters import SERVICE_NAME, build_exporter, build_resource, export_enabled


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp, Receive, Scope, Send

    from graphql_hub.deployment_config import ObservabilityCollectorConfig


logger = logging.getLogger(__name__)

TRACE_HEADER = b"x-trace-id"
TRACER_NAME = "graphql_hub"

_tracing: dict[str, TracerProvider | None] = {"provider": None}


def init_tracing(
    service_name: str = SERVICE_NAME,
    resource_attributes: dict[str, str] | None = None,
    exporter_config: ObservabilityCollectorConfig | None = None,
) -> TracerProvider:
    """Install the process tracer provider; later calls return the first one."""
    if _tracing["provider"] is not None:
        return _tracing["provider"]

    provider = TracerProvider(resource=build_resource(service_name, resource_attributes))
    if export_enabled(exporter_config):
        provider.add_span_processor(BatchSpanProcessor(build_exporter(exporter_config, "traces")))
        logger.info("Exporting traces over OTLP/%s", exporter_config.otlp_protocol)
    trace.set_tracer_provider(provider)
    _tracing["provider"] = provider
    return provider


def project_from_path(path: str) -> str | None:
    """Alias addressed by ``path``; top-level endpoints address no project."""
    segment = path.lstrip("/").partition("/")[0]
    return segment if segment and segment not in RESERVED_ALIASES else None


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Run the block inside a span; the span id is mirrored into log lines."""
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(
        name, kind=kind, attributes=attributes, record_exception=False, set_status_on_exception=False
    ) as span:
        update_span_id(format(span.get_span_context().span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise


class TraceContextMiddleware:
    """Start a correlation context per HTTP request.

    An incoming ``x-trace-id`` header is continued; otherwise a new trace id is
    minted. Requests under ``/<alias>`` are tagged with that alias.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            incoming = dict(scope.get("headers") or []).get(TRACE_HEADER, b"").decode("latin-1")
            start_request_context(incoming or None)
            if alias := project_from_path(scope["path"]):
                bind_project(alias)
        await self.app(scope, receive, send)


async def trace_request(request: Request, call_next: Any) -> Response:
    """``BaseHTTPMiddleware`` dispatch wrapping the request in a server span."""
    attributes: dict[str, Any] = {"http.method": request.method, "http.route": request.url.path}
    if alias := project_from_path(request.url.path):
        attributes["hub.project"] = alias

    with create_span(f"{request.method} {request.url.path}", kind=SpanKind.SERVER, attributes=attributes) as span:
        response: Response = await call_next(request)
        span.set_attribute("http.status_code", response.status_code)
        if response.status_code >= 500:
            span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
        return response
