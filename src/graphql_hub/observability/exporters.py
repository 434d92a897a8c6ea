"""OTLP exporter construction shared by traces, metrics and logs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter as GrpcLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter as GrpcMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcSpanExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter as HttpLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter as HttpMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpSpanExporter
from opentelemetry.sdk.resources import Resource


if TYPE_CHECKING:
    from graphql_hub.deployment_config import ObservabilityCollectorConfig


Signal = Literal["traces", "metrics", "logs"]

SERVICE_NAME = "graphql-hub"

_HTTP_PATHS: dict[str, str] = {"traces": "/v1/traces", "metrics": "/v1/metrics", "logs": "/v1/logs"}

_EXPORTERS: dict[tuple[str, str], type] = {
    ("traces", "grpc"): GrpcSpanExporter,
    ("traces", "http"): HttpSpanExporter,
    ("metrics", "grpc"): GrpcMetricExporter,
    ("metrics", "http"): HttpMetricExporter,
    ("logs", "grpc"): GrpcLogExporter,
    ("logs", "http"): HttpLogExporter,
}


def build_resource(service_name: str = SERVICE_NAME, attributes: dict[str, str] | None = None) -> Resource:
    return Resource.create({"service.name": service_name, **(attributes or {})})


def export_enabled(config: ObservabilityCollectorConfig | None) -> bool:
    return bool(config and config.enabled)


def signal_endpoint(config: ObservabilityCollectorConfig, signal: Signal) -> str:
    """Collector endpoint for ``signal``.

    gRPC collectors take one endpoint for every signal. HTTP collectors expose
    one path per signal, so a configured ``/v1/<signal>`` suffix is swapped
    for the requested one.
    """
    endpoint = config.collector_endpoint
    if config.otlp_protocol == "grpc":
        return endpoint
    for path in _HTTP_PATHS.values():
        if endpoint.endswith(path):
            endpoint = endpoint.removesuffix(path)
            break
    return endpoint.rstrip("/") + _HTTP_PATHS[signal]


def build_exporter(config: ObservabilityCollectorConfig, signal: Signal) -> Any:
    kwargs: dict[str, Any] = {
        "endpoint": signal_endpoint(config, signal),
        "headers": config.headers,
        "timeout": config.timeout_seconds,
    }
    if config.otlp_protocol == "grpc":
        kwargs["insecure"] = config.grpc_insecure
    return _EXPORTERS[(signal, config.otlp_protocol)](**kwargs)
