"""Hub metrics: Prometheus exposition with an optional OTLP mirror.

Every metric is a ``MetricBridge``: values land in a ``prometheus_client``
collector (served at ``/metrics``) and in an OpenTelemetry instrument created
on first use from the process meter provider.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import time
from typing import TYPE_CHECKING, Any, Literal

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from graphql_hub.observability.exporters import SERVICE_NAME, build_exporter, build_resource, export_enabled


if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from graphql_hub.deployment_config import ObservabilityCollectorConfig


logger = logging.getLogger(__name__)

MetricKind = Literal["counter", "histogram", "gauge"]

_PROMETHEUS_TYPES: dict[str, type] = {"counter": Counter, "histogram": Histogram, "gauge": Gauge}

_meters: dict[str, Any] = {"provider": None, "meter": None}


def init_metrics(
    service_name: str = SERVICE_NAME,
    resource_attributes: dict[str, str] | None = None,
    exporter_config: ObservabilityCollectorConfig | None = None,
) -> MeterProvider:
    """Install the process meter provider; later calls return the first one."""
    if _meters["provider"] is not None:
        if export_enabled(exporter_config):
            logger.warning("Meter provider already installed; OTLP metric export settings ignored")
        return _meters["provider"]

    readers = []
    if export_enabled(exporter_config):
        readers.append(PeriodicExportingMetricReader(build_exporter(exporter_config, "metrics")))
    provider = MeterProvider(resource=build_resource(service_name, resource_attributes), metric_readers=readers)
    otel_metrics.set_meter_provider(provider)
    _meters.update(provider=provider, meter=otel_metrics.get_meter("graphql_hub"))
    return provider


def _meter() -> Any:
    if _meters["meter"] is None:
        init_metrics()
    return _meters["meter"]


class MetricBridge:
    """A labelled metric recorded to Prometheus and OpenTelemetry."""

    def __init__(
        self,
        kind: MetricKind,
        name: str,
        description: str,
        labelnames: Sequence[str],
        **prometheus_options: Any,
    ) -> None:
        self.kind = kind
        self.name = name
        self.description = description
        self._prometheus = _PROMETHEUS_TYPES[kind](name, description, list(labelnames), **prometheus_options)
        self._otel: Any = None
        self._gauge_values: dict[frozenset[tuple[str, str]], float] = {}

    def labels(self, **labels: str) -> BoundMetric:
        return BoundMetric(self, labels)

    def _instrument(self) -> Any:
        if self._otel is None:
            meter = _meter()
            create = {
                "counter": meter.create_counter,
                "histogram": meter.create_histogram,
                # Gauges are mirrored as up/down counters fed with deltas.
                "gauge": meter.create_up_down_counter,
            }[self.kind]
            self._otel = create(self.name, description=self.description)
        return self._otel

    def record(self, labels: dict[str, str], value: float) -> None:
        series = self._prometheus.labels(**labels)
        if self.kind == "counter":
            series.inc(value)
            self._instrument().add(value, labels)
        elif self.kind == "histogram":
            series.observe(value)
            self._instrument().record(value, labels)
        else:
            series.set(value)
            key = frozenset(labels.items())
            delta = value - self._gauge_values.get(key, 0.0)
            self._gauge_values[key] = value
            if delta:
                self._instrument().add(delta, labels)


class BoundMetric:
    """``MetricBridge`` with its label values fixed."""

    __slots__ = ("_bridge", "_labels")

    def __init__(self, bridge: MetricBridge, labels: dict[str, str]) -> None:
        self._bridge = bridge
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._bridge.record(self._labels, amount)

    def observe(self, value: float) -> None:
        self._bridge.record(self._labels, value)

    def set(self, value: float) -> None:
        self._bridge.record(self._labels, value)


REQUEST_COUNT = MetricBridge(
    "counter", "hub_project_requests_total", "Requests dispatched to projects", ["project", "status"]
)
REQUEST_LATENCY = MetricBridge(
    "histogram",
    "hub_project_request_latency_seconds",
    "Project request latency in seconds",
    ["project"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
RELOAD_COUNT = MetricBridge("counter", "hub_reloads_total", "Registry reloads", ["outcome"])
PROJECT_LOAD_FAILURES = MetricBridge(
    "counter", "hub_project_load_failures_total", "Projects skipped during reload", ["project"]
)
PROJECTS_LOADED = MetricBridge("gauge", "hub_projects_loaded", "Projects in the current snapshot", ["registry"])
PROVISION_DURATION = MetricBridge(
    "histogram",
    "hub_provision_duration_seconds",
    "Datastore provisioning duration",
    ["outcome"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
