"""Structured logging: JSON lines carrying trace ids and the active project."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING, Any

from opentelemetry._logs import set_logger_provider
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
import orjson

from graphql_hub.observability.context import current_context
from graphql_hub.observability.exporters import SERVICE_NAME, build_exporter, build_resource, export_enabled


if TYPE_CHECKING:
    from graphql_hub.deployment_config import ObservabilityCollectorConfig


PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Attributes present on every LogRecord; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}

# Third-party loggers kept at WARNING unless a profile says otherwise.
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "ariadne")

_export_state: dict[str, Any] = {"provider": None, "handler": None}


def _level(name: str, default: int = logging.INFO) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), default)


class JsonFormatter(logging.Formatter):
    """Render each record as one orjson-encoded object."""

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization", "datasource_url"})
    MAX_MESSAGE_LEN = 2000
    MAX_EXTRA_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_entry(record)
        entry.update(self._extras(record))
        return orjson.dumps(entry, default=self._fallback).decode()

    def _base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        ctx = current_context()
        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LEN:
            message = message[: self.MAX_MESSAGE_LEN] + "..."

        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "trace_id": ctx.trace_id,
            "span_id": ctx.span_id,
        }
        _, dot, component = record.name.rpartition(".")
        if dot:
            entry["component"] = component
        if ctx.project:
            entry["project"] = ctx.project
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return entry

    def _extras(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key.lower() in self.REDACT_KEYS:
                value = "[REDACTED]"
            elif isinstance(value, str) and len(value) > self.MAX_EXTRA_LEN:
                value = value[: self.MAX_EXTRA_LEN] + "..."
            extras[key] = value
        return extras

    @staticmethod
    def _fallback(value: Any) -> Any:
        if isinstance(value, (set, frozenset)):
            return sorted(value, key=str)
        if isinstance(value, Path | BaseException):
            return str(value)
        if isinstance(value, bytes | bytearray):
            return value.decode("utf-8", errors="replace")
        return repr(value)


def configure_logging(
    level: str = "info",
    json_output: bool = True,
    *,
    logger_levels: Mapping[str, str] | None = None,
    trace_categories: Iterable[str] = (),
    trace_level: str = "debug",
    access_log: bool = False,
) -> None:
    """Replace the root handlers with a single stdout handler.

    Per-logger levels are applied in increasing precedence: noisy third-party
    defaults, then ``trace_categories`` at ``trace_level``, then
    ``logger_levels``.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing is not _export_state["handler"]:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_level(level))

    levels: dict[str, str] = {name: "warning" for name in _NOISY_LOGGERS}
    if access_log:
        levels.pop("uvicorn.access")
    levels.update(dict.fromkeys(trace_categories, trace_level))
    levels.update(logger_levels or {})
    for name, logger_level in levels.items():
        logging.getLogger(name).setLevel(_level(logger_level))


def enable_log_export(
    config: ObservabilityCollectorConfig | None,
    *,
    service_name: str = SERVICE_NAME,
    resource_attributes: dict[str, str] | None = None,
) -> LoggerProvider | None:
    """Ship log records to the OTLP collector (once per process)."""
    if not export_enabled(config) or _export_state["provider"] is not None:
        return _export_state["provider"]

    provider = LoggerProvider(resource=build_resource(service_name, resource_attributes))
    provider.add_log_record_processor(BatchLogRecordProcessor(build_exporter(config, "logs")))
    set_logger_provider(provider)

    handler = LoggingHandler(level=logging.INFO, logger_provider=provider)
    logging.getLogger().addHandler(handler)
    _export_state.update(provider=provider, handler=handler)
    return provider
