"""OpenTelemetry setup and span helpers for request tracing."""

from __future__ import annotations

import os
import sys
from contextlib import nullcontext
from typing import Any, ContextManager, Sequence, TextIO

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.trace import Status, StatusCode

from freightdesk.config import as_bool

_INITIALIZED = False
_ENABLED = False


def is_enabled() -> bool:
    return as_bool(os.getenv("FREIGHTDESK_TRACING_ENABLED"), default=True)


def configure_telemetry() -> bool:
    """Configure global tracer provider once. Returns tracing enabled state."""
    global _INITIALIZED
    global _ENABLED

    if _INITIALIZED:
        return _ENABLED

    _ENABLED = is_enabled()
    if not _ENABLED:
        _INITIALIZED = True
        return False

    provider = TracerProvider(
        resource=Resource.create({"service.name": "freightdesk"}),
    )
    exporter_kind = os.getenv("FREIGHTDESK_TRACING_EXPORTER", "console").strip().lower()
    if exporter_kind == "otlp":
        endpoint = os.getenv(
            "FREIGHTDESK_OTLP_ENDPOINT",
            "http://localhost:4318/v1/traces",
        )
        timeout_ms = int(os.getenv("FREIGHTDESK_OTLP_TIMEOUT_MS", "1000"))
        exporter = OTLPSpanExporter(endpoint=endpoint, timeout=timeout_ms / 1000)
    else:
        console_mode = os.getenv("FREIGHTDESK_TRACING_CONSOLE_MODE", "compact").strip().lower()
        if console_mode == "raw":
            exporter = ConsoleSpanExporter(out=sys.stderr)
        else:
            exporter = _CompactConsoleSpanExporter(out=sys.stderr)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    _INITIALIZED = True
    return True


def start_span(name: str) -> ContextManager[Any]:
    """Start span when tracing is enabled; no-op otherwise (yields None)."""
    if not configure_telemetry():
        return nullcontext()
    tracer = trace.get_tracer("freightdesk")
    return tracer.start_as_current_span(name, record_exception=False)


def annotate(span: Any, **attributes: Any) -> None:
    """Set `freight.*` attributes on a span that may be a no-op placeholder."""
    if span is None:
        return
    for key, value in attributes.items():
        if value is None:
            continue
        span.set_attribute(f"freight.{key}", value)


def mark_failed(span: Any, description: str) -> None:
    if span is None:
        return
    span.set_status(Status(StatusCode.ERROR, description))


class _CompactConsoleSpanExporter(SpanExporter):
    """Console exporter with concise one-line span summaries."""

    _INTERESTING_ATTRS = (
        "freight.action",
        "freight.outcome",
        "freight.error_kind",
        "freight.lookup_kind",
        "freight.view",
        "freight.model",
        "freight.news_items",
    )

    def __init__(self, out: TextIO) -> None:
        self._out = out

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        for span in spans:
            try:
                self._out.write(_format_span_line(span, self._INTERESTING_ATTRS) + "\n")
            except ValueError:
                # Stream may be closed during process shutdown under capture.
                return SpanExportResult.SUCCESS
        try:
            self._out.flush()
        except ValueError:
            return SpanExportResult.SUCCESS
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        return None


def _format_span_line(span: ReadableSpan, attrs_whitelist: tuple[str, ...]) -> str:
    duration_ms = max(0.0, (span.end_time - span.start_time) / 1_000_000)
    status_code_name = span.status.status_code.name
    status_text = "ERR" if status_code_name == "ERROR" else "OK"
    attr_bits: list[str] = []
    for key in attrs_whitelist:
        if key in span.attributes:
            value = _safe_text(span.attributes[key])
            if value:
                attr_bits.append(f"{key.removeprefix('freight.')}={value}")
    if span.status.description:
        attr_bits.append(f"error={_safe_text(span.status.description)}")
    attrs_joined = " | ".join(attr_bits[:5])
    if attrs_joined:
        return f"[trace] {span.name} | {duration_ms:.1f}ms | {status_text} | {attrs_joined}"
    return f"[trace] {span.name} | {duration_ms:.1f}ms | {status_text}"


def _safe_text(value: Any, max_len: int = 80) -> str:
    text = str(value).replace("\n", " ").replace("\r", " ")
    if len(text) > max_len:
        return text[: max_len - 1] + "…"
    return text
