"""
OpenTelemetry setup for the field transformation engine.

Exporters are opt-in:

    OTLP_ENDPOINT        OTLP gRPC collector, e.g. "localhost:4317"
    TRACE_CONSOLE=true   print finished spans to stdout
    TRACE_SAMPLE_RATE    fraction of traces kept (default 1.0)

With neither exporter set, spans are still created so rule store and
record errors are recorded, but nothing leaves the process.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "field-transform-engine"

_tracer: trace.Tracer | None = None
_is_initialized = False


def _sampling_rate_from_env() -> float:
    raw = os.getenv("TRACE_SAMPLE_RATE", "1.0")
    try:
        rate = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid TRACE_SAMPLE_RATE {raw!r}")
        return 1.0
    return min(max(rate, 0.0), 1.0)


def _build_provider(
    service_name: str,
    otlp_endpoint: str | None,
    console_export: bool,
    sampling_rate: float,
) -> tuple[TracerProvider, list[str]]:
    provider = TracerProvider(
        resource=Resource(attributes={SERVICE_NAME: service_name}),
        sampler=TraceIdRatioBased(sampling_rate),
    )
    exporters = []

    if otlp_endpoint:
        try:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
            )
            exporters.append("OTLP")
        except Exception as e:
            logger.warning(f"Failed to configure OTLP exporter for {otlp_endpoint}: {e}")

    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")

    return provider, exporters


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool | None = None,
    sampling_rate: float | None = None,
) -> trace.Tracer:
    """
    Install the global tracer provider.

    Arguments left as None are read from the environment (see module
    docstring). Calling this again before shutdown_tracing returns the
    existing tracer.

    Args:
        service_name: service.name resource attribute
        otlp_endpoint: OTLP collector endpoint
        console_export: Also print spans to stdout
        sampling_rate: Fraction of traces to keep, 0.0-1.0

    Returns:
        Tracer for the engine's spans
    """
    global _tracer, _is_initialized

    if _is_initialized:
        return _tracer

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTLP_ENDPOINT")
    if console_export is None:
        console_export = os.getenv("TRACE_CONSOLE", "").lower() == "true"
    if sampling_rate is None:
        sampling_rate = _sampling_rate_from_env()

    provider, exporters = _build_provider(
        service_name, otlp_endpoint, console_export, sampling_rate
    )
    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)
    _is_initialized = True

    logger.debug(
        f"Tracing initialized for {service_name} "
        f"(exporters: {', '.join(exporters) or 'none'}, sampling: {sampling_rate})"
    )
    return _tracer


def get_tracer() -> trace.Tracer:
    """Return the engine's tracer, initializing tracing on first use."""
    if _tracer is None:
        return initialize_tracing()
    return _tracer


def shutdown_tracing() -> None:
    """
    Flush pending spans and shut the provider down.

    Safe to call when tracing was never initialized.
    """
    global _is_initialized

    if not _is_initialized:
        return

    provider = trace.get_tracer_provider()
    try:
        if isinstance(provider, TracerProvider):
            provider.shutdown()
    except Exception as e:
        logger.error(f"Error during tracing shutdown: {e}")
    finally:
        _is_initialized = False
