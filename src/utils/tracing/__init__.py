"""
Distributed tracing using OpenTelemetry.

Instruments:
- Record transformation
- Rule store loads and saves
- CLI commands

Usage:
    from utils.tracing import initialize_tracing, trace_operation

    initialize_tracing(service_name="fieldmap", console_export=True)

    with trace_operation("rule_store_load", endpoint="employees") as span:
        rules = store.load("employees")
"""

from .context import add_span_attributes, add_span_event, trace_function, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "trace_function",
    "add_span_attributes",
    "add_span_event",
]
