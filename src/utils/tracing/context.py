"""
Span helpers for rule store calls, record transformation and CLI commands.

Attributes whose value is None (an unsaved rule's id, a step without
context) are left off the span instead of being recorded as "None".
"""

import functools
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from .tracer import get_tracer


def _span_attributes(attributes: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in attributes.items() if value is not None}


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run a block inside a span.

    Exceptions are recorded on the span, which is marked as failed, and
    re-raised.

    Args:
        operation_name: Span name, e.g. "rule_store_load"
        kind: Span kind (CLIENT for store backends, INTERNAL otherwise)
        **attributes: Span attributes; values are stringified

    Example:
        >>> with trace_operation("rule_store_save", endpoint="employees") as span:
        ...     store.save(rule)
        ...     span.set_attribute("mapping_count", len(rule.mappings))
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(
        operation_name,
        kind=kind,
        attributes=_span_attributes(attributes),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def trace_function(operation_name: str | None = None, **default_attributes):
    """
    Decorator that wraps every call in trace_operation.

    Args:
        operation_name: Span name (default: module.function)
        **default_attributes: Attributes added to every span

    Example:
        >>> @trace_function(component="cli")
        ... def cmd_apply(args):
        ...     ...
    """
    def decorator(func):
        name = operation_name or f"{func.__module__}.{func.__name__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with trace_operation(name, function=func.__name__, **default_attributes):
                return func(*args, **kwargs)

        return wrapper
    return decorator


def add_span_attributes(**attributes) -> None:
    """Set attributes on the current span, if one is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.set_attributes(_span_attributes(attributes))


def add_span_event(name: str, **attributes) -> None:
    """
    Add an event to the current span, if one is recording.

    Example:
        >>> with trace_operation("transform_record"):
        ...     add_span_event("field_transformation_failed", source_field="email")
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(name, attributes=_span_attributes(attributes))
