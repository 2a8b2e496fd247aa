"""
Preview service for the mapping editor.

Runs a (possibly unsaved) mapping against a sample value and renders the
outcome as display text. Errors become "Error: <message>" strings; nothing
raised by the pipeline reaches the caller.
"""

import logging

from prometheus_client import Counter

from utils.metrics import get_or_create_metric

from .errors import TransformationError
from .models import FieldMapping
from .pipeline import run_mapping

logger = logging.getLogger(__name__)

PREVIEWS = get_or_create_metric(
    lambda: Counter(
        "transformation_previews_total",
        "Mapping previews rendered",
        ["outcome"],
    ),
    "transformation_previews",
)

ERROR_PREFIX = "Error: "


def preview_mapping(mapping: FieldMapping, sample: str) -> str:
    """
    Render the result of a mapping on a sample value.

    Args:
        mapping: Mapping to try, saved or not
        sample: Sample input

    Returns:
        Transformed text, or "Error: <message>" if a step failed
    """
    try:
        output = run_mapping(mapping, sample)
    except TransformationError as e:
        PREVIEWS.labels(outcome="error").inc()
        return f"{ERROR_PREFIX}{e}"
    except Exception as e:
        PREVIEWS.labels(outcome="error").inc()
        logger.exception(f"Unexpected preview failure for {mapping.source_field}")
        return f"{ERROR_PREFIX}unexpected failure: {type(e).__name__}: {e}"

    PREVIEWS.labels(outcome="success").inc()
    return output
