"""
Prometheus metrics for rule stores, previews and record transformation.

Metrics are module-level objects created through get_or_create_metric so
that re-importing a module (tests, CLI reloads) reuses the registered
collector. MetricsPublisher serves them on /metrics for `fieldmap apply`.
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import MetricsPublisher

logger = logging.getLogger(__name__)

M = TypeVar("M")


def get_or_create_metric(
    metric_factory: Callable[[], M],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> M:
    """
    Build a metric, or return the collector already registered under metric_name.

    Counters are looked up without their "_total" suffix. A duplicate whose
    name is not registered under metric_name re-raises the registry error.
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is None:
            raise
        logger.debug(f"Reusing registered metric {metric_name}")
        return existing


__all__ = ["MetricsPublisher", "get_or_create_metric"]
