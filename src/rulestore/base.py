"""
Rule store interface shared by all backends.

RuleStore handles the parts every backend has in common (uniqueness check
before writing, payload flattening and joining, tracing, metrics) and
delegates raw payload reads and writes to subclasses.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter

from transformation.models import TransformationRule
from utils.metrics import get_or_create_metric
from utils.tracing import add_span_attributes, trace_operation

from .errors import DuplicateSourceFieldError, RuleNotFoundError, RuleStoreError
from .serialization import flatten_rule, join_rule

logger = logging.getLogger(__name__)

RULESTORE_OPERATIONS = get_or_create_metric(
    lambda: Counter(
        "rulestore_operations_total",
        "Rule store operations",
        ["backend", "operation", "status"],
    ),
    "rulestore_operations",
)


class RuleStore(ABC):
    """
    Persists transformation rules per integration endpoint.

    Subclasses implement _load_payloads, _save_payload and list_endpoints;
    callers use load, load_rule and save.
    """

    backend = "base"

    def load(self, endpoint_id: str) -> list[TransformationRule]:
        """
        Load every rule configured for an endpoint.

        Args:
            endpoint_id: Endpoint name

        Returns:
            Rules in stored order (at least one)

        Raises:
            RuleNotFoundError: If the endpoint has no configuration
            RuleFormatError: If a stored payload is malformed
        """
        with trace_operation(
            "rule_store_load",
            kind=trace.SpanKind.CLIENT,
            backend=self.backend,
            endpoint=endpoint_id,
        ):
            try:
                payloads = self._load_payloads(endpoint_id)
                if not payloads:
                    raise RuleNotFoundError(endpoint_id)
                rules = [join_rule(payload) for payload in payloads]
            except RuleNotFoundError:
                self._count("load", "not_found")
                raise
            except Exception:
                self._count("load", "error")
                raise

            add_span_attributes(rule_count=len(rules))
            self._count("load", "success")
            logger.debug(
                "Loaded rules",
                extra={"endpoint": endpoint_id, "rules": len(rules), "backend": self.backend},
            )
            return rules

    def load_rule(self, endpoint_id: str, rule_id: str | None = None) -> TransformationRule:
        """
        Load a single rule for an endpoint.

        Args:
            endpoint_id: Endpoint name
            rule_id: Stored rule id; the first rule is returned when omitted

        Raises:
            RuleNotFoundError: If the endpoint or rule id is unknown
        """
        rules = self.load(endpoint_id)
        if rule_id is None:
            return rules[0]
        for rule in rules:
            if rule.rule_id == rule_id:
                return rule
        raise RuleNotFoundError(endpoint_id, rule_id=rule_id)

    def save(self, rule: TransformationRule) -> None:
        """
        Persist a rule, replacing the stored rule with the same rule_id.

        Backends that can create rules assign rule.rule_id when it is unset.

        Raises:
            DuplicateSourceFieldError: If a source field is mapped twice
            PersistError: If the backend write fails
        """
        with trace_operation(
            "rule_store_save",
            kind=trace.SpanKind.CLIENT,
            backend=self.backend,
            endpoint=rule.endpoint_id,
            mapping_count=len(rule.mappings),
        ):
            duplicates = rule.duplicate_source_fields()
            if duplicates:
                self._count("save", "rejected")
                raise DuplicateSourceFieldError(rule.endpoint_id, duplicates)

            try:
                rule.rule_id = self._save_payload(flatten_rule(rule))
            except RuleStoreError:
                self._count("save", "error")
                raise

            self._count("save", "success")
            logger.info(
                "Saved rule",
                extra={
                    "endpoint": rule.endpoint_id,
                    "rule_id": rule.rule_id,
                    "mappings": len(rule.mappings),
                    "steps": rule.get_step_count(),
                    "backend": self.backend,
                },
            )

    @abstractmethod
    def list_endpoints(self) -> list[str]:
        """Endpoint names that have at least one stored rule, sorted."""
        pass

    @abstractmethod
    def _load_payloads(self, endpoint_id: str) -> list[dict[str, Any]]:
        """Return the raw persisted payloads for an endpoint (possibly empty)."""
        pass

    @abstractmethod
    def _save_payload(self, payload: dict[str, Any]) -> str:
        """
        Write one flattened rule and return its rule_id.

        Must raise PersistError on any failure.
        """
        pass

    def close(self) -> None:
        """Release backend resources."""
        pass

    def __enter__(self) -> "RuleStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _count(self, operation: str, status: str) -> None:
        RULESTORE_OPERATIONS.labels(
            backend=self.backend, operation=operation, status=status
        ).inc()
