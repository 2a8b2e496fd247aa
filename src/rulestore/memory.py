"""In-memory rule store, used by tests and for previews of unsaved rules."""

import copy
import threading
import uuid
from typing import Any

from .base import RuleStore


class InMemoryRuleStore(RuleStore):
    """Keeps flattened payloads per endpoint behind a lock."""

    backend = "memory"

    def __init__(self):
        self._payloads: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def list_endpoints(self) -> list[str]:
        with self._lock:
            return sorted(name for name, rules in self._payloads.items() if rules)

    def _load_payloads(self, endpoint_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._payloads.get(endpoint_id, []))

    def _save_payload(self, payload: dict[str, Any]) -> str:
        payload = copy.deepcopy(payload)
        if payload["rule_id"] is None:
            payload["rule_id"] = uuid.uuid4().hex

        with self._lock:
            stored = self._payloads.setdefault(payload["endpoint_id"], [])
            for index, existing in enumerate(stored):
                if existing["rule_id"] == payload["rule_id"]:
                    stored[index] = payload
                    break
            else:
                stored.append(payload)

        return payload["rule_id"]
