"""
JSON file rule store.

Each endpoint lives in its own document under the store directory:

    {"endpoint_id": "employees", "rules": [<payload>, ...]}

Writes go to a temporary file in the same directory which then replaces the
document, so readers see either the old or the new rules, never a mix.
"""

import json
import logging
import os
import re
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any

from .base import RuleStore
from .errors import PersistError, RuleFormatError

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".rules.json"


class JsonFileRuleStore(RuleStore):
    """Stores rules as one JSON document per endpoint."""

    backend = "file"

    def __init__(self, directory: str | os.PathLike = "./rules"):
        """
        Initialize the file store.

        Args:
            directory: Directory holding the rule documents (created if missing)
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        logger.info(f"Initialized file rule store in {self.directory}")

    def list_endpoints(self) -> list[str]:
        endpoints = []
        for path in self.directory.glob(f"*{DOCUMENT_SUFFIX}"):
            if path.name.startswith("."):
                continue
            document = self._read_document(path)
            if document.get("rules"):
                endpoints.append(document["endpoint_id"])
        return sorted(endpoints)

    def _load_payloads(self, endpoint_id: str) -> list[dict[str, Any]]:
        path = self._document_path(endpoint_id)
        if not path.exists():
            return []
        document = self._read_document(path)
        if document["endpoint_id"] != endpoint_id:
            return []
        return document.get("rules", [])

    def _save_payload(self, payload: dict[str, Any]) -> str:
        endpoint_id = payload["endpoint_id"]
        if payload["rule_id"] is None:
            payload = {**payload, "rule_id": uuid.uuid4().hex}

        path = self._document_path(endpoint_id)
        with self._lock:
            try:
                document = self._read_document(path) if path.exists() else None
            except RuleFormatError as e:
                raise PersistError(
                    f"Cannot update unreadable rule document {path}: {e}",
                    endpoint_id=endpoint_id,
                ) from e

            if document is not None and document["endpoint_id"] != endpoint_id:
                raise PersistError(
                    f"Rule document {path} belongs to endpoint "
                    f"'{document['endpoint_id']}'",
                    endpoint_id=endpoint_id,
                )
            rules = document.get("rules", []) if document else []

            for index, existing in enumerate(rules):
                if existing.get("rule_id") == payload["rule_id"]:
                    rules[index] = payload
                    break
            else:
                rules.append(payload)

            self._write_document(path, {"endpoint_id": endpoint_id, "rules": rules})

        return payload["rule_id"]

    def _read_document(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise RuleFormatError(f"Invalid JSON in {path}: {e}") from e

        if (
            not isinstance(document, dict)
            or not isinstance(document.get("endpoint_id"), str)
            or not isinstance(document.get("rules", []), list)
        ):
            raise RuleFormatError(
                f"Rule document {path} must be an object with 'endpoint_id' and 'rules'"
            )
        return document

    def _write_document(self, path: Path, document: dict[str, Any]) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=".tmp-",
                suffix=DOCUMENT_SUFFIX,
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(document, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistError(
                f"Failed to write rule document {path}: {e}",
                endpoint_id=document["endpoint_id"],
            ) from e

    def _document_path(self, endpoint_id: str) -> Path:
        safe_name = re.sub(r'[/\\:*?"<>|\s]', "_", endpoint_id)
        return self.directory / f"{safe_name}{DOCUMENT_SUFFIX}"
