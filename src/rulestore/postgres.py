"""
PostgreSQL rule store backed by the integration_sync_configs table.

Expected columns:

    id                     primary key
    endpoint_name          text
    endpoint_display_name  text
    field_mapping          jsonb   {source: target}
    transformation_rules   jsonb   {source: [step, ...]}

Rows are created by the integration setup; this store only reads them and
updates the two JSON columns.
"""

import json
import logging
from typing import Any

import psycopg2
import psycopg2.extensions
import psycopg2.extras
from opentelemetry import trace

from utils.retry import retry_database_operation
from utils.sql_safety import quote_schema_table
from utils.tracing import trace_operation

from .base import RuleStore
from .errors import PersistError, RuleFormatError

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "integration_sync_configs"


class PostgresRuleStore(RuleStore):
    """Reads and updates rules stored as rows of a sync configuration table."""

    backend = "postgres"

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        table: str = DEFAULT_TABLE,
        connect_timeout: int = 10,
    ):
        """
        Initialize PostgreSQL rule store.

        Args:
            host: PostgreSQL host
            port: PostgreSQL port
            database: Database name
            user: Username
            password: Password
            table: Table name, optionally schema-qualified

        Raises:
            ValueError: If the table name is not a valid identifier
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.table = quote_schema_table(table)
        self._conn: psycopg2.extensions.connection | None = None

    def _connection(self) -> psycopg2.extensions.connection:
        if self._conn is None or self._conn.closed:
            with trace_operation(
                "postgres_connect",
                kind=trace.SpanKind.CLIENT,
                db_host=self.host,
                db_name=self.database,
            ):
                self._conn = psycopg2.connect(
                    host=self.host,
                    port=self.port,
                    database=self.database,
                    user=self.user,
                    password=self.password,
                    connect_timeout=self.connect_timeout,
                )
        return self._conn

    def close(self) -> None:
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
        self._conn = None

    @retry_database_operation(max_retries=3, base_delay=0.5)
    def _fetch_rows(self, query: str, params: tuple = ()) -> list[tuple]:
        conn = self._connection()
        try:
            with conn:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)
                    return cursor.fetchall()
        except psycopg2.InterfaceError:
            self.close()
            raise

    def list_endpoints(self) -> list[str]:
        rows = self._fetch_rows(
            f"SELECT DISTINCT endpoint_name FROM {self.table} "
            "WHERE endpoint_name IS NOT NULL ORDER BY endpoint_name"
        )
        return [row[0] for row in rows]

    def _load_payloads(self, endpoint_id: str) -> list[dict[str, Any]]:
        rows = self._fetch_rows(
            "SELECT id, endpoint_name, endpoint_display_name, "
            f"field_mapping, transformation_rules FROM {self.table} "
            "WHERE endpoint_name = %s ORDER BY id",
            (endpoint_id,),
        )
        logger.debug(f"Fetched {len(rows)} sync configuration rows for {endpoint_id}")
        return [self._row_to_payload(row) for row in rows]

    @staticmethod
    def _row_to_payload(row: tuple) -> dict[str, Any]:
        row_id, endpoint_name, display_name, field_mapping, step_lists = row
        return {
            "endpoint_id": endpoint_name,
            "display_name": display_name,
            "rule_id": str(row_id),
            "field_mapping": _decode_json(field_mapping),
            "transformation_rules": _decode_json(step_lists),
        }

    def _save_payload(self, payload: dict[str, Any]) -> str:
        endpoint_id = payload["endpoint_id"]
        rule_id = payload["rule_id"]
        if rule_id is None:
            raise PersistError(
                "Cannot save a rule without an id to the PostgreSQL store; "
                "rows are created by the integration setup",
                endpoint_id=endpoint_id,
            )

        query = (
            f"UPDATE {self.table} "
            "SET field_mapping = %s, transformation_rules = %s "
            "WHERE id = %s AND endpoint_name = %s"
        )
        params = (
            psycopg2.extras.Json(payload["field_mapping"]),
            psycopg2.extras.Json(payload["transformation_rules"]),
            rule_id,
            endpoint_id,
        )

        try:
            conn = self._connection()
            with conn:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)
                    updated = cursor.rowcount
        except psycopg2.Error as e:
            raise PersistError(
                f"Failed to save rule '{rule_id}' for '{endpoint_id}': {e}",
                endpoint_id=endpoint_id,
            ) from e

        if updated == 0:
            raise PersistError(
                f"No sync configuration row '{rule_id}' for endpoint '{endpoint_id}'",
                endpoint_id=endpoint_id,
            )
        return rule_id


def _decode_json(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise RuleFormatError(f"Invalid JSON column value: {e}") from e
    return value
