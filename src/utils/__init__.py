"""
Shared infrastructure for the field transformation engine

Provides:
- logging: structured logging setup
- metrics: Prometheus metric helpers and the metrics HTTP publisher
- tracing: OpenTelemetry spans
- retry: backoff decorators for database and HTTP calls
- sql_safety: identifier quoting for the PostgreSQL rule store
- vault_client: HashiCorp Vault credentials lookup
"""

__all__ = ["logging", "metrics", "tracing", "retry", "sql_safety", "vault_client"]
