"""
Persistence for transformation rules.

Backends:
- InMemoryRuleStore: process-local, for tests and scratch rules
- JsonFileRuleStore: one JSON document per endpoint
- PostgresRuleStore: the integration_sync_configs table
"""

from .base import RuleStore
from .errors import (
    DuplicateSourceFieldError,
    PersistError,
    RuleFormatError,
    RuleNotFoundError,
    RuleStoreError,
)
from .file import JsonFileRuleStore
from .memory import InMemoryRuleStore
from .postgres import PostgresRuleStore
from .serialization import flatten_rule, join_rule

__all__ = [
    "RuleStore",
    "InMemoryRuleStore",
    "JsonFileRuleStore",
    "PostgresRuleStore",
    "RuleStoreError",
    "RuleNotFoundError",
    "PersistError",
    "DuplicateSourceFieldError",
    "RuleFormatError",
    "flatten_rule",
    "join_rule",
]
