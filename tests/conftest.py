"""
Pytest configuration and fixtures for field transformation tests.
Provides shared rules, stores and environment defaults.
"""

import os

import pytest

from rulestore import InMemoryRuleStore, JsonFileRuleStore
from transformation.models import FieldMapping, TransformationRule, TransformationStep


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(autouse=True)
def clean_store_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of rule store and exporter settings in the shell."""
    for key in (
        "RULESTORE_BACKEND",
        "RULESTORE_PATH",
        "RULESTORE_TABLE",
        "OTLP_ENDPOINT",
        "TRACE_CONSOLE",
        "TRACE_SAMPLE_RATE",
        "LOG_FILE",
        "LOG_JSON",
        "VAULT_SECRET_PATH",
    ):
        monkeypatch.delenv(key, raising=False)

    defaults = {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_PORT": "5432",
        "POSTGRES_DB": "integrations",
        "POSTGRES_USER": "postgres",
        "POSTGRES_PASSWORD": "postgres_secure_password",
        "VAULT_ADDR": "http://localhost:8200",
        "VAULT_TOKEN": "dev-root-token",
    }
    for key, value in defaults.items():
        if key not in os.environ:
            monkeypatch.setenv(key, value)


@pytest.fixture
def employee_rule() -> TransformationRule:
    """A rule with a passthrough mapping and two transformed mappings."""
    return TransformationRule(
        endpoint_id="employees",
        display_name="Employees",
        mappings=[
            FieldMapping(
                source_field="first_name",
                target_field="firstName",
                steps=[
                    TransformationStep("trim", id="s1"),
                    TransformationStep("uppercase", id="s2"),
                ],
            ),
            FieldMapping(source_field="employee_id", target_field="externalId"),
            FieldMapping(
                source_field="hired_on",
                target_field="hireDate",
                steps=[TransformationStep("date_format", "%m/%d/%Y", id="d1")],
            ),
        ],
    )


@pytest.fixture
def memory_store() -> InMemoryRuleStore:
    """Empty in-memory rule store."""
    return InMemoryRuleStore()


@pytest.fixture
def file_store(tmp_path) -> JsonFileRuleStore:
    """Empty file rule store in a temporary directory."""
    return JsonFileRuleStore(tmp_path / "rules")
