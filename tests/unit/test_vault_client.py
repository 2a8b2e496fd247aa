"""
Unit tests for src/utils/vault_client.py

Covers initialization, KV v2 path handling, secret retrieval and
PostgreSQL credential fetching. All HTTP calls are mocked.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from utils.vault_client import (
    DEFAULT_SECRET_PATH,
    VaultClient,
    get_credentials_from_vault,
    to_kv2_path,
)


def vault_response(status_code=200, data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {"data": {"data": data or {}}}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def client():
    return VaultClient(vault_addr="https://vault.example.com/", vault_token="test-token-123")


class TestVaultClientInit:
    """Test VaultClient initialization scenarios"""

    def test_init_with_explicit_parameters(self, client):
        """Test initialization with explicitly provided parameters"""
        assert client.vault_addr == "https://vault.example.com"
        assert client.headers == {
            "X-Vault-Token": "test-token-123",
            "Content-Type": "application/json",
        }

    def test_init_with_env_variables(self, monkeypatch):
        """Test initialization using environment variables"""
        monkeypatch.setenv("VAULT_ADDR", "https://vault.env.com")
        monkeypatch.setenv("VAULT_TOKEN", "env-token-456")

        client = VaultClient()

        assert client.vault_addr == "https://vault.env.com"
        assert client.headers["X-Vault-Token"] == "env-token-456"

    def test_namespace_header(self):
        client = VaultClient("https://v", "t", namespace="team-a")
        assert client.headers["X-Vault-Namespace"] == "team-a"

    def test_missing_vault_addr(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="Vault address not provided"):
            VaultClient(vault_token="test-token")

    def test_missing_vault_token(self, monkeypatch):
        monkeypatch.delenv("VAULT_TOKEN", raising=False)
        with pytest.raises(ValueError, match="Vault token not provided"):
            VaultClient(vault_addr="https://vault.example.com")


class TestKv2Path:
    """Test secret path validation and KV v2 rewriting"""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("secret/database/postgresql", "secret/data/database/postgresql"),
            ("secret/data/database/postgresql", "secret/data/database/postgresql"),
            ("kv/fieldmap", "kv/data/fieldmap"),
            ("kv", "kv/data"),
        ],
    )
    def test_rewrite(self, path, expected):
        assert to_kv2_path(path) == expected

    @pytest.mark.parametrize(
        "path",
        ["", "secret/../sys/policy", "//secret", "secret/db;rm", "secret/db?x=1"],
    )
    def test_rejected(self, path):
        with pytest.raises(ValueError):
            to_kv2_path(path)


class TestGetSecret:
    """Test secret retrieval"""

    @patch("utils.vault_client.requests.get")
    def test_get_secret(self, mock_get, client):
        mock_get.return_value = vault_response(data={"host": "db"})

        assert client.get_secret("secret/database/postgresql") == {"host": "db"}

        mock_get.assert_called_once_with(
            "https://vault.example.com/v1/secret/data/database/postgresql",
            headers=client.headers,
            timeout=10.0,
        )

    @patch("utils.vault_client.requests.get")
    def test_not_found(self, mock_get, client):
        mock_get.return_value = vault_response(status_code=404)
        with pytest.raises(ValueError, match="Secret not found"):
            client.get_secret("secret/missing")

    @patch("utils.vault_client.requests.get")
    def test_empty_secret(self, mock_get, client):
        mock_get.return_value = vault_response(data={})
        with pytest.raises(ValueError, match="No data found"):
            client.get_secret("secret/empty")

    @patch("utils.vault_client.requests.get")
    def test_http_error_propagates(self, mock_get, client):
        mock_get.return_value = vault_response(status_code=403)
        with pytest.raises(requests.HTTPError):
            client.get_secret("secret/forbidden")

    @patch("utils.retry.time.sleep")
    @patch("utils.vault_client.requests.get")
    def test_connection_errors_retried(self, mock_get, mock_sleep, client):
        mock_get.side_effect = [
            requests.ConnectionError("refused"),
            vault_response(data={"k": "v"}),
        ]

        assert client.get_secret("secret/x") == {"k": "v"}
        assert mock_get.call_count == 2

    @patch("utils.retry.time.sleep")
    @patch("utils.vault_client.requests.get")
    def test_gives_up_after_retries(self, mock_get, mock_sleep, client):
        mock_get.side_effect = requests.Timeout("slow")

        with pytest.raises(requests.Timeout):
            client.get_secret("secret/x")
        assert mock_get.call_count == 3


class TestPostgresCredentials:
    """Test PostgreSQL credential fetching"""

    @patch("utils.vault_client.requests.get")
    def test_port_defaulted(self, mock_get, client):
        mock_get.return_value = vault_response(data={
            "host": "db", "database": "integrations",
            "username": "app", "password": "pw",
        })

        creds = client.get_postgres_credentials()

        assert creds["port"] == 5432
        assert creds["username"] == "app"

    @patch("utils.vault_client.requests.get")
    def test_missing_fields(self, mock_get, client):
        mock_get.return_value = vault_response(data={"host": "db"})
        with pytest.raises(ValueError, match="database, username, password"):
            client.get_postgres_credentials()


class TestGetCredentialsFromVault:
    """Test the convenience wrapper"""

    @patch.object(VaultClient, "get_postgres_credentials")
    def test_default_path(self, mock_creds):
        mock_creds.return_value = {"host": "db"}

        assert get_credentials_from_vault() == {"host": "db"}
        mock_creds.assert_called_once_with(DEFAULT_SECRET_PATH)

    @patch.object(VaultClient, "get_postgres_credentials")
    def test_path_from_env(self, mock_creds, monkeypatch):
        monkeypatch.setenv("VAULT_SECRET_PATH", "kv/fieldmap/db")
        get_credentials_from_vault()
        mock_creds.assert_called_once_with("kv/fieldmap/db")
