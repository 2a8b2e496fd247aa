"""
HashiCorp Vault client for fetching PostgreSQL credentials

Reads the rule store's connection settings from a KV v2 secret instead of
the environment when the CLI runs with --use-vault.
"""

import logging
import os
import re
from typing import Any

import requests

from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_SECRET_PATH = "secret/database/postgresql"
REQUIRED_FIELDS = ("host", "database", "username", "password")
DEFAULT_PORT = 5432

_SAFE_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")


def to_kv2_path(secret_path: str) -> str:
    """
    Validate a secret path and insert the KV v2 "data" segment.

    "secret/database/postgresql" becomes "secret/data/database/postgresql".

    Raises:
        ValueError: If the path is empty, tries traversal, or has unsafe characters
    """
    if not secret_path or not isinstance(secret_path, str):
        raise ValueError("secret_path must be a non-empty string")

    if ".." in secret_path or secret_path.startswith("//"):
        raise ValueError(
            f"Invalid secret_path: {secret_path}. "
            "Path traversal attempts are not allowed."
        )

    if not _SAFE_PATH.match(secret_path):
        raise ValueError(
            f"Invalid secret_path: {secret_path}. "
            "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
        )

    if "/data/" in secret_path:
        return secret_path

    mount, _, rest = secret_path.partition("/")
    return f"{mount}/data/{rest}" if rest else f"{mount}/data"


class VaultClient:
    """
    HashiCorp Vault client for the KV v2 secrets engine.
    """

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_token: str | None = None,
        namespace: str | None = None,
        timeout: float = 10.0,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: VAULT_ADDR env var)
            vault_token: Vault authentication token (default: VAULT_TOKEN env var)
            namespace: Vault namespace (Vault Enterprise only)
            timeout: Request timeout in seconds

        Raises:
            ValueError: If the address or token is missing
        """
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        vault_token = vault_token or os.getenv("VAULT_TOKEN")

        if not vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )
        if not vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = vault_addr.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "X-Vault-Token": vault_token,
            "Content-Type": "application/json",
        }
        if namespace:
            self.headers["X-Vault-Namespace"] = namespace

        logger.debug(f"Initialized Vault client for {self.vault_addr}")

    @retry_with_backoff(
        max_retries=2,
        base_delay=0.5,
        retryable_exceptions=(requests.ConnectionError, requests.Timeout),
    )
    def _get(self, url: str) -> requests.Response:
        return requests.get(url, headers=self.headers, timeout=self.timeout)

    def get_secret(self, secret_path: str) -> dict[str, Any]:
        """
        Fetch a secret's data from the KV v2 engine.

        Args:
            secret_path: Path to the secret (e.g. "secret/database/postgresql")

        Returns:
            The secret's key/value data

        Raises:
            ValueError: If the path is invalid or the secret is missing or empty
            requests.RequestException: If Vault cannot be reached or errors
        """
        kv_path = to_kv2_path(secret_path)
        url = f"{self.vault_addr}/v1/{kv_path}"

        logger.debug(f"Fetching secret from: {url}")
        response = self._get(url)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {kv_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {kv_path}")

        return secret_data

    def get_postgres_credentials(
        self, secret_path: str = DEFAULT_SECRET_PATH
    ) -> dict[str, Any]:
        """
        Fetch PostgreSQL connection settings.

        Returns:
            Dict with host, port, database, username, password

        Raises:
            ValueError: If required fields are missing from the secret
        """
        secret_data = dict(self.get_secret(secret_path))

        missing = [field for field in REQUIRED_FIELDS if field not in secret_data]
        if missing:
            raise ValueError(
                f"Missing required fields in secret: {', '.join(missing)}"
            )

        secret_data.setdefault("port", DEFAULT_PORT)
        logger.info("Fetched PostgreSQL credentials from Vault")
        return secret_data


def get_credentials_from_vault(
    secret_path: str | None = None,
    vault_addr: str | None = None,
    vault_token: str | None = None,
) -> dict[str, Any]:
    """
    Fetch PostgreSQL credentials from Vault.

    secret_path defaults to VAULT_SECRET_PATH, then "secret/database/postgresql".
    """
    client = VaultClient(vault_addr=vault_addr, vault_token=vault_token)
    path = secret_path or os.getenv("VAULT_SECRET_PATH", DEFAULT_SECRET_PATH)
    return client.get_postgres_credentials(path)
