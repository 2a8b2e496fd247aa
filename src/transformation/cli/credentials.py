"""
Rule store construction and logging setup for the CLI.

Settings come from command-line options first, then environment variables,
then HashiCorp Vault for PostgreSQL credentials when --use-vault is given.
"""

import argparse
import logging
import os

from rulestore import JsonFileRuleStore, PostgresRuleStore, RuleStore
from rulestore.postgres import DEFAULT_TABLE
from utils.logging import configure_from_env
from utils.vault_client import get_credentials_from_vault

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = "./rules"


class ConfigurationError(Exception):
    """Raised when the CLI cannot assemble a rule store from its settings."""

    pass


def setup_logging(args: argparse.Namespace) -> None:
    """
    Configure logging from --log-level/--log-json and LOG_* variables.
    """
    configure_from_env(level=args.log_level, json_format=args.log_json)


def get_postgres_config(args: argparse.Namespace) -> dict:
    """
    Get PostgreSQL connection settings from Vault or options/environment

    Args:
        args: Parsed command-line arguments

    Returns:
        Dict with host, port, database, username, password

    Raises:
        ConfigurationError: If credentials cannot be obtained
    """
    if args.use_vault:
        try:
            creds = get_credentials_from_vault()
        except Exception as e:
            raise ConfigurationError(
                f"Failed to fetch credentials from Vault: {e}"
            ) from e
        logger.info("Using PostgreSQL credentials from Vault")
        return {
            "host": creds["host"],
            "port": int(creds.get("port", 5432)),
            "database": creds["database"],
            "username": creds["username"],
            "password": creds["password"],
        }

    config = {
        "host": args.pg_host or os.getenv("POSTGRES_HOST", "localhost"),
        "port": int(args.pg_port or os.getenv("POSTGRES_PORT", "5432")),
        "database": args.pg_database or os.getenv("POSTGRES_DB", "postgres"),
        "username": args.pg_user or os.getenv("POSTGRES_USER", "postgres"),
        "password": args.pg_password or os.getenv("POSTGRES_PASSWORD"),
    }
    if not config["password"]:
        raise ConfigurationError(
            "PostgreSQL password not provided. Use --pg-password, "
            "POSTGRES_PASSWORD or --use-vault."
        )
    return config


def build_store(args: argparse.Namespace) -> RuleStore:
    """
    Create the rule store selected by --store or RULESTORE_BACKEND.

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured
    """
    backend = args.store or os.getenv("RULESTORE_BACKEND", "file")

    if backend == "file":
        path = args.store_path or os.getenv("RULESTORE_PATH", DEFAULT_STORE_PATH)
        return JsonFileRuleStore(path)

    if backend == "postgres":
        config = get_postgres_config(args)
        table = args.table or os.getenv("RULESTORE_TABLE", DEFAULT_TABLE)
        try:
            return PostgresRuleStore(
                host=config["host"],
                port=config["port"],
                database=config["database"],
                user=config["username"],
                password=config["password"],
                table=table,
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    raise ConfigurationError(
        f"Unknown rule store backend {backend!r}. Expected 'file' or 'postgres'."
    )
