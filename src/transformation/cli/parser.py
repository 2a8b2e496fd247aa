"""
Command-line argument parser configuration.

Defines the fieldmap commands and their options. Store and database options
are accepted by every command so they can follow the command name.
"""

import argparse

from rulestore.postgres import DEFAULT_TABLE


def _add_store_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("rule store")
    group.add_argument(
        '--store',
        choices=['file', 'postgres'],
        help='Rule store backend (default: $RULESTORE_BACKEND or file)'
    )
    group.add_argument(
        '--store-path',
        help='Directory of the file store (default: $RULESTORE_PATH or ./rules)'
    )
    group.add_argument(
        '--table',
        help=f'PostgreSQL table (default: $RULESTORE_TABLE or {DEFAULT_TABLE})'
    )
    group.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch PostgreSQL credentials from HashiCorp Vault'
    )
    group.add_argument('--pg-host', help='PostgreSQL host')
    group.add_argument('--pg-port', help='PostgreSQL port')
    group.add_argument('--pg-database', help='PostgreSQL database name')
    group.add_argument('--pg-user', help='PostgreSQL username')
    group.add_argument('--pg-password', help='PostgreSQL password')


def _add_rule_selector(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--endpoint',
        required=True,
        help='Integration endpoint name'
    )
    parser.add_argument(
        '--rule-id',
        help='Stored rule id when the endpoint has several (default: first)'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='fieldmap',
        description="Manage and preview field transformation rules for integration sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List endpoints with stored rules
  fieldmap list --store-path ./rules

  # Build a mapping step by step
  fieldmap add-mapping --endpoint employees --source first_name --target firstName
  fieldmap add-step --endpoint employees --source first_name --type trim
  fieldmap add-step --endpoint employees --source first_name --type uppercase

  # Preview a stored mapping on a sample value
  fieldmap preview --endpoint employees --source first_name --sample "  ada "

  # Preview an unsaved pipeline
  fieldmap preview --steps '[{"type": "substring", "params": "0,3"}]' --sample abcdef

  # Transform a batch of records from PostgreSQL-stored rules
  fieldmap apply --store postgres --use-vault --endpoint employees \\
      --input records.json --output mapped.json --metrics-port 9091
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: $LOG_LEVEL or INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        default=None,
        help='Emit JSON log lines'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== List command ==========
    list_parser = subparsers.add_parser('list', help='List endpoints with stored rules')
    _add_store_options(list_parser)

    # ========== Show command ==========
    show_parser = subparsers.add_parser('show', help='Show the mappings of a rule')
    _add_rule_selector(show_parser)
    show_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    _add_store_options(show_parser)

    # ========== Preview command ==========
    preview_parser = subparsers.add_parser(
        'preview', help='Run a mapping on a sample value'
    )
    preview_parser.add_argument('--endpoint', help='Endpoint of a stored mapping')
    preview_parser.add_argument('--rule-id', help='Stored rule id (default: first)')
    preview_parser.add_argument('--source', help='Source field of a stored mapping')
    preview_parser.add_argument(
        '--steps',
        help='Inline JSON list of steps, e.g. \'[{"type": "trim"}]\''
    )
    preview_parser.add_argument(
        '--sample',
        required=True,
        help='Sample input value'
    )
    _add_store_options(preview_parser)

    # ========== Validate command ==========
    validate_parser = subparsers.add_parser(
        'validate', help='Check step parameters of a rule'
    )
    _add_rule_selector(validate_parser)
    _add_store_options(validate_parser)

    # ========== Apply command ==========
    apply_parser = subparsers.add_parser(
        'apply', help='Transform records with a stored rule'
    )
    _add_rule_selector(apply_parser)
    apply_parser.add_argument(
        '--input',
        required=True,
        help='JSON file with a list of records ("-" for stdin)'
    )
    apply_parser.add_argument(
        '--output',
        help='Output file for transformed records (default: stdout)'
    )
    apply_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )
    _add_store_options(apply_parser)

    # ========== Mapping edit commands ==========
    add_mapping_parser = subparsers.add_parser(
        'add-mapping', help='Map a source field to a target field'
    )
    _add_rule_selector(add_mapping_parser)
    add_mapping_parser.add_argument('--source', required=True, help='Source field')
    add_mapping_parser.add_argument('--target', required=True, help='Target field')
    add_mapping_parser.add_argument(
        '--display-name',
        help='Display name when the endpoint has no rule yet'
    )
    _add_store_options(add_mapping_parser)

    remove_mapping_parser = subparsers.add_parser(
        'remove-mapping', help='Remove a field mapping and its steps'
    )
    _add_rule_selector(remove_mapping_parser)
    remove_mapping_parser.add_argument('--source', required=True, help='Source field')
    _add_store_options(remove_mapping_parser)

    # ========== Step edit commands ==========
    add_step_parser = subparsers.add_parser(
        'add-step', help='Append a transformation step to a mapping'
    )
    _add_rule_selector(add_step_parser)
    add_step_parser.add_argument('--source', required=True, help='Source field')
    add_step_parser.add_argument(
        '--type',
        required=True,
        dest='kind',
        help='Step type (uppercase, trim, replace, custom, ...)'
    )
    add_step_parser.add_argument('--param', help='Step parameter')
    add_step_parser.add_argument('--step-id', help='Explicit step id')
    _add_store_options(add_step_parser)

    remove_step_parser = subparsers.add_parser(
        'remove-step', help='Remove a transformation step from a mapping'
    )
    _add_rule_selector(remove_step_parser)
    remove_step_parser.add_argument('--source', required=True, help='Source field')
    remove_step_parser.add_argument('--step-id', required=True, help='Step id')
    _add_store_options(remove_step_parser)

    return parser
