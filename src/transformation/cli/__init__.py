"""
Command-line interface for field transformation rules.

Available commands:
- list: Endpoints with stored rules
- show: Mappings and steps of a rule
- preview: Run a mapping on a sample value
- validate: Check step parameters
- apply: Transform a batch of records
- add-mapping / remove-mapping: Edit field mappings
- add-step / remove-step: Edit a mapping's steps
"""

import logging
import sys

from rulestore import RuleStoreError
from transformation.errors import RuleEditError, TransformationError
from utils.logging import shutdown_logging
from utils.tracing import initialize_tracing, shutdown_tracing

from .commands import COMMANDS
from .credentials import ConfigurationError, build_store, get_postgres_config, setup_logging
from .parser import create_parser

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fieldmap CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        sys.exit(1)

    setup_logging(args)
    initialize_tracing()

    try:
        exit_code = COMMANDS[args.command](args)
    except (
        RuleStoreError,
        RuleEditError,
        TransformationError,
        ConfigurationError,
        ValueError,
        OSError,
    ) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        exit_code = 1
    finally:
        shutdown_tracing()
        shutdown_logging()

    sys.exit(exit_code)


__all__ = [
    'main',
    'create_parser',
    'build_store',
    'get_postgres_config',
    'setup_logging',
    'COMMANDS',
]


if __name__ == '__main__':
    main()
