"""
CLI command implementations.

Every command takes the parsed arguments, writes its result to stdout and
returns the process exit code. Store and editor errors propagate to main(),
which reports them and exits with status 1.
"""

import argparse
import json
import logging
import sys
from contextlib import closing
from typing import Any

from rulestore import RuleNotFoundError, RuleStore
from rulestore.serialization import step_from_dict, step_to_dict
from transformation.editor import (
    add_mapping,
    add_step,
    remove_mapping,
    remove_step,
    validate_rule,
)
from transformation.errors import MappingNotFoundError
from transformation.models import FieldMapping, TransformationRule
from transformation.pipeline import transform_records
from transformation.preview import preview_mapping
from utils.metrics import MetricsPublisher
from utils.tracing import trace_function

from .credentials import build_store

logger = logging.getLogger(__name__)


def _require_mapping(rule: TransformationRule, source_field: str) -> FieldMapping:
    mapping = rule.get_mapping(source_field)
    if mapping is None:
        raise MappingNotFoundError(
            f"Source field '{source_field}' is not mapped in '{rule.endpoint_id}'"
        )
    return mapping


def _load_or_create_rule(
    store: RuleStore,
    endpoint_id: str,
    rule_id: str | None,
    display_name: str | None,
) -> TransformationRule:
    try:
        return store.load_rule(endpoint_id, rule_id)
    except RuleNotFoundError:
        if rule_id is not None:
            raise
        logger.info(f"Creating new rule for endpoint {endpoint_id}")
        return TransformationRule(endpoint_id=endpoint_id, display_name=display_name or "")


def rule_to_dict(rule: TransformationRule) -> dict[str, Any]:
    """Render a rule with its mappings nested, for display."""
    return {
        "endpoint_id": rule.endpoint_id,
        "display_name": rule.display_name,
        "rule_id": rule.rule_id,
        "mappings": [
            {
                "source_field": m.source_field,
                "target_field": m.target_field,
                "steps": [step_to_dict(step) for step in m.steps],
            }
            for m in rule.mappings
        ],
    }


def format_rule_console(rule: TransformationRule) -> str:
    """Render a rule as indented text."""
    lines = [f"{rule.display_name} ({rule.endpoint_id}, rule {rule.rule_id or '-'})"]
    if not rule.mappings:
        lines.append("  (no mappings)")
    for mapping in rule.mappings:
        lines.append(f"  {mapping.source_field} -> {mapping.target_field}")
        for position, step in enumerate(mapping.steps, start=1):
            param = f" {step.parameter!r}" if step.parameter is not None else ""
            lines.append(f"    {position}. {step.kind.value}{param}  [{step.id}]")
    return "\n".join(lines)


@trace_function(component="cli")
def cmd_list(args: argparse.Namespace) -> int:
    """List endpoints that have stored rules"""
    with closing(build_store(args)) as store:
        endpoints = store.list_endpoints()

    for endpoint in endpoints:
        print(endpoint)
    logger.debug(f"Listed {len(endpoints)} endpoint(s)")
    return 0


@trace_function(component="cli")
def cmd_show(args: argparse.Namespace) -> int:
    """Print the mappings of a stored rule"""
    with closing(build_store(args)) as store:
        rule = store.load_rule(args.endpoint, args.rule_id)

    if args.format == "json":
        print(json.dumps(rule_to_dict(rule), indent=2))
    else:
        print(format_rule_console(rule))
    return 0


def _inline_mapping(steps_json: str) -> FieldMapping:
    try:
        raw_steps = json.loads(steps_json)
    except json.JSONDecodeError as e:
        raise ValueError(f"--steps is not valid JSON: {e}") from e
    if not isinstance(raw_steps, list) or not all(isinstance(s, dict) for s in raw_steps):
        raise ValueError("--steps must be a JSON list of step objects")

    try:
        steps = [step_from_dict(raw) for raw in raw_steps]
    except KeyError as e:
        raise ValueError(f"Step is missing required key {e}") from e
    return FieldMapping(source_field="sample", target_field="sample", steps=steps)


@trace_function(component="cli")
def cmd_preview(args: argparse.Namespace) -> int:
    """
    Preview a stored mapping or an inline step list on a sample value

    Step failures are part of the preview output, not command errors.
    """
    if args.steps:
        mapping = _inline_mapping(args.steps)
    elif args.endpoint and args.source:
        with closing(build_store(args)) as store:
            rule = store.load_rule(args.endpoint, args.rule_id)
        mapping = _require_mapping(rule, args.source)
    else:
        raise ValueError("preview needs either --steps or both --endpoint and --source")

    print(preview_mapping(mapping, args.sample))
    return 0


@trace_function(component="cli")
def cmd_validate(args: argparse.Namespace) -> int:
    """Report step parameter problems; exit 1 if any are found"""
    with closing(build_store(args)) as store:
        rule = store.load_rule(args.endpoint, args.rule_id)

    report = validate_rule(rule)
    if not report:
        print(f"{rule.endpoint_id}: {len(rule.mappings)} mapping(s) OK")
        return 0

    for source_field, problems in report.items():
        for problem in problems:
            print(f"{source_field}: {problem}")
    return 1


def _read_records(path: str) -> list[dict[str, Any]]:
    if path == "-":
        records = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            records = json.load(f)

    if isinstance(records, dict):
        records = [records]
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise ValueError(f"{path} must contain a JSON object or a list of objects")
    return records


@trace_function(component="cli")
def cmd_apply(args: argparse.Namespace) -> int:
    """
    Transform a batch of records with a stored rule

    Writes one {"values", "errors"} object per record. Exits 1 if any field
    failed to transform.
    """
    if args.metrics_port:
        MetricsPublisher(port=args.metrics_port).start()

    with closing(build_store(args)) as store:
        rule = store.load_rule(args.endpoint, args.rule_id)

    records = _read_records(args.input)
    results = transform_records(rule, records)
    failed = sum(1 for result in results if not result.success)

    output = [
        {"values": result.values, "errors": result.error_messages()}
        for result in results
    ]
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2)
        logger.info(f"Wrote {len(output)} transformed record(s) to {args.output}")
    else:
        print(json.dumps(output, indent=2))

    if failed:
        logger.warning(f"{failed} of {len(results)} record(s) had field errors")
        return 1
    return 0


@trace_function(component="cli")
def cmd_add_mapping(args: argparse.Namespace) -> int:
    """Add a passthrough mapping, creating the rule if the endpoint has none"""
    with closing(build_store(args)) as store:
        rule = _load_or_create_rule(store, args.endpoint, args.rule_id, args.display_name)
        mapping = add_mapping(rule, args.source, args.target)
        store.save(rule)

    print(f"Mapped {mapping.source_field} -> {mapping.target_field}")
    return 0


@trace_function(component="cli")
def cmd_remove_mapping(args: argparse.Namespace) -> int:
    """Remove a mapping and its steps"""
    with closing(build_store(args)) as store:
        rule = store.load_rule(args.endpoint, args.rule_id)
        mapping = remove_mapping(rule, args.source)
        store.save(rule)

    print(f"Removed mapping {mapping.source_field} -> {mapping.target_field}")
    return 0


@trace_function(component="cli")
def cmd_add_step(args: argparse.Namespace) -> int:
    """Append a step to a mapping and save the rule"""
    with closing(build_store(args)) as store:
        rule = store.load_rule(args.endpoint, args.rule_id)
        mapping = _require_mapping(rule, args.source)
        step = add_step(mapping, args.kind, args.param, step_id=args.step_id)
        store.save(rule)

    print(
        f"Added {step.kind.value} step {step.id} to {mapping.source_field} "
        f"(position {len(mapping.steps)})"
    )
    return 0


@trace_function(component="cli")
def cmd_remove_step(args: argparse.Namespace) -> int:
    """Remove a step from a mapping and save the rule"""
    with closing(build_store(args)) as store:
        rule = store.load_rule(args.endpoint, args.rule_id)
        mapping = _require_mapping(rule, args.source)
        step = remove_step(mapping, args.step_id)
        store.save(rule)

    print(f"Removed {step.kind.value} step {step.id} from {mapping.source_field}")
    return 0


COMMANDS = {
    "list": cmd_list,
    "show": cmd_show,
    "preview": cmd_preview,
    "validate": cmd_validate,
    "apply": cmd_apply,
    "add-mapping": cmd_add_mapping,
    "remove-mapping": cmd_remove_mapping,
    "add-step": cmd_add_step,
    "remove-step": cmd_remove_step,
}
