"""Terminal client for the workflow validator.

Usage:
    workflow-validator validate workflow.json
    workflow-validator validate workflow.json --profile strict --json
    workflow-validator fix workflow.json --apply --output fixed.json
    workflow-validator suggest HttpRequest
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from workflow_validator.config import Settings
from workflow_validator.engine import ValidationEngine
from workflow_validator.properties.models import VALIDATION_PROFILES
from workflow_validator.workflow.autofix import CONFIDENCE_LEVELS, FIX_TYPES, AutoFixConfig
from workflow_validator.workflow.models import ValidationOptions, ValidationResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _validate(engine: ValidationEngine, path: Path, profile: str, as_json: bool) -> int:
    workflow = _read_workflow(path)
    result = await engine.validator.validate_workflow(workflow, ValidationOptions(profile=profile))
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        print(format_report(result))
    return 0 if result.valid else 1


async def _fix(
    engine: ValidationEngine,
    path: Path,
    profile: str,
    apply: bool,
    output: Path | None,
    confidence: str,
    fix_types: list[str] | None,
) -> int:
    workflow = _read_workflow(path)
    result = await engine.validator.validate_workflow(workflow, ValidationOptions(profile=profile))
    config = AutoFixConfig(
        apply_fixes=apply,
        fix_types=tuple(fix_types) if fix_types else None,
        confidence_threshold=confidence,
        max_fixes=engine.settings.max_fixes,
    )
    fixed = engine.fixer.generate_fixes(workflow, result, config=config)

    print(fixed.summary)
    for fix in fixed.fixes:
        print(f"  [{fix.confidence}] {fix.node}: {fix.description}")

    if apply and fixed.workflow is not None:
        text = json.dumps(fixed.workflow, indent=2)
        if output is not None:
            output.write_text(text + "\n", encoding="utf-8")
            print(f"Wrote {output}")
        else:
            print(text)
    return 0


async def _suggest(engine: ValidationEngine, node_type: str, limit: int) -> int:
    suggestions = await engine.node_similarity.find_similar_nodes(node_type, limit=limit)
    print(engine.node_similarity.format_suggestion_message(suggestions, node_type))
    return 0 if suggestions else 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_workflow(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        sys.exit(2)
    except ValueError as exc:
        print(f"{path} is not valid JSON: {exc}", file=sys.stderr)
        sys.exit(2)


def format_report(result: ValidationResult) -> str:
    """Plain-text rendering of a validation result."""
    lines = ["VALID" if result.valid else "INVALID"]
    stats = result.statistics
    lines.append(
        f"{stats.total_nodes} node(s), {stats.trigger_nodes} trigger(s), "
        f"{stats.valid_connections} valid / {stats.invalid_connections} invalid connection(s)"
    )
    for label, issues in (("Errors", result.errors), ("Warnings", result.warnings)):
        if not issues:
            continue
        lines.append(f"\n{label}:")
        for issue in issues:
            prefix = f"[{issue.node_name}] " if issue.node_name else ""
            lines.append(f"  - {prefix}{issue.message}")
    if result.suggestions:
        lines.append("\nSuggestions:")
        lines.extend(f"  - {s}" for s in result.suggestions)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(message)s")

    parser = ArgumentParser(
        prog="workflow-validator",
        description="Validate and auto-fix n8n workflow JSON",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    validate_p = sub.add_parser("validate", help="Validate a workflow JSON file")
    validate_p.add_argument("path", type=Path, help="Workflow JSON file")
    validate_p.add_argument("--profile", choices=sorted(VALIDATION_PROFILES), default=settings.profile)
    validate_p.add_argument("--json", action="store_true", help="Print the full result as JSON")

    fix_p = sub.add_parser("fix", help="Propose (and optionally apply) fixes for a workflow")
    fix_p.add_argument("path", type=Path, help="Workflow JSON file")
    fix_p.add_argument("--profile", choices=sorted(VALIDATION_PROFILES), default=settings.profile)
    fix_p.add_argument("--apply", action="store_true", help="Print or write the patched workflow")
    fix_p.add_argument("--output", type=Path, default=None, help="Write the patched workflow here")
    fix_p.add_argument("--confidence", choices=CONFIDENCE_LEVELS, default="medium")
    fix_p.add_argument(
        "--fix-type",
        dest="fix_types",
        action="append",
        choices=FIX_TYPES,
        help="Restrict to this fix type (repeatable)",
    )

    suggest_p = sub.add_parser("suggest", help="Suggest node types for an unknown type")
    suggest_p.add_argument("node_type", help="The unknown node type")
    suggest_p.add_argument("--limit", type=int, default=5)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    engine = ValidationEngine.from_settings(settings)
    if args.command == "validate":
        code = asyncio.run(_validate(engine, args.path, args.profile, args.json))
    elif args.command == "fix":
        code = asyncio.run(_fix(
            engine, args.path, args.profile, args.apply, args.output, args.confidence, args.fix_types,
        ))
    else:
        code = asyncio.run(_suggest(engine, args.node_type, args.limit))

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
