#!/usr/bin/env python3
"""
flow_edit.py - Edit and validate flow documents from the command line.

Subcommands:
  add-step      Insert a component step after an anchor (or before the entry)
  update-step   Override a step's operation, payload answers and/or routing
  delete-step   Remove a step and splice its routing into its predecessors
  validate      Check a flow document

Without --write the edited document is printed to stdout (dry run).

Exit Codes:
  0 - Edit applied / flow valid
  1 - Edit rejected or validation failed
  2 - Fatal error (missing file, unparseable or schema-invalid document)

Examples:
  flowgraph-edit add-step flows/main.ygtc --after fetch --component qa.process --payload '{"prompt": "hi"}'
  flowgraph-edit update-step flows/main.ygtc --step summarize --answers '{"model": "small"}' --write
  flowgraph-edit delete-step flows/main.ygtc --step summarize --if-multiple-predecessors splice-all
  flowgraph-edit validate flows/main.ygtc --catalog components/ --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from flowgraph.config.catalog import ComponentCatalog, load_catalog
from flowgraph.config.edit_config import (
    VALID_DELETE_STRATEGIES,
    VALID_MULTI_PREDECESSOR,
    EditSettings,
    get_edit_settings,
)
from flowgraph.edit.add_step import AddStepRequest, apply_and_validate, plan_add_step
from flowgraph.edit.delete_step import DeleteStrategy, MultiPredecessorPolicy, delete_step
from flowgraph.edit.modes import (
    materialize_node,
    parse_answers,
    parse_payload,
    routes_from_options,
    routing_from_options,
)
from flowgraph.edit.update_step import StepOverrides, update_and_validate
from flowgraph.ir.errors import DiagnosticsError, DocumentError, FlowError, SchemaError
from flowgraph.ir.loader import dump_flow
from flowgraph.ir.manager import FlowDocumentManager
from flowgraph.ir.types import FlowGraph
from flowgraph.validator.diagnostics import Diagnostic, diagnostics_to_dict
from flowgraph.validator.flow_validator import validate_flow

logger = logging.getLogger(__name__)

# Exit codes per contract
EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILED = 1
EXIT_FATAL_ERROR = 2

VERSION = "0.3.0"


class FatalError(Exception):
    """Input could not be read; maps to EXIT_FATAL_ERROR."""


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _resolve_catalog(args: argparse.Namespace, settings: EditSettings) -> Optional[ComponentCatalog]:
    """Catalog from --catalog, else configured paths, else None (skip catalog checks)."""
    if args.catalog:
        return load_catalog(args.catalog)
    if settings.catalog_paths:
        return load_catalog(settings.catalog_paths)
    logger.warning("No component catalog configured (--catalog or FLOWGRAPH_CATALOG_PATHS); skipping component checks")
    return None


def _read_flow(manager: FlowDocumentManager, path: Path):
    try:
        return manager.read(path)
    except (FileNotFoundError, DocumentError, SchemaError) as e:
        raise FatalError(str(e)) from e
    except FlowError as e:
        raise FatalError(f"{path}: {e}") from e


def _read_text(path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise FatalError(f"cannot read {path}: {e}") from e


def _emit_result(
    args: argparse.Namespace,
    manager: FlowDocumentManager,
    graph: FlowGraph,
    etag: str,
    summary: str,
) -> int:
    """Write or print an edited graph."""
    output: Dict[str, Any] = {"status": "ok", "flow": str(args.flow), "summary": summary}
    if args.write:
        new_etag = manager.save(args.flow, graph, etag=etag)
        output["etag"] = new_etag
        if not args.json:
            print(f"{summary}; wrote {args.flow}")
    else:
        output["document"] = dump_flow(graph)
        if not args.json:
            sys.stdout.write(output["document"])
    if args.json:
        print(json.dumps(output, indent=2))
    return EXIT_SUCCESS


def _emit_diagnostics(args: argparse.Namespace, diagnostics: List[Diagnostic], message: str) -> int:
    if args.json:
        report = diagnostics_to_dict(diagnostics)
        report["flow"] = str(args.flow)
        report["message"] = message
        print(json.dumps(report, indent=2))
    else:
        print(f"{message}:", file=sys.stderr)
        for diag in diagnostics:
            print(f"  {diag.format()}", file=sys.stderr)
    return EXIT_VALIDATION_FAILED


def _emit_error(args: argparse.Namespace, error: Exception, code: int) -> int:
    if args.json:
        print(json.dumps({"status": "error", "flow": str(args.flow), "message": str(error)}, indent=2))
    else:
        print(f"ERROR: {error}", file=sys.stderr)
    return code


# ============================================================================
# Subcommands
# ============================================================================


def cmd_add_step(args: argparse.Namespace, settings: EditSettings) -> int:
    manager = FlowDocumentManager(backup_on_write=settings.backup_on_write)
    graph, etag = _read_flow(manager, args.flow)
    catalog = _resolve_catalog(args, settings)

    routing, placeholder_required = routing_from_options(
        out=args.routing_out,
        reply=args.routing_reply,
        next_node=args.routing_next,
        multi_to=args.routing_multi_to,
        routing_json=_read_text(args.routing_json),
    )
    node = materialize_node(
        args.component,
        parse_payload(args.payload),
        pack_alias=args.pack_alias,
        operation=args.operation,
        routing=routing,
    )
    request = AddStepRequest(
        after=args.after,
        node_id_hint=args.node_id,
        node=node,
        allow_cycles=args.allow_cycles or settings.allow_cycles,
        require_placeholder=placeholder_required and settings.require_placeholder,
    )

    result = plan_add_step(graph, request, catalog)
    if not result:
        return _emit_diagnostics(args, result.diagnostics, "add-step rejected")

    plan = result.plan
    logger.debug("Planned node %s after %s", plan.new_node.id, plan.anchor or "<empty flow>")
    updated = apply_and_validate(graph, plan, catalog)
    return _emit_result(args, manager, updated, etag, f"added step '{plan.new_node.id}'")


def cmd_update_step(args: argparse.Namespace, settings: EditSettings) -> int:
    manager = FlowDocumentManager(backup_on_write=settings.backup_on_write)
    graph, etag = _read_flow(manager, args.flow)
    catalog = _resolve_catalog(args, settings)

    overrides = StepOverrides(
        operation=args.operation,
        answers=parse_answers(args.answers, args.answers_file),
        routing=routes_from_options(
            out=args.routing_out,
            reply=args.routing_reply,
            next_node=args.routing_next,
            multi_to=args.routing_multi_to,
            routing_json=_read_text(args.routing_json),
        ),
    )
    if overrides.is_empty:
        logger.warning("update-step for '%s' has no overrides; document is unchanged", args.step)

    updated = update_and_validate(graph, args.step, overrides, catalog)
    return _emit_result(args, manager, updated, etag, f"updated step '{args.step}'")


def cmd_delete_step(args: argparse.Namespace, settings: EditSettings) -> int:
    manager = FlowDocumentManager(backup_on_write=settings.backup_on_write)
    graph, etag = _read_flow(manager, args.flow)

    strategy = DeleteStrategy(args.strategy or settings.delete_strategy)
    policy = MultiPredecessorPolicy(args.if_multiple_predecessors or settings.multi_predecessor)
    updated = delete_step(graph, args.step, strategy, policy)
    return _emit_result(args, manager, updated, etag, f"deleted step '{args.step}'")


def cmd_validate(args: argparse.Namespace, settings: EditSettings) -> int:
    manager = FlowDocumentManager(backup_on_write=settings.backup_on_write)
    graph, _ = _read_flow(manager, args.flow)
    catalog = _resolve_catalog(args, settings)

    diagnostics = validate_flow(graph, catalog)
    if diagnostics:
        return _emit_diagnostics(args, diagnostics, f"flow '{graph.id}' is invalid")

    if args.json:
        report = diagnostics_to_dict(diagnostics)
        report["flow"] = str(args.flow)
        print(json.dumps(report, indent=2))
    else:
        print(f"Flow '{graph.id}' is valid ({len(graph.nodes)} nodes).")
    return EXIT_SUCCESS


# ============================================================================
# Argument parsing
# ============================================================================


def _add_routing_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--routing-out", action="store_true", help="Route to flow exit")
    group.add_argument("--routing-reply", action="store_true", help="Reply to the caller")
    group.add_argument("--routing-next", metavar="NODE", help="Route to a single node")
    group.add_argument("--routing-multi-to", metavar="A,B", help="Route to several nodes (comma-separated)")
    group.add_argument("--routing-json", metavar="PATH", help="Read routing (JSON array) from a file")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("flow", type=Path, help="Path to the flow document")
    common.add_argument(
        "--catalog",
        action="append",
        metavar="PATH",
        help="Component manifest file or directory (repeatable)",
    )
    common.add_argument("--write", action="store_true", help="Write the result back to the flow document")
    common.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        prog="flowgraph-edit",
        description="Edit and validate flow documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0 - Success
  1 - Edit rejected or validation failed
  2 - Fatal error (missing file, parse or schema errors)
        """,
    )
    parser.add_argument("--version", action="version", version=f"flowgraph-edit {VERSION}")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add-step", parents=[common], help="Insert a component step")
    add.add_argument("--component", required=True, help="Component id (e.g. qa.process)")
    add.add_argument("--payload", help="Component payload as JSON/YAML (default: {})")
    add.add_argument("--pack-alias", help="Pack alias for the component")
    add.add_argument("--operation", help="Operation name (required for component.exec)")
    add.add_argument("--after", help="Anchor node id (default: insert before the entry)")
    add.add_argument("--node-id", help="Preferred id for the new node")
    add.add_argument("--allow-cycles", action="store_true", help="Allow routing back to the anchor")
    _add_routing_options(add)
    add.set_defaults(handler=cmd_add_step)

    update = sub.add_parser("update-step", parents=[common], help="Override fields of a step")
    update.add_argument("--step", required=True, help="Node id to update")
    update.add_argument("--operation", help="New operation name")
    update.add_argument("--answers", help="Payload overrides as JSON/YAML object")
    update.add_argument("--answers-file", help="Payload overrides file (JSON/YAML); --answers wins")
    _add_routing_options(update)
    update.set_defaults(handler=cmd_update_step)

    delete = sub.add_parser("delete-step", parents=[common], help="Remove a step")
    delete.add_argument("--step", required=True, help="Node id to delete")
    delete.add_argument("--strategy", choices=VALID_DELETE_STRATEGIES, help="splice (default) or remove-only")
    delete.add_argument(
        "--if-multiple-predecessors",
        choices=VALID_MULTI_PREDECESSOR,
        help="Behavior when several steps route to the deleted one",
    )
    delete.set_defaults(handler=cmd_delete_step)

    validate = sub.add_parser("validate", parents=[common], help="Validate a flow document")
    validate.set_defaults(handler=cmd_validate)

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run a subcommand, returning the exit code."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.debug)
    settings = get_edit_settings()

    try:
        return args.handler(args, settings)
    except FatalError as e:
        return _emit_error(args, e, EXIT_FATAL_ERROR)
    except DiagnosticsError as e:
        return _emit_diagnostics(args, e.diagnostics, "edited flow failed validation")
    except (FlowError, ValueError) as e:
        return _emit_error(args, e, EXIT_VALIDATION_FAILED)
    except OSError as e:
        return _emit_error(args, e, EXIT_FATAL_ERROR)


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
