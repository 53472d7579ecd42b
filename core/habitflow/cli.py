"""
Command-line interface for habitflow.

Usage:
    habitflow sample > morning.json
    habitflow validate morning.json
    habitflow state morning.json
    habitflow check-delete morning.json habit-2

Flow files use the persisted document format (see habitflow.schemas.flow).
Use "-" as the path to read from stdin.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from habitflow.config import EngineConfig
from habitflow.data import SAMPLE_FLOW_NAME, sample_flow
from habitflow.graph.activation import derive_state
from habitflow.graph.deletion import check_deletability
from habitflow.graph.node import ConditionalNode, HabitNode
from habitflow.observability import configure_logging, set_flow_context
from habitflow.schemas.flow import FlowDocument, FlowDocumentError

logger = logging.getLogger(__name__)


def _load_document(path: str) -> FlowDocument:
    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    document = FlowDocument.from_json(text)
    set_flow_context(flow_name=document.name)
    return document


def cmd_sample(args: argparse.Namespace) -> int:
    """Print the starter routine as a flow document."""
    document = FlowDocument.from_graph(SAMPLE_FLOW_NAME, sample_flow())
    print(document.to_json())
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Check a flow file against the routine graph invariants."""
    document = _load_document(args.path)
    errors = document.to_graph().validate()
    if errors:
        for error in errors:
            print(f"✗ {error}")
        return 1
    summary = document.summarize()
    print(f"✓ {summary.name}: {summary.node_count} steps, {summary.edge_count} connections")
    return 0


def cmd_state(args: argparse.Namespace) -> int:
    """Show the derived activation overlay for a flow file."""
    graph = derive_state(_load_document(args.path).to_graph())

    if args.json:
        states = {}
        for node in graph.nodes:
            states[node.id] = node.data.model_dump(by_alias=True, mode="json")
        print(json.dumps(states, indent=2, ensure_ascii=False))
        return 0

    for node in graph.nodes:
        flags = []
        if isinstance(node, HabitNode):
            flags.append("done" if node.data.is_completed else "todo")
            if node.data.is_inactive:
                flags.append("inactive")
            if not node.data.can_delete:
                flags.append("locked")
        if node.data.is_flowing:
            flags.append("flowing")
        kind = "branch" if isinstance(node, ConditionalNode) else node.type
        print(f"{node.id:<20} {kind:<12} {node.data.label:<24} {' '.join(flags)}")
    return 0


def cmd_check_delete(args: argparse.Namespace) -> int:
    """Explain whether a step can be deleted."""
    graph = _load_document(args.path).to_graph()
    check = check_deletability(graph, args.node_id)
    if check.can_delete:
        print(f"✓ '{args.node_id}' can be deleted")
        return 0
    print(f"✗ '{args.node_id}' cannot be deleted: {check.message} ({check.reason})")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="habitflow",
        description="habitflow - Inspect daily routine graphs",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sample_parser = subparsers.add_parser("sample", help="Print the starter routine")
    sample_parser.set_defaults(func=cmd_sample)

    validate_parser = subparsers.add_parser("validate", help="Check graph invariants")
    validate_parser.add_argument("path", help="Flow document (or - for stdin)")
    validate_parser.set_defaults(func=cmd_validate)

    state_parser = subparsers.add_parser("state", help="Show derived step states")
    state_parser.add_argument("path", help="Flow document (or - for stdin)")
    state_parser.add_argument("--json", action="store_true", help="Output node data as JSON")
    state_parser.set_defaults(func=cmd_state)

    delete_parser = subparsers.add_parser("check-delete", help="Can this step be deleted?")
    delete_parser.add_argument("path", help="Flow document (or - for stdin)")
    delete_parser.add_argument("node_id", help="Step ID")
    delete_parser.set_defaults(func=cmd_check_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = EngineConfig()
    configure_logging(level=args.log_level or config.log_level, format=config.log_format)

    try:
        return args.func(args)
    except (FlowDocumentError, OSError) as e:
        logger.error("Could not load flow: %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
