"""Connection validation for routine graphs.

Decides whether a proposed new edge may be added to a snapshot. Runs on every
drag-to-connect gesture, so the cheap structural checks come first and the
reachability search runs last.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum

from habitflow.graph.edge import BranchHandle, FlowGraph
from habitflow.graph.node import ConditionalNode, TriggerNode

logger = logging.getLogger(__name__)

MAX_BRANCH_OUTPUTS = 2


class ValidationErrorKind(StrEnum):
    """Why a connection was rejected."""

    SELF_CONNECTION = "self-connection"
    UNKNOWN_NODE = "unknown-node"
    DUPLICATE = "duplicate"
    TRIGGER_TARGET = "trigger-target"
    BRANCH_OVERFLOW = "branch-overflow"
    CYCLE = "cycle"


REJECTION_MESSAGES = {
    ValidationErrorKind.SELF_CONNECTION: "A step cannot connect to itself",
    ValidationErrorKind.UNKNOWN_NODE: "Source or target step not found",
    ValidationErrorKind.DUPLICATE: "This connection already exists",
    ValidationErrorKind.TRIGGER_TARGET: "Trigger cannot receive connections",
    ValidationErrorKind.BRANCH_OVERFLOW: "Branch node limited to two outputs",
    ValidationErrorKind.CYCLE: "Connection would create a cycle",
}


@dataclass(frozen=True)
class Connection:
    """A proposed edge, as sent by the editor."""

    source: str
    target: str
    source_handle: BranchHandle | str | None = None


@dataclass
class ConnectionValidation:
    """Result of validating a connection."""

    valid: bool
    reason: ValidationErrorKind | None = None

    @property
    def message(self) -> str:
        """Get a human-readable rejection message."""
        return REJECTION_MESSAGES[self.reason] if self.reason else ""

    @classmethod
    def reject(cls, reason: ValidationErrorKind) -> "ConnectionValidation":
        return cls(valid=False, reason=reason)


def validate_connection(graph: FlowGraph, candidate: Connection) -> ConnectionValidation:
    """
    Validate a proposed connection against the routine's structural rules.

    Checks, in order, stopping at the first failure:
        1. source and target are the same step
        2. either endpoint is missing from the graph
        3. the same (source, target) edge already exists
        4. the target is a trigger
        5. the source is a conditional that already has two outputs
        6. the target already reaches the source (the edge would close a cycle)

    Args:
        graph: Current snapshot
        candidate: Proposed edge

    Returns:
        ConnectionValidation with the first failing reason, or valid=True
    """
    source, target = candidate.source, candidate.target

    if source == target:
        return _rejected(candidate, ValidationErrorKind.SELF_CONNECTION)

    source_node = graph.get_node(source)
    target_node = graph.get_node(target)
    if source_node is None or target_node is None:
        return _rejected(candidate, ValidationErrorKind.UNKNOWN_NODE)

    if graph.find_edge(source, target) is not None:
        return _rejected(candidate, ValidationErrorKind.DUPLICATE)

    if isinstance(target_node, TriggerNode):
        return _rejected(candidate, ValidationErrorKind.TRIGGER_TARGET)

    if (
        isinstance(source_node, ConditionalNode)
        and len(graph.get_outgoing_edges(source)) >= MAX_BRANCH_OUTPUTS
    ):
        return _rejected(candidate, ValidationErrorKind.BRANCH_OVERFLOW)

    if graph.has_path(target, source):
        return _rejected(candidate, ValidationErrorKind.CYCLE)

    return ConnectionValidation(valid=True)


def is_valid_connection(graph: FlowGraph, candidate: Connection) -> bool:
    return validate_connection(graph, candidate).valid


def _rejected(candidate: Connection, reason: ValidationErrorKind) -> ConnectionValidation:
    logger.debug(
        "Rejected connection %s -> %s: %s",
        candidate.source,
        candidate.target,
        reason,
    )
    return ConnectionValidation.reject(reason)
