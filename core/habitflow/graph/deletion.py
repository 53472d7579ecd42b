"""
Deletion and reconnection of routine steps.

Removing a step must not break the routine's flow: every predecessor of the
removed step is connected straight to every successor. When the predecessor
is a conditional, the new edge inherits the branch handle and data of the
edge it replaces, so the branch keeps its identity.

Two structural rules guard deletion:
- Merge points (in-degree > 1) are fixed anchors where branches reconverge
  and can never be removed.
- Every branch of a conditional keeps at least one habit step.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from habitflow.graph.edge import EdgeData, FlowEdge, FlowGraph
from habitflow.graph.node import ConditionalNode, HabitNode
from habitflow.graph.paths import ancestor_branch, count_action_steps_on_branch
from habitflow.utils.identifiers import generate_edge_id

logger = logging.getLogger(__name__)


class DeletionErrorKind(StrEnum):
    """Why a step cannot be removed."""

    NOT_REMOVABLE_TYPE = "not-removable-type"
    MERGE_POINT = "merge-point"
    BRANCH_MINIMUM = "branch-minimum"


DELETION_MESSAGES = {
    DeletionErrorKind.NOT_REMOVABLE_TYPE: "Not a removable step",
    DeletionErrorKind.MERGE_POINT: "Convergence point cannot be removed",
    DeletionErrorKind.BRANCH_MINIMUM: "Branch requires at least one step",
}


@dataclass
class DeletionCheck:
    """Whether a step may be deleted, and if not, why."""

    can_delete: bool
    reason: DeletionErrorKind | None = None

    @property
    def message(self) -> str:
        return DELETION_MESSAGES[self.reason] if self.reason else ""


@dataclass
class BatchDeletionResult:
    """Outcome of deleting several steps in one command."""

    graph: FlowGraph
    deleted: list[str] = field(default_factory=list)
    skipped: dict[str, DeletionCheck] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.skipped


def check_deletability(graph: FlowGraph, node_id: str) -> DeletionCheck:
    """
    Decide whether a step may be removed from the routine.

    Only habit steps are removable. A merge point is rejected before any
    branch counting happens. A step inside a conditional branch is rejected
    when it is the last habit left on that branch.
    """
    node = graph.get_node(node_id)
    if not isinstance(node, HabitNode):
        return DeletionCheck(can_delete=False, reason=DeletionErrorKind.NOT_REMOVABLE_TYPE)

    if graph.is_merge_point(node_id):
        return DeletionCheck(can_delete=False, reason=DeletionErrorKind.MERGE_POINT)

    branch = ancestor_branch(graph, node_id)
    if branch is not None:
        remaining = count_action_steps_on_branch(graph, branch.conditional_id, branch.handle)
        if remaining <= 1:
            return DeletionCheck(can_delete=False, reason=DeletionErrorKind.BRANCH_MINIMUM)

    return DeletionCheck(can_delete=True)


def delete_node(graph: FlowGraph, node_id: str) -> FlowGraph:
    """
    Remove a step and splice its predecessors onto its successors.

    Call only after ``check_deletability`` approved the step. For every
    (incoming, outgoing) edge pair one edge ``incoming.source ->
    outgoing.target`` is added. A step at the start or end of a chain has no
    such pairs, so the chain simply shortens.

    Returns:
        The next snapshot; ``graph`` itself is left untouched
    """
    in_edges = graph.get_incoming_edges(node_id)
    out_edges = graph.get_outgoing_edges(node_id)

    nodes = [n for n in graph.nodes if n.id != node_id]
    edges = [e for e in graph.edges if e.source != node_id and e.target != node_id]
    existing = {(e.source, e.target) for e in edges}

    for in_edge in in_edges:
        keeps_branch = isinstance(graph.get_node(in_edge.source), ConditionalNode)
        for out_edge in out_edges:
            pair = (in_edge.source, out_edge.target)
            if pair[0] == pair[1] or pair in existing:
                logger.debug("Skipping reconnection %s -> %s: already linked", *pair)
                continue

            if keeps_branch:
                new_edge = FlowEdge(
                    id=generate_edge_id("edge-reconnect"),
                    source=in_edge.source,
                    target=out_edge.target,
                    source_handle=in_edge.source_handle,
                    data=in_edge.data.model_copy(update={"is_active": None}),
                )
            else:
                new_edge = FlowEdge(
                    id=generate_edge_id("edge-reconnect"),
                    source=in_edge.source,
                    target=out_edge.target,
                    data=EdgeData(),
                )
            edges.append(new_edge)
            existing.add(pair)
            logger.debug(
                "Reconnected %s -> %s (handle=%s)",
                new_edge.source,
                new_edge.target,
                new_edge.source_handle,
            )

    logger.debug(
        "Deleted step '%s' (%d in, %d out)",
        node_id,
        len(in_edges),
        len(out_edges),
        extra={"event": "node_deleted", "node_id": node_id},
    )
    return graph.with_elements(nodes=nodes, edges=edges)


def batch_delete(
    graph: FlowGraph,
    node_ids: Iterable[str],
    atomic: bool = False,
) -> BatchDeletionResult:
    """
    Delete several steps one at a time, in the order given.

    Each deletion sees the snapshot produced by the previous one, so a run of
    adjacent steps collapses into a single reconnecting edge. Each id is
    checked against that intermediate snapshot.

    Args:
        graph: Current snapshot
        node_ids: Steps to delete, in order
        atomic: If True, any failing id rejects the whole batch and the
            original snapshot is returned. Otherwise failing ids are skipped.
    """
    current = graph
    result = BatchDeletionResult(graph=graph)

    for node_id in node_ids:
        check = check_deletability(current, node_id)
        if not check.can_delete:
            result.skipped[node_id] = check
            logger.info(
                "Skipping deletion of '%s': %s",
                node_id,
                check.reason,
                extra={"event": "delete_skipped", "node_id": node_id},
            )
            if atomic:
                return BatchDeletionResult(graph=graph, skipped=result.skipped)
            continue
        current = delete_node(current, node_id)
        result.deleted.append(node_id)

    result.graph = current
    return result


def delete_nodes(graph: FlowGraph, node_ids: Iterable[str]) -> FlowGraph:
    """Best-effort sequential batch deletion; returns the resulting snapshot."""
    return batch_delete(graph, node_ids).graph
