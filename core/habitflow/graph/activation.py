"""
Activation-state derivation.

Turns completion flags into the display overlay the canvas renders:

- edge ``is_active``: the step it leads to has been done
- node ``is_flowing``: work is flowing through the step
- habit ``is_inactive``: the user has visibly committed to another branch
- habit ``can_delete``: result of the deletion check, for the editor

The overlay is recomputed from scratch for every snapshot; nothing is
carried over between calls and completion data is never modified.
"""

import logging

from habitflow.graph.deletion import check_deletability
from habitflow.graph.edge import FlowEdge, FlowGraph
from habitflow.graph.node import (
    ConditionalNode,
    FlowNode,
    HabitNode,
    TriggerNode,
    has_fired,
    is_completed,
    update_data,
)
from habitflow.graph.paths import BranchRef, ancestor_branch, branch_members, sibling_handles

logger = logging.getLogger(__name__)


class _BranchSummaries:
    """Per-call cache of branch regions; one traversal per (conditional, handle)."""

    def __init__(self, graph: FlowGraph):
        self._graph = graph
        self._members: dict[tuple[str, str | None], set[str]] = {}

    def members(self, conditional_id: str, handle: str | None) -> set[str]:
        key = (conditional_id, handle)
        if key not in self._members:
            self._members[key] = set(branch_members(self._graph, conditional_id, handle))
        return self._members[key]

    def has_completed(self, conditional_id: str, handle: str | None) -> bool:
        return any(
            is_completed(self._graph.get_node(node_id))
            for node_id in self.members(conditional_id, handle)
        )


def is_edge_active(graph: FlowGraph, edge: FlowEdge) -> bool:
    """
    Whether an edge carries flow.

    - Into a conditional: the source has fired (completed, or a trigger).
    - Out of a conditional: the chosen step has been completed.
    - Into a merge point: both the source and the merge step are completed.
    - Otherwise: the target step has been completed.
    """
    source = graph.get_node(edge.source)
    target = graph.get_node(edge.target)

    if isinstance(target, ConditionalNode):
        return has_fired(source)

    if isinstance(target, HabitNode):
        if isinstance(source, ConditionalNode):
            return target.data.is_completed
        if graph.is_merge_point(target.id):
            return is_completed(source) and target.data.is_completed
        return target.data.is_completed

    return False


def _is_inactive(graph: FlowGraph, node: HabitNode, branches: _BranchSummaries) -> bool:
    """
    A habit is inactive when a sibling branch has a completed step and its
    own branch has none. Merge points, completed steps and steps outside any
    branch region are never inactive.
    """
    if node.data.is_completed or graph.is_merge_point(node.id):
        return False

    branch: BranchRef | None = ancestor_branch(graph, node.id)
    if branch is None:
        return False
    if node.id not in branches.members(branch.conditional_id, branch.handle):
        # Downstream of a merge point: shared by every branch
        return False

    sibling_done = any(
        branches.has_completed(branch.conditional_id, handle)
        for handle in sibling_handles(graph, branch.conditional_id, branch.handle)
    )
    if not sibling_done:
        return False
    return not branches.has_completed(branch.conditional_id, branch.handle)


def _is_flowing(node: FlowNode, incoming: list[bool], outgoing: list[bool]) -> bool:
    if isinstance(node, TriggerNode):
        return any(outgoing)
    if isinstance(node, HabitNode) and not outgoing:
        # Terminal step: flowing once the flow has reached it
        return any(incoming)
    return any(incoming) and any(outgoing)


def derive_state(graph: FlowGraph) -> FlowGraph:
    """
    Compute the activation overlay for every node and edge.

    Returns:
        A new snapshot with the same structure and completion data, and with
        ``is_active``, ``is_flowing``, ``is_inactive`` and ``can_delete``
        populated.
    """
    active = {edge.id: is_edge_active(graph, edge) for edge in graph.edges}
    branches = _BranchSummaries(graph)

    edges = [
        edge.model_copy(
            update={"data": edge.data.model_copy(update={"is_active": active[edge.id]})}
        )
        for edge in graph.edges
    ]

    nodes: list[FlowNode] = []
    for node in graph.nodes:
        incoming = [active[e.id] for e in graph.get_incoming_edges(node.id)]
        outgoing = [active[e.id] for e in graph.get_outgoing_edges(node.id)]
        flowing = _is_flowing(node, incoming, outgoing)

        if isinstance(node, HabitNode):
            nodes.append(
                update_data(
                    node,
                    is_flowing=flowing,
                    is_inactive=_is_inactive(graph, node, branches),
                    can_delete=check_deletability(graph, node.id).can_delete,
                )
            )
        else:
            nodes.append(update_data(node, is_flowing=flowing))

    logger.debug(
        "Derived state: %d/%d edges active",
        sum(active.values()),
        len(active),
    )
    return graph.with_elements(nodes=nodes, edges=edges)
