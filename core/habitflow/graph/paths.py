"""
Path analysis over a routine snapshot.

Answers the two branch questions the rest of the engine keeps asking:

- Which conditional branch does a step descend from? (``ancestor_branch``)
- Which steps make up a branch, and how many of them are habits?
  (``branch_members`` / ``count_action_steps_on_branch``)

A branch region starts at the target of the edge leaving a conditional with a
given handle and extends downstream until it reaches a merge point (a node
with more than one incoming edge) or another conditional. Merge points belong
to no branch: they are where the branches reconverge.

All functions are pure reads and recompute from the snapshot on every call.
"""

from collections import deque
from dataclasses import dataclass

from habitflow.graph.edge import FlowGraph
from habitflow.graph.node import ConditionalNode, HabitNode


@dataclass(frozen=True)
class BranchRef:
    """A branch of a conditional node, identified by its handle."""

    conditional_id: str
    handle: str | None

    def __str__(self) -> str:
        return f"{self.conditional_id}[{self.handle}]"


def ancestor_branch(graph: FlowGraph, node_id: str) -> BranchRef | None:
    """
    Find the nearest conditional branch ``node_id`` descends from.

    Walks backward breadth-first through incoming edges. The first incoming
    edge whose source is a conditional node names the branch. Returns None
    when the walk runs out of predecessors without meeting a conditional.
    """
    visited: set[str] = set()
    queue: deque[str] = deque([node_id])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        for edge in graph.get_incoming_edges(current):
            if isinstance(graph.get_node(edge.source), ConditionalNode):
                return BranchRef(conditional_id=edge.source, handle=edge.source_handle)
            queue.append(edge.source)

    return None


def branch_members(graph: FlowGraph, conditional_id: str, handle: str | None) -> list[str]:
    """
    List the node ids in the ``handle`` branch region of a conditional.

    Depth-first from the branch's first step. A merge point ends the walk and
    is not itself a member; the walk never continues through a conditional,
    so nested branches are not counted as part of this one.
    """
    start_edge = graph.get_branch_edge(conditional_id, handle)
    if start_edge is None:
        return []

    members: list[str] = []
    visited: set[str] = set()
    to_visit = [start_edge.target]
    while to_visit:
        current = to_visit.pop()
        if current in visited:
            continue
        visited.add(current)

        if graph.is_merge_point(current):
            continue
        members.append(current)
        if isinstance(graph.get_node(current), ConditionalNode):
            # A conditional opening the branch starts branches of its own
            continue

        # Reversed so siblings are visited in edge-list order
        for edge in reversed(graph.get_outgoing_edges(current)):
            target = graph.get_node(edge.target)
            if target is not None and not isinstance(target, ConditionalNode):
                to_visit.append(edge.target)

    return members


def count_action_steps_on_branch(graph: FlowGraph, conditional_id: str, handle: str | None) -> int:
    """Count the habit steps in a branch region; how many removable steps remain."""
    return sum(
        1
        for node_id in branch_members(graph, conditional_id, handle)
        if isinstance(graph.get_node(node_id), HabitNode)
    )


def sibling_handles(graph: FlowGraph, conditional_id: str, handle: str | None) -> list[str | None]:
    """Handles of the conditional's other branches, in edge-list order."""
    return [
        edge.source_handle
        for edge in graph.get_outgoing_edges(conditional_id)
        if edge.source_handle != handle
    ]


def branch_has_completed_step(graph: FlowGraph, conditional_id: str, handle: str | None) -> bool:
    """True if any habit in the branch region is completed."""
    for node_id in branch_members(graph, conditional_id, handle):
        node = graph.get_node(node_id)
        if isinstance(node, HabitNode) and node.data.is_completed:
            return True
    return False
