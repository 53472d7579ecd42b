"""
Edge Protocol - How routine steps connect.

An edge says "do the target after the source". Edges leaving a conditional
node carry a branch handle ("yes" / "no") that identifies which branch they
start; that handle is the branch's identity and must survive every rewrite
of the edge set (reconnection after a delete, splitting on insert).

FlowGraph is one immutable snapshot of a routine: the node list plus the edge
list. Engine operations never modify a snapshot; they build the next one.
"""

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, Field

from habitflow.graph.node import (
    FLOW_MODEL_CONFIG,
    FlowNode,
    FlowPayload,
    HabitNode,
    NodeType,
)


class BranchHandle(StrEnum):
    """Which output of a conditional node an edge leaves from."""

    YES = "yes"
    NO = "no"


class TriggerType(StrEnum):
    """Ordering between two steps. Always AFTER in practice."""

    AFTER = "after"
    BEFORE = "before"
    WITH = "with"


class EdgeData(FlowPayload):
    trigger: TriggerType = TriggerType.AFTER
    condition: str | None = Field(
        default=None, description="Branch label for edges leaving a conditional"
    )

    # Derived by the activation deriver
    is_active: bool | None = None

    model_config = FLOW_MODEL_CONFIG


class FlowEdge(BaseModel):
    """
    A directed edge between two steps.

    Examples:
        # Plain sequencing
        FlowEdge(id="edge-1", source="trigger-1", target="habit-1")

        # First step of a conditional's "yes" branch
        FlowEdge(
            id="edge-yes",
            source="conditional-1",
            target="habit-2",
            source_handle=BranchHandle.YES,
            data=EdgeData(condition="sunny"),
        )
    """

    id: str
    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID")
    source_handle: BranchHandle | None = Field(
        default=None, description="Branch selector; only meaningful from a conditional"
    )
    type: str = "habit"
    data: EdgeData = Field(default_factory=EdgeData)

    model_config = FLOW_MODEL_CONFIG

    @property
    def is_active(self) -> bool:
        return bool(self.data.is_active)


class FlowGraph(BaseModel):
    """
    One snapshot of a routine graph.

    Queries re-scan the node and edge lists on every call. Routines hold tens
    of nodes, so no index is kept and a snapshot never goes stale.
    """

    nodes: list[FlowNode] = Field(default_factory=list)
    edges: list[FlowEdge] = Field(default_factory=list)

    model_config = FLOW_MODEL_CONFIG

    def with_elements(
        self,
        nodes: Iterable[FlowNode] | None = None,
        edges: Iterable[FlowEdge] | None = None,
    ) -> "FlowGraph":
        """Build the next snapshot, replacing nodes and/or edges."""
        return FlowGraph(
            nodes=list(self.nodes if nodes is None else nodes),
            edges=list(self.edges if edges is None else edges),
        )

    def get_node(self, node_id: str) -> FlowNode | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> FlowEdge | None:
        """Get an edge by ID."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def find_edge(self, source: str, target: str) -> FlowEdge | None:
        """Get the edge linking ``source`` to ``target``, if any."""
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def get_outgoing_edges(self, node_id: str) -> list[FlowEdge]:
        """Get all edges leaving a node, in edge-list order."""
        return [e for e in self.edges if e.source == node_id]

    def get_incoming_edges(self, node_id: str) -> list[FlowEdge]:
        """Get all edges entering a node."""
        return [e for e in self.edges if e.target == node_id]

    def get_branch_edge(self, conditional_id: str, handle: str | None) -> FlowEdge | None:
        """Get the edge starting the ``handle`` branch of a conditional."""
        for edge in self.edges:
            if edge.source == conditional_id and edge.source_handle == handle:
                return edge
        return None

    def is_merge_point(self, node_id: str) -> bool:
        """A merge point is any node where two or more paths converge."""
        return len(self.get_incoming_edges(node_id)) > 1

    def detect_merge_points(self) -> dict[str, list[str]]:
        """
        Detect nodes that receive from multiple sources (fan-in / convergence).

        Returns:
            Dict mapping merge node id -> list of source node ids
        """
        merges: dict[str, list[str]] = {}
        for node in self.nodes:
            incoming = self.get_incoming_edges(node.id)
            if len(incoming) > 1:
                merges[node.id] = [e.source for e in incoming]
        return merges

    def habit_nodes(self) -> list[HabitNode]:
        return [n for n in self.nodes if isinstance(n, HabitNode)]

    def has_path(self, start: str, goal: str) -> bool:
        """
        Check whether ``goal`` is reachable from ``start`` along edge direction.

        Iterative depth-first search; the visited set keeps it linear in the
        size of the graph even when paths fan out and reconverge.
        """
        if start == goal:
            return True
        visited: set[str] = set()
        to_visit = [start]
        while to_visit:
            current = to_visit.pop()
            if current in visited:
                continue
            visited.add(current)
            for edge in self.get_outgoing_edges(current):
                if edge.target == goal:
                    return True
                to_visit.append(edge.target)
        return False

    def validate(self) -> list[str]:
        """Validate the graph structure against the routine invariants."""
        errors = []

        # Duplicate node IDs
        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_ids.add(node.id)

        # Edge references, self-loops and duplicate pairs
        seen_pairs: set[tuple[str, str]] = set()
        for edge in self.edges:
            if not self.get_node(edge.source):
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if not self.get_node(edge.target):
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")
            if edge.source == edge.target:
                errors.append(f"Edge '{edge.id}' connects '{edge.source}' to itself")
            pair = (edge.source, edge.target)
            if pair in seen_pairs:
                errors.append(
                    f"Edge '{edge.id}' duplicates connection '{edge.source}' -> '{edge.target}'"
                )
            seen_pairs.add(pair)

        for node in self.nodes:
            if node.type == NodeType.TRIGGER:
                incoming = self.get_incoming_edges(node.id)
                if incoming:
                    errors.append(
                        f"Trigger '{node.id}' has incoming edges: {[e.id for e in incoming]}"
                    )
            elif node.type == NodeType.CONDITIONAL:
                outgoing = self.get_outgoing_edges(node.id)
                if len(outgoing) > 2:
                    errors.append(
                        f"Conditional '{node.id}' has {len(outgoing)} outgoing edges (max 2)"
                    )
                handles = [e.source_handle for e in outgoing]
                if any(h is None for h in handles):
                    errors.append(f"Conditional '{node.id}' has an outgoing edge without a handle")
                named = [h for h in handles if h is not None]
                if len(named) != len(set(named)):
                    errors.append(f"Conditional '{node.id}' reuses a branch handle: {named}")

        # Cycles: any edge whose target can reach its source closes a loop
        for edge in self.edges:
            if edge.source != edge.target and self.has_path(edge.target, edge.source):
                errors.append(f"Edge '{edge.id}' is part of a cycle")

        return errors


__all__ = [
    "BranchHandle",
    "EdgeData",
    "FlowEdge",
    "FlowGraph",
    "TriggerType",
]
