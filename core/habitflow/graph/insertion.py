"""Edge-split insertion: drop a new habit step onto an existing edge."""

import logging

from pydantic import BaseModel, Field

from habitflow.graph.edge import EdgeData, FlowEdge, FlowGraph
from habitflow.graph.node import FLOW_MODEL_CONFIG, HabitData, HabitNode, HabitTiming, Position
from habitflow.utils.identifiers import generate_edge_id, generate_habit_id

logger = logging.getLogger(__name__)


class StepDraft(BaseModel):
    """User-entered fields for a new habit step."""

    label: str = Field(min_length=1)
    icon: str | None = None
    description: str | None = None
    timing: HabitTiming | None = None
    node_id: str | None = Field(default=None, description="Explicit ID; generated when omitted")

    model_config = FLOW_MODEL_CONFIG

    def to_node(self, position: Position) -> HabitNode:
        """Create a fresh, not-yet-completed habit node from this draft."""
        node_id = self.node_id or generate_habit_id()
        return HabitNode(
            id=node_id,
            position=position,
            data=HabitData(
                habit_id=node_id,
                label=self.label,
                icon=self.icon,
                description=self.description,
                timing=self.timing,
                is_completed=False,
                completed_at=None,
            ),
        )


def insert_on_edge(
    graph: FlowGraph,
    edge_id: str,
    step: StepDraft,
    position: Position,
) -> FlowGraph:
    """
    Split ``edge_id`` in two around a new habit step.

    The upstream half keeps the original edge's branch handle and data, so a
    step inserted right after a conditional stays on the same branch. The
    downstream half starts from the new habit and never carries a handle.

    Returns:
        The next snapshot, or ``graph`` unchanged when the edge does not exist
        or the draft names a step ID that is already taken
    """
    edge = graph.get_edge(edge_id)
    if edge is None:
        logger.debug("Insert on edge ignored: edge '%s' not found", edge_id)
        return graph

    new_node = step.to_node(position)
    if graph.get_node(new_node.id) is not None:
        logger.debug(
            "Insert on edge ignored: step '%s' already exists",
            new_node.id,
            extra={"node_id": new_node.id, "edge_id": edge_id},
        )
        return graph

    upstream = FlowEdge(
        id=generate_edge_id(),
        source=edge.source,
        target=new_node.id,
        source_handle=edge.source_handle,
        data=edge.data.model_copy(update={"is_active": None}),
    )
    downstream = FlowEdge(
        id=generate_edge_id(),
        source=new_node.id,
        target=edge.target,
        data=EdgeData(),
    )

    edges = [e for e in graph.edges if e.id != edge_id]
    edges.extend([upstream, downstream])

    logger.debug(
        "Inserted step '%s' between %s and %s",
        new_node.id,
        edge.source,
        edge.target,
        extra={"event": "step_inserted", "node_id": new_node.id, "edge_id": edge_id},
    )
    return graph.with_elements(nodes=[*graph.nodes, new_node], edges=edges)
