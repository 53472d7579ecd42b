"""The starter routine shown to new users.

    trigger-1 (7am) -> habit-1 (drink water) -> conditional-1 (sunny?)
        yes -> habit-2 (jogging)  \
                                   -> habit-4 (cold shower)
        no  -> habit-3 (exercise bike) /

habit-4 is a merge point: both branches reconverge there.
"""

from habitflow.graph.edge import BranchHandle, EdgeData, FlowEdge, FlowGraph
from habitflow.graph.node import (
    ConditionalData,
    ConditionalNode,
    HabitData,
    HabitNode,
    Position,
    TriggerData,
    TriggerKind,
    TriggerNode,
)

SAMPLE_FLOW_NAME = "Morning routine"


def _habit(node_id: str, label: str, icon: str, x: float, y: float) -> HabitNode:
    return HabitNode(
        id=node_id,
        position=Position(x=x, y=y),
        data=HabitData(habit_id=node_id, label=label, icon=icon),
    )


def sample_flow() -> FlowGraph:
    """Build a fresh copy of the starter routine."""
    nodes = [
        TriggerNode(
            id="trigger-1",
            position=Position(x=50, y=200),
            data=TriggerData(label="7:00 AM", trigger_type=TriggerKind.TIME, icon="⏰"),
        ),
        _habit("habit-1", "Drink water", "💧", 250, 200),
        ConditionalNode(
            id="conditional-1",
            position=Position(x=450, y=200),
            data=ConditionalData(label="Check the weather", condition="Is it sunny?", icon="🌤️"),
        ),
        _habit("habit-2", "Jogging", "🏃", 700, 100),
        _habit("habit-3", "Exercise bike", "🚴", 700, 300),
        _habit("habit-4", "Cold shower", "🚿", 900, 200),
    ]
    edges = [
        FlowEdge(id="edge-1", source="trigger-1", target="habit-1"),
        FlowEdge(id="edge-2", source="habit-1", target="conditional-1"),
        FlowEdge(
            id="edge-yes",
            source="conditional-1",
            target="habit-2",
            source_handle=BranchHandle.YES,
            label="Sunny",
            data=EdgeData(condition="sunny"),
        ),
        FlowEdge(
            id="edge-no",
            source="conditional-1",
            target="habit-3",
            source_handle=BranchHandle.NO,
            label="Rain / cloudy",
            data=EdgeData(condition="not_sunny"),
        ),
        FlowEdge(id="edge-3", source="habit-2", target="habit-4", label="After exercise"),
        FlowEdge(id="edge-4", source="habit-3", target="habit-4", label="After exercise"),
    ]
    return FlowGraph(nodes=nodes, edges=edges)
