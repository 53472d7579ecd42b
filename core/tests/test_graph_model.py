"""Tests for the routine graph model: node union, edges and FlowGraph queries."""

import pytest
from builders import branching_flow, chain, conditional, edge, habit, trigger
from pydantic import TypeAdapter, ValidationError

from habitflow.data import sample_flow
from habitflow.graph.edge import BranchHandle, FlowGraph, TriggerType
from habitflow.graph.node import (
    ConditionalNode,
    FlowNode,
    HabitNode,
    TriggerKind,
    TriggerNode,
    has_fired,
    is_completed,
    update_data,
)

node_adapter = TypeAdapter(FlowNode)


# ---------------------------------------------------------------------------
# Node union
# ---------------------------------------------------------------------------


class TestNodeParsing:
    """Persisted nodes parse into the right variant."""

    def test_habit_from_camel_case(self):
        node = node_adapter.validate_python(
            {
                "id": "habit-1",
                "type": "habit",
                "position": {"x": 10, "y": 20},
                "data": {"label": "Drink water", "isCompleted": True, "habitId": "habit-1"},
            }
        )
        assert isinstance(node, HabitNode)
        assert node.data.is_completed is True
        assert node.data.habit_id == "habit-1"
        assert node.position.x == 10.0

    def test_trigger_and_conditional(self):
        t = node_adapter.validate_python(
            {"id": "t", "type": "trigger", "data": {"label": "7am", "triggerType": "location"}}
        )
        c = node_adapter.validate_python({"id": "c", "type": "conditional"})
        assert isinstance(t, TriggerNode)
        assert t.data.trigger_type == TriggerKind.LOCATION
        assert isinstance(c, ConditionalNode)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            node_adapter.validate_python({"id": "x", "type": "reminder"})

    def test_unknown_keys_preserved(self):
        node = node_adapter.validate_python(
            {"id": "h", "type": "habit", "selected": True, "data": {"color": "teal"}}
        )
        dumped = node.model_dump(by_alias=True)
        assert dumped["selected"] is True
        assert dumped["data"]["color"] == "teal"

    def test_nodes_are_frozen(self):
        node = habit("habit-1")
        with pytest.raises(ValidationError):
            node.id = "habit-2"


class TestNodeHelpers:
    def test_has_fired(self):
        assert has_fired(trigger()) is True
        assert has_fired(habit("h", completed=True)) is True
        assert has_fired(habit("h")) is False
        assert has_fired(conditional("c")) is False
        assert has_fired(None) is False

    def test_is_completed_only_for_habits(self):
        assert is_completed(habit("h", completed=True)) is True
        assert is_completed(trigger()) is False

    def test_update_data_returns_copy(self):
        node = habit("habit-1")
        updated = update_data(node, is_completed=True)

        assert updated.data.is_completed is True
        assert node.data.is_completed is False
        assert updated.id == node.id


# ---------------------------------------------------------------------------
# FlowGraph queries
# ---------------------------------------------------------------------------


class TestFlowGraphQueries:
    def test_incoming_and_outgoing(self):
        graph = branching_flow()
        assert [e.target for e in graph.get_outgoing_edges("weather-1")] == ["jog-1", "bike-1"]
        assert [e.source for e in graph.get_incoming_edges("shower-1")] == ["jog-1", "bike-1"]
        assert graph.get_incoming_edges("trigger-1") == []

    def test_get_node_and_edge(self):
        graph = branching_flow()
        assert graph.get_node("jog-1").id == "jog-1"
        assert graph.get_node("missing") is None
        assert graph.get_edge("habit-1->weather-1").target == "weather-1"
        assert graph.get_edge("missing") is None
        assert graph.find_edge("jog-1", "shower-1") is not None
        assert graph.find_edge("shower-1", "jog-1") is None

    def test_branch_edge(self):
        graph = branching_flow()
        assert graph.get_branch_edge("weather-1", BranchHandle.NO).target == "bike-1"
        assert graph.get_branch_edge("habit-1", BranchHandle.NO) is None

    def test_merge_points(self):
        graph = branching_flow()
        assert graph.is_merge_point("shower-1") is True
        assert graph.is_merge_point("jog-1") is False
        assert graph.detect_merge_points() == {"shower-1": ["jog-1", "bike-1"]}

    def test_has_path(self):
        graph = branching_flow()
        assert graph.has_path("trigger-1", "shower-1") is True
        assert graph.has_path("jog-1", "bike-1") is False
        assert graph.has_path("shower-1", "trigger-1") is False

    def test_habit_nodes(self):
        assert [n.id for n in chain("trigger-1", "a", "b").habit_nodes()] == ["a", "b"]

    def test_with_elements_leaves_original(self):
        graph = chain("trigger-1", "a")
        next_graph = graph.with_elements(nodes=[*graph.nodes, habit("b")])

        assert len(graph.nodes) == 2
        assert len(next_graph.nodes) == 3
        assert next_graph.edges == graph.edges

    def test_default_edge_data(self):
        e = edge("a", "b")
        assert e.data.trigger == TriggerType.AFTER
        assert e.source_handle is None
        assert e.is_active is False


# ---------------------------------------------------------------------------
# FlowGraph.validate()
# ---------------------------------------------------------------------------


class TestFlowGraphValidate:
    def test_sample_flow_is_valid(self):
        assert sample_flow().validate() == []

    def test_branching_flow_is_valid(self):
        assert branching_flow(stretch=True).validate() == []

    def test_trigger_with_incoming_edge(self):
        graph = chain("trigger-1", "a")
        graph = graph.with_elements(edges=[*graph.edges, edge("a", "trigger-1")])

        errors = graph.validate()
        assert any("Trigger 'trigger-1' has incoming edges" in e for e in errors)

    def test_conditional_with_three_outputs(self):
        graph = branching_flow()
        graph = graph.with_elements(
            nodes=[*graph.nodes, habit("swim-1")],
            edges=[*graph.edges, edge("weather-1", "swim-1", BranchHandle.YES)],
        )

        errors = graph.validate()
        assert any("3 outgoing edges" in e for e in errors)
        assert any("reuses a branch handle" in e for e in errors)

    def test_conditional_edge_without_handle(self):
        graph = FlowGraph(
            nodes=[conditional("c"), habit("a")],
            edges=[edge("c", "a")],
        )
        assert any("without a handle" in e for e in graph.validate())

    def test_missing_endpoint(self):
        graph = FlowGraph(nodes=[habit("a")], edges=[edge("a", "ghost")])
        assert graph.validate() == ["Edge 'a->ghost' references missing target 'ghost'"]

    def test_duplicate_node_id(self):
        graph = FlowGraph(nodes=[habit("a"), habit("a")])
        assert graph.validate() == ["Duplicate node ID: 'a'"]

    def test_cycle_detected(self):
        graph = FlowGraph(
            nodes=[habit("a"), habit("b")],
            edges=[edge("a", "b"), edge("b", "a")],
        )
        errors = graph.validate()
        assert sum("part of a cycle" in e for e in errors) == 2
