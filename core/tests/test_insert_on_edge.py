"""Tests for dropping a new step onto an existing edge."""

import logging

import pytest
from builders import branching_flow, chain, pairs
from pydantic import ValidationError

from habitflow.graph.deletion import check_deletability
from habitflow.graph.edge import BranchHandle
from habitflow.graph.insertion import StepDraft, insert_on_edge
from habitflow.graph.node import HabitNode, HabitTiming, Position


class TestInsertOnEdge:
    def test_splits_plain_edge(self):
        graph = chain("trigger-1", "habit-1")
        result = insert_on_edge(
            graph, "trigger-1->habit-1", StepDraft(label="Stretch", node_id="new"), Position()
        )

        assert pairs(result) == {("trigger-1", "new"), ("new", "habit-1")}
        assert result.get_edge("trigger-1->habit-1") is None

    def test_new_step_is_fresh_habit(self):
        draft = StepDraft(
            label="Meditate",
            icon="🧘",
            description="Ten minutes",
            timing=HabitTiming.MORNING,
            node_id="meditate-1",
        )
        result = insert_on_edge(chain("a", "b"), "a->b", draft, Position(x=120, y=40))

        node = result.get_node("meditate-1")
        assert isinstance(node, HabitNode)
        assert node.data.label == "Meditate"
        assert node.data.habit_id == "meditate-1"
        assert node.data.timing == HabitTiming.MORNING
        assert node.data.is_completed is False
        assert node.data.completed_at is None
        assert (node.position.x, node.position.y) == (120.0, 40.0)

    def test_generated_id(self):
        result = insert_on_edge(chain("a", "b"), "a->b", StepDraft(label="Read"), Position())
        new_node = result.nodes[-1]
        assert new_node.id.startswith("habit-")
        assert pairs(result) == {("a", new_node.id), (new_node.id, "b")}

    def test_branch_identity_flows_upstream(self):
        graph = branching_flow()
        result = insert_on_edge(
            graph, "weather-1->jog-1", StepDraft(label="Warm up", node_id="warmup-1"), Position()
        )

        upstream = result.find_edge("weather-1", "warmup-1")
        downstream = result.find_edge("warmup-1", "jog-1")
        assert upstream.source_handle == BranchHandle.YES
        assert upstream.data.condition == "sunny"
        assert downstream.source_handle is None
        assert downstream.data.condition is None

    def test_inserted_step_joins_branch(self):
        graph = branching_flow()
        assert check_deletability(graph, "jog-1").can_delete is False

        result = insert_on_edge(
            graph, "weather-1->jog-1", StepDraft(label="Warm up", node_id="warmup-1"), Position()
        )
        assert check_deletability(result, "jog-1").can_delete is True
        assert check_deletability(result, "warmup-1").can_delete is True

    def test_unknown_edge_is_noop(self):
        graph = chain("a", "b")
        assert insert_on_edge(graph, "missing", StepDraft(label="x"), Position()) is graph

    def test_taken_id_is_noop(self):
        graph = chain("trigger-1", "habit-1", "habit-2")
        draft = StepDraft(label="X", node_id="habit-2")

        result = insert_on_edge(graph, "trigger-1->habit-1", draft, Position())

        assert result is graph
        assert [n.id for n in result.nodes] == ["trigger-1", "habit-1", "habit-2"]

    def test_insert_record_names_step_and_edge(self, caplog):
        caplog.set_level(logging.DEBUG, logger="habitflow.graph.insertion")
        insert_on_edge(chain("a", "b"), "a->b", StepDraft(label="Mid", node_id="m"), Position())

        record = next(r for r in caplog.records if r.name == "habitflow.graph.insertion")
        assert record.event == "step_inserted"
        assert (record.node_id, record.edge_id) == ("m", "a->b")

    def test_draft_requires_label(self):
        with pytest.raises(ValidationError):
            StepDraft(label="")
