"""Tests for branch path analysis: ancestor branch lookup and branch regions."""

from builders import branching_flow, conditional, edge, habit, trigger

from habitflow.graph.edge import BranchHandle, FlowGraph
from habitflow.graph.paths import (
    BranchRef,
    ancestor_branch,
    branch_has_completed_step,
    branch_members,
    count_action_steps_on_branch,
    sibling_handles,
)


def nested_flow() -> FlowGraph:
    """weather-1 (yes) opens a second conditional, gym-1."""
    return FlowGraph(
        nodes=[
            trigger("trigger-1"),
            conditional("weather-1"),
            conditional("gym-1"),
            habit("lift-1"),
            habit("run-1"),
            habit("bike-1"),
        ],
        edges=[
            edge("trigger-1", "weather-1"),
            edge("weather-1", "gym-1", BranchHandle.YES),
            edge("weather-1", "bike-1", BranchHandle.NO),
            edge("gym-1", "lift-1", BranchHandle.YES),
            edge("gym-1", "run-1", BranchHandle.NO),
        ],
    )


class TestAncestorBranch:
    def test_direct_branch_step(self):
        assert ancestor_branch(branching_flow(), "jog-1") == BranchRef("weather-1", "yes")
        assert ancestor_branch(branching_flow(), "bike-1") == BranchRef("weather-1", "no")

    def test_deeper_branch_step(self):
        graph = branching_flow(stretch=True)
        assert ancestor_branch(graph, "stretch-1") == BranchRef("weather-1", "yes")

    def test_no_conditional_upstream(self):
        assert ancestor_branch(branching_flow(), "habit-1") is None
        assert ancestor_branch(branching_flow(), "trigger-1") is None

    def test_merge_point_resolves_to_first_branch_found(self):
        branch = ancestor_branch(branching_flow(), "shower-1")
        assert branch is not None
        assert branch.conditional_id == "weather-1"

    def test_nearest_conditional_wins(self):
        assert ancestor_branch(nested_flow(), "lift-1") == BranchRef("gym-1", "yes")

    def test_str(self):
        assert str(BranchRef("weather-1", "yes")) == "weather-1[yes]"


class TestBranchMembers:
    def test_stops_at_merge_point(self):
        graph = branching_flow()
        assert branch_members(graph, "weather-1", BranchHandle.YES) == ["jog-1"]
        assert branch_members(graph, "weather-1", BranchHandle.NO) == ["bike-1"]

    def test_multi_step_branch(self):
        graph = branching_flow(stretch=True)
        assert branch_members(graph, "weather-1", BranchHandle.YES) == ["jog-1", "stretch-1"]

    def test_nested_conditional_not_expanded(self):
        graph = nested_flow()
        assert branch_members(graph, "weather-1", BranchHandle.YES) == ["gym-1"]
        assert count_action_steps_on_branch(graph, "weather-1", BranchHandle.YES) == 0
        assert count_action_steps_on_branch(graph, "gym-1", BranchHandle.NO) == 1

    def test_missing_branch(self):
        graph = FlowGraph(
            nodes=[conditional("c"), habit("a")],
            edges=[edge("c", "a", BranchHandle.YES)],
        )
        assert branch_members(graph, "c", BranchHandle.NO) == []
        assert count_action_steps_on_branch(graph, "c", BranchHandle.NO) == 0

    def test_count_action_steps(self):
        assert count_action_steps_on_branch(branching_flow(), "weather-1", "yes") == 1
        assert count_action_steps_on_branch(branching_flow(stretch=True), "weather-1", "yes") == 2


class TestBranchSiblings:
    def test_sibling_handles(self):
        graph = branching_flow()
        assert sibling_handles(graph, "weather-1", BranchHandle.YES) == ["no"]
        assert sibling_handles(graph, "weather-1", BranchHandle.NO) == ["yes"]

    def test_branch_has_completed_step(self):
        graph = branching_flow("stretch-1", stretch=True)
        assert branch_has_completed_step(graph, "weather-1", "yes") is True
        assert branch_has_completed_step(graph, "weather-1", "no") is False

    def test_completed_merge_point_belongs_to_no_branch(self):
        graph = branching_flow("shower-1")
        assert branch_has_completed_step(graph, "weather-1", "yes") is False
        assert branch_has_completed_step(graph, "weather-1", "no") is False
