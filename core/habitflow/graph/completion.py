"""
Completion tracking and daily reset.

Completion is the only state a routine accumulates during the day. Checking
off a step on one branch of a conditional means the user took that branch,
so completed steps on the sibling branches are cleared: the two paths are
mutually exclusive. Merge points are shared by every branch and are never
cleared.

The daily reset is driven by an external scheduler. ``DailyResetTracker``
takes the current day as an argument so the engine never reads the clock.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from habitflow.graph.edge import FlowGraph
from habitflow.graph.node import FlowNode, HabitNode, update_data
from habitflow.graph.paths import ancestor_branch, branch_members, sibling_handles

logger = logging.getLogger(__name__)


def _sibling_branch_steps(graph: FlowGraph, node_id: str) -> set[str]:
    """Steps on the other branches of the conditional ``node_id`` belongs to."""
    branch = ancestor_branch(graph, node_id)
    if branch is None:
        return set()
    if node_id not in branch_members(graph, branch.conditional_id, branch.handle):
        return set()

    steps: set[str] = set()
    for handle in sibling_handles(graph, branch.conditional_id, branch.handle):
        steps.update(branch_members(graph, branch.conditional_id, handle))
    return steps


def _set_completed(node: FlowNode, completed: bool, now: datetime | None) -> FlowNode:
    return update_data(node, is_completed=completed, completed_at=now if completed else None)


def toggle_completion(graph: FlowGraph, node_id: str, now: datetime) -> FlowGraph:
    """
    Flip a habit step's completion flag.

    Completing a step clears completed steps on the sibling branches of its
    conditional. Un-completing a step touches nothing else. Ids that are not
    habit steps leave the snapshot unchanged.

    Args:
        graph: Current snapshot
        node_id: Habit step to toggle
        now: Completion timestamp to record
    """
    node = graph.get_node(node_id)
    if not isinstance(node, HabitNode):
        logger.debug("Toggle ignored: '%s' is not a habit step", node_id)
        return graph

    completing = not node.data.is_completed
    cleared = _sibling_branch_steps(graph, node_id) if completing else set()

    nodes: list[FlowNode] = []
    for n in graph.nodes:
        if n.id == node_id:
            nodes.append(_set_completed(n, completing, now))
        elif n.id in cleared and isinstance(n, HabitNode) and n.data.is_completed:
            logger.debug("Clearing '%s': sibling branch of '%s' was chosen", n.id, node_id)
            nodes.append(_set_completed(n, False, None))
        else:
            nodes.append(n)

    return graph.with_elements(nodes=nodes)


def complete_habit(graph: FlowGraph, node_id: str, now: datetime) -> FlowGraph:
    """Mark a habit step completed; a step that is already done is left as is."""
    node = graph.get_node(node_id)
    if not isinstance(node, HabitNode) or node.data.is_completed:
        return graph
    return toggle_completion(graph, node_id, now)


def reset_daily_progress(graph: FlowGraph) -> FlowGraph:
    """Clear completion on every habit step."""
    nodes = [
        _set_completed(n, False, None) if isinstance(n, HabitNode) else n for n in graph.nodes
    ]
    return graph.with_elements(nodes=nodes)


@dataclass
class DailyResetTracker:
    """
    Resets progress once per calendar day.

    The scheduler calls ``check`` periodically (once a minute is plenty)
    with today's date.

    Example:
        tracker = DailyResetTracker(last_reset_day=date(2024, 5, 1))
        graph, did_reset = tracker.check(graph, today=date(2024, 5, 2))
    """

    last_reset_day: date

    def check(self, graph: FlowGraph, today: date) -> tuple[FlowGraph, bool]:
        """Reset progress if the day changed since the last reset."""
        if today == self.last_reset_day:
            return graph, False
        logger.info(
            "Day changed (%s -> %s), resetting progress",
            self.last_reset_day,
            today,
            extra={"event": "daily_reset"},
        )
        self.last_reset_day = today
        return reset_daily_progress(graph), True

    def reset_now(self, graph: FlowGraph, today: date) -> FlowGraph:
        """Manual reset; also marks ``today`` as already reset."""
        self.last_reset_day = today
        return reset_daily_progress(graph)
