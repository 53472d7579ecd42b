"""
Commands - Editor intents applied to a routine snapshot.

The editor never mutates the graph itself. It sends a command as plain data
and gets back a CommandResult: either the next snapshot, or the unchanged
snapshot plus the reason the command was refused.

Commands:
- connect: add an edge (checked by the connection validator)
- delete / delete_batch: remove steps, reconnecting the flow
- insert_on_edge: split an edge around a new step
- add_step / update_step: create or edit a habit step
- delete_edge: remove one edge
- toggle_completion / reset_progress: daily completion state
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from habitflow.config import BatchDeleteMode, EngineConfig
from habitflow.graph.completion import reset_daily_progress, toggle_completion
from habitflow.graph.deletion import (
    batch_delete,
    check_deletability,
    delete_node,
)
from habitflow.graph.edge import BranchHandle, EdgeData, FlowEdge, FlowGraph
from habitflow.graph.insertion import StepDraft, insert_on_edge
from habitflow.graph.node import ConditionalNode, HabitNode, HabitTiming, Position, update_data
from habitflow.graph.validator import (
    REJECTION_MESSAGES,
    Connection,
    ValidationErrorKind,
    validate_connection,
)
from habitflow.utils.identifiers import generate_edge_id

logger = logging.getLogger(__name__)

COMMAND_MODEL_CONFIG = {"populate_by_name": True, "frozen": True}

# Used when the host passes no configuration
DEFAULT_ENGINE_CONFIG = EngineConfig(
    batch_delete_mode=BatchDeleteMode.SEQUENTIAL,
    log_level="INFO",
    log_format="auto",
)


class Connect(BaseModel):
    kind: Literal["connect"] = "connect"
    source: str
    target: str
    source_handle: BranchHandle | None = None
    edge_id: str | None = None

    model_config = COMMAND_MODEL_CONFIG


class Delete(BaseModel):
    kind: Literal["delete"] = "delete"
    node_id: str

    model_config = COMMAND_MODEL_CONFIG


class DeleteBatch(BaseModel):
    kind: Literal["delete_batch"] = "delete_batch"
    node_ids: list[str]

    model_config = COMMAND_MODEL_CONFIG


class InsertOnEdge(BaseModel):
    kind: Literal["insert_on_edge"] = "insert_on_edge"
    edge_id: str
    step: StepDraft
    position: Position = Field(default_factory=Position)

    model_config = COMMAND_MODEL_CONFIG


class AddStep(BaseModel):
    """Create a habit step, optionally chained after ``parent_id``."""

    kind: Literal["add_step"] = "add_step"
    step: StepDraft
    position: Position = Field(default_factory=Position)
    parent_id: str | None = None

    model_config = COMMAND_MODEL_CONFIG


class UpdateStep(BaseModel):
    """Edit a habit step's metadata. Only the fields that are set change."""

    kind: Literal["update_step"] = "update_step"
    node_id: str
    label: str | None = None
    icon: str | None = None
    description: str | None = None
    timing: HabitTiming | None = None

    model_config = COMMAND_MODEL_CONFIG


class DeleteEdge(BaseModel):
    kind: Literal["delete_edge"] = "delete_edge"
    edge_id: str

    model_config = COMMAND_MODEL_CONFIG


class ToggleCompletion(BaseModel):
    kind: Literal["toggle_completion"] = "toggle_completion"
    node_id: str
    at: datetime = Field(description="Completion time, supplied by the caller")

    model_config = COMMAND_MODEL_CONFIG


class ResetProgress(BaseModel):
    kind: Literal["reset_progress"] = "reset_progress"

    model_config = COMMAND_MODEL_CONFIG


Command = Annotated[
    Connect
    | Delete
    | DeleteBatch
    | InsertOnEdge
    | AddStep
    | UpdateStep
    | DeleteEdge
    | ToggleCompletion
    | ResetProgress,
    Field(discriminator="kind"),
]


@dataclass
class CommandResult:
    """Outcome of applying a command."""

    graph: FlowGraph
    applied: bool
    reason: str | None = None
    message: str = ""

    @classmethod
    def ok(cls, graph: FlowGraph) -> "CommandResult":
        return cls(graph=graph, applied=True)

    @classmethod
    def rejected(cls, graph: FlowGraph, reason: str, message: str) -> "CommandResult":
        return cls(graph=graph, applied=False, reason=reason, message=message)


def _pick_handle(
    graph: FlowGraph, source: str, requested: BranchHandle | None
) -> BranchHandle | None:
    """
    Choose the branch handle for a new edge leaving a conditional.

    Returns the handle, or None when the requested handle is already taken.
    With no request, the first free handle ("yes", then "no") is used.
    """
    used = {e.source_handle for e in graph.get_outgoing_edges(source)}
    if requested is not None:
        return None if requested in used else requested
    for handle in BranchHandle:
        if handle not in used:
            return handle
    return None


def _connect(graph: FlowGraph, command: Connect) -> CommandResult:
    candidate = Connection(command.source, command.target, command.source_handle)
    validation = validate_connection(graph, candidate)
    if not validation.valid:
        return CommandResult.rejected(graph, validation.reason, validation.message)

    handle = None
    data = EdgeData()
    if isinstance(graph.get_node(command.source), ConditionalNode):
        handle = _pick_handle(graph, command.source, command.source_handle)
        if handle is None:
            reason = ValidationErrorKind.BRANCH_OVERFLOW
            return CommandResult.rejected(graph, reason, REJECTION_MESSAGES[reason])
        data = EdgeData(condition=str(handle))

    edge = FlowEdge(
        id=command.edge_id or generate_edge_id(),
        source=command.source,
        target=command.target,
        source_handle=handle,
        data=data,
    )
    return CommandResult.ok(graph.with_elements(edges=[*graph.edges, edge]))


def _delete(graph: FlowGraph, command: Delete) -> CommandResult:
    check = check_deletability(graph, command.node_id)
    if not check.can_delete:
        return CommandResult.rejected(graph, check.reason, check.message)
    return CommandResult.ok(delete_node(graph, command.node_id))


def _delete_batch(graph: FlowGraph, command: DeleteBatch, config: EngineConfig) -> CommandResult:
    atomic = config.batch_delete_mode == BatchDeleteMode.ATOMIC
    outcome = batch_delete(graph, command.node_ids, atomic=atomic)

    if outcome.skipped and (atomic or not outcome.deleted):
        node_id, check = next(iter(outcome.skipped.items()))
        return CommandResult.rejected(graph, check.reason, f"{check.message}: '{node_id}'")

    result = CommandResult.ok(outcome.graph)
    if outcome.skipped:
        result.message = "Skipped: " + ", ".join(
            f"'{node_id}' ({check.reason})" for node_id, check in outcome.skipped.items()
        )
    return result


def _insert_on_edge(graph: FlowGraph, command: InsertOnEdge) -> CommandResult:
    if graph.get_edge(command.edge_id) is None:
        return CommandResult.rejected(
            graph, "unknown-edge", f"Edge '{command.edge_id}' not found"
        )
    node_id = command.step.node_id
    if node_id is not None and graph.get_node(node_id) is not None:
        return CommandResult.rejected(graph, "duplicate-id", f"Step '{node_id}' already exists")
    return CommandResult.ok(insert_on_edge(graph, command.edge_id, command.step, command.position))


def _add_step(graph: FlowGraph, command: AddStep) -> CommandResult:
    node = command.step.to_node(command.position)
    if graph.get_node(node.id) is not None:
        return CommandResult.rejected(graph, "duplicate-id", f"Step '{node.id}' already exists")

    next_graph = graph.with_elements(nodes=[*graph.nodes, node])
    if command.parent_id is None:
        return CommandResult.ok(next_graph)

    linked = _connect(next_graph, Connect(source=command.parent_id, target=node.id))
    if not linked.applied:
        return CommandResult.rejected(graph, linked.reason, linked.message)
    return linked


def _update_step(graph: FlowGraph, command: UpdateStep) -> CommandResult:
    node = graph.get_node(command.node_id)
    if not isinstance(node, HabitNode):
        return CommandResult.rejected(graph, "not-a-step", f"'{command.node_id}' is not a habit")

    changes = {
        name: getattr(command, name)
        for name in ("label", "icon", "description", "timing")
        if name in command.model_fields_set
    }
    if "label" in changes and not changes["label"]:
        return CommandResult.rejected(graph, "empty-label", "Habit name is required")

    nodes = [update_data(n, **changes) if n.id == node.id else n for n in graph.nodes]
    return CommandResult.ok(graph.with_elements(nodes=nodes))


def _delete_edge(graph: FlowGraph, command: DeleteEdge) -> CommandResult:
    if graph.get_edge(command.edge_id) is None:
        return CommandResult.rejected(
            graph, "unknown-edge", f"Edge '{command.edge_id}' not found"
        )
    edges = [e for e in graph.edges if e.id != command.edge_id]
    return CommandResult.ok(graph.with_elements(edges=edges))


def apply_command(
    graph: FlowGraph,
    command: Command,
    config: EngineConfig | None = None,
) -> CommandResult:
    """
    Apply one editor command to a snapshot.

    Rejections return the very same snapshot object, so callers can rely on
    ``result.graph is graph`` meaning nothing changed.

    Args:
        graph: Current snapshot
        command: The editor intent
        config: Engine configuration (batch deletion mode). Defaults to
            DEFAULT_ENGINE_CONFIG; the configuration file is never read here

    Returns:
        CommandResult with the next snapshot or the rejection reason
    """
    config = config or DEFAULT_ENGINE_CONFIG

    if isinstance(command, Connect):
        result = _connect(graph, command)
    elif isinstance(command, Delete):
        result = _delete(graph, command)
    elif isinstance(command, DeleteBatch):
        result = _delete_batch(graph, command, config)
    elif isinstance(command, InsertOnEdge):
        result = _insert_on_edge(graph, command)
    elif isinstance(command, AddStep):
        result = _add_step(graph, command)
    elif isinstance(command, UpdateStep):
        result = _update_step(graph, command)
    elif isinstance(command, DeleteEdge):
        result = _delete_edge(graph, command)
    elif isinstance(command, ToggleCompletion):
        if not isinstance(graph.get_node(command.node_id), HabitNode):
            result = CommandResult.rejected(
                graph, "not-a-step", f"'{command.node_id}' is not a habit"
            )
        else:
            result = CommandResult.ok(
                toggle_completion(graph, command.node_id, command.at)
            )
    elif isinstance(command, ResetProgress):
        result = CommandResult.ok(reset_daily_progress(graph))
    else:
        raise ValueError(f"Unknown command: {command!r}")

    if result.applied:
        logger.info(
            "Applied %s", command.kind, extra={"event": "command_applied", "command": command.kind}
        )
    else:
        logger.info(
            "Rejected %s: %s",
            command.kind,
            result.reason,
            extra={"event": "command_rejected", "command": command.kind},
        )
    return result


__all__ = [
    "AddStep",
    "Command",
    "CommandResult",
    "DEFAULT_ENGINE_CONFIG",
    "Connect",
    "Delete",
    "DeleteBatch",
    "DeleteEdge",
    "InsertOnEdge",
    "ResetProgress",
    "ToggleCompletion",
    "UpdateStep",
    "apply_command",
]
