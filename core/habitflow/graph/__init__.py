"""Routine graph engine: model, validation, deletion, activation, insertion."""

from habitflow.graph.activation import derive_state, is_edge_active
from habitflow.graph.commands import (
    AddStep,
    Command,
    CommandResult,
    Connect,
    Delete,
    DeleteBatch,
    DeleteEdge,
    InsertOnEdge,
    ResetProgress,
    ToggleCompletion,
    UpdateStep,
    apply_command,
)
from habitflow.graph.completion import (
    DailyResetTracker,
    complete_habit,
    reset_daily_progress,
    toggle_completion,
)
from habitflow.graph.deletion import (
    BatchDeletionResult,
    DeletionCheck,
    DeletionErrorKind,
    batch_delete,
    check_deletability,
    delete_node,
    delete_nodes,
)
from habitflow.graph.edge import BranchHandle, EdgeData, FlowEdge, FlowGraph, TriggerType
from habitflow.graph.insertion import StepDraft, insert_on_edge
from habitflow.graph.node import (
    ConditionalData,
    ConditionalNode,
    FlowNode,
    HabitData,
    HabitNode,
    HabitTiming,
    NodeType,
    Position,
    TriggerData,
    TriggerKind,
    TriggerNode,
)
from habitflow.graph.paths import (
    BranchRef,
    ancestor_branch,
    branch_members,
    count_action_steps_on_branch,
)
from habitflow.graph.validator import (
    Connection,
    ConnectionValidation,
    ValidationErrorKind,
    is_valid_connection,
    validate_connection,
)

__all__ = [
    # Nodes
    "NodeType",
    "FlowNode",
    "TriggerNode",
    "TriggerData",
    "TriggerKind",
    "HabitNode",
    "HabitData",
    "HabitTiming",
    "ConditionalNode",
    "ConditionalData",
    "Position",
    # Edges and graph
    "BranchHandle",
    "TriggerType",
    "EdgeData",
    "FlowEdge",
    "FlowGraph",
    # Path analysis
    "BranchRef",
    "ancestor_branch",
    "branch_members",
    "count_action_steps_on_branch",
    # Connection validation
    "Connection",
    "ConnectionValidation",
    "ValidationErrorKind",
    "validate_connection",
    "is_valid_connection",
    # Deletion
    "DeletionCheck",
    "DeletionErrorKind",
    "BatchDeletionResult",
    "check_deletability",
    "delete_node",
    "delete_nodes",
    "batch_delete",
    # Activation
    "derive_state",
    "is_edge_active",
    # Insertion
    "StepDraft",
    "insert_on_edge",
    # Completion
    "toggle_completion",
    "complete_habit",
    "reset_daily_progress",
    "DailyResetTracker",
    # Commands
    "Command",
    "CommandResult",
    "Connect",
    "Delete",
    "DeleteBatch",
    "InsertOnEdge",
    "AddStep",
    "UpdateStep",
    "DeleteEdge",
    "ToggleCompletion",
    "ResetProgress",
    "apply_command",
]
