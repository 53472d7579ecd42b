"""Schemas for data exchanged with the engine's collaborators."""

from habitflow.schemas.flow import (
    CURRENT_VERSION,
    FlowDocument,
    FlowDocumentError,
    FlowMetadata,
    FlowSummary,
)

__all__ = [
    "CURRENT_VERSION",
    "FlowDocument",
    "FlowDocumentError",
    "FlowMetadata",
    "FlowSummary",
]
