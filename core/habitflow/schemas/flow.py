"""
Flow Document Schema - The persisted shape of a routine.

The persistence layer stores and exports routines as:

    {
      "version": "1.0",
      "name": "Morning routine",
      "nodes": [...],
      "edges": [...],
      "metadata": {"createdAt": "...", "updatedAt": "...", "description": "..."}
    }

The engine owns no storage. This schema only guarantees that a document
round-trips through the engine's node and edge types without losing keys,
and that malformed documents are refused before they reach the engine.
"""

import logging
from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from habitflow.graph.edge import FlowEdge, FlowGraph
from habitflow.graph.node import FLOW_MODEL_CONFIG, FlowNode
from habitflow.utils.identifiers import utc_now

logger = logging.getLogger(__name__)

CURRENT_VERSION = "1.0"


class FlowDocumentError(ValueError):
    """A flow document could not be parsed or is structurally invalid."""


class FlowMetadata(BaseModel):
    created_at: str  # ISO 8601 format
    updated_at: str  # ISO 8601 format (updated on every save)
    description: str | None = None

    model_config = FLOW_MODEL_CONFIG


class FlowSummary(BaseModel):
    """Listing entry for a saved flow."""

    name: str
    created_at: str
    updated_at: str
    node_count: int
    edge_count: int

    model_config = FLOW_MODEL_CONFIG


class FlowDocument(BaseModel):
    """A named, versioned routine as exchanged with the persistence layer."""

    version: str = CURRENT_VERSION
    name: str = Field(min_length=1)
    nodes: list[FlowNode] = Field(default_factory=list)
    edges: list[FlowEdge] = Field(default_factory=list)
    metadata: FlowMetadata

    model_config = FLOW_MODEL_CONFIG

    @classmethod
    def from_graph(
        cls,
        name: str,
        graph: FlowGraph,
        now: datetime | None = None,
        description: str | None = None,
        created_at: str | None = None,
    ) -> "FlowDocument":
        """
        Wrap a snapshot for saving.

        Args:
            name: Routine name
            graph: Snapshot to save
            now: Save time (defaults to the current UTC time)
            description: Optional routine description
            created_at: Original creation time when re-saving an existing flow
        """
        timestamp = (now or utc_now()).isoformat()
        return cls(
            name=name,
            nodes=list(graph.nodes),
            edges=list(graph.edges),
            metadata=FlowMetadata(
                created_at=created_at or timestamp,
                updated_at=timestamp,
                description=description,
            ),
        )

    def to_graph(self) -> FlowGraph:
        return FlowGraph(nodes=list(self.nodes), edges=list(self.edges))

    def to_json(self, indent: int | None = 2) -> str:
        """
        Serialize with the persisted camelCase keys.

        Null values are written out (``completedAt``, ``sourceHandle``, ...);
        only derived overlays that were never computed are left out.
        """
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, text: str | bytes, strict: bool = False) -> "FlowDocument":
        """
        Parse a persisted flow.

        Args:
            text: JSON document
            strict: Also reject documents that break the graph invariants

        Raises:
            FlowDocumentError: If the JSON is malformed, a required field is
                missing, or (with ``strict``) the graph is inconsistent
        """
        try:
            document = cls.model_validate_json(text)
        except ValidationError as e:
            raise FlowDocumentError(f"Invalid flow format: {e}") from e

        if document.version != CURRENT_VERSION:
            logger.warning(
                "Flow version mismatch: expected %s, got %s",
                CURRENT_VERSION,
                document.version,
            )

        if strict:
            errors = document.to_graph().validate()
            if errors:
                raise FlowDocumentError("Inconsistent flow graph: " + "; ".join(errors))

        return document

    def summarize(self) -> FlowSummary:
        return FlowSummary(
            name=self.name,
            created_at=self.metadata.created_at,
            updated_at=self.metadata.updated_at,
            node_count=len(self.nodes),
            edge_count=len(self.edges),
        )
