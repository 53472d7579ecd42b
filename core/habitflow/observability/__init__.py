"""
Observability module for structured logging with flow context.

- Flow context propagation via ContextVar
- Structured JSON logging for production
- Human-readable logging for development
"""

from habitflow.observability.logging import (
    clear_flow_context,
    configure_logging,
    get_flow_context,
    set_flow_context,
)

__all__ = [
    "configure_logging",
    "get_flow_context",
    "set_flow_context",
    "clear_flow_context",
]
