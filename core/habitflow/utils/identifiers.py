"""ID generation and timestamp utilities."""

import uuid
from datetime import UTC, datetime


def generate_edge_id(prefix: str = "edge") -> str:
    """Generate a unique edge ID (e.g. ``edge-reconnect-3f2a9c1b7d40``)."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def generate_habit_id() -> str:
    """Generate a unique habit node ID."""
    return f"habit-{uuid.uuid4().hex[:12]}"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
