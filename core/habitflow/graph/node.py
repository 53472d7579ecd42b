"""
Node Protocol - The steps a routine is made of.

A routine graph has exactly three kinds of node:
- trigger: Starts the routine (a time, a place, an event). Never has
  incoming edges.
- habit: An action step the user checks off each day.
- conditional: A branch point with a "yes" and a "no" output.

Nodes are a closed tagged union discriminated by ``type``, so a persisted
flow parses straight into the right model and every component can switch on
``NodeType`` knowing the set is complete.

The persisted flow format uses camelCase keys (``isCompleted``,
``completedAt``, ``triggerType``). Models accept either spelling and carry
unknown keys through untouched.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer
from pydantic.alias_generators import to_camel

FLOW_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "extra": "allow",
    "frozen": True,
}


class NodeType(StrEnum):
    """Kinds of step in a routine."""

    TRIGGER = "trigger"
    HABIT = "habit"
    CONDITIONAL = "conditional"


class TriggerKind(StrEnum):
    """What starts a routine."""

    TIME = "time"
    EVENT = "event"
    LOCATION = "location"


class HabitTiming(StrEnum):
    """Part of the day a habit belongs to."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ANYTIME = "anytime"


class Position(BaseModel):
    """Canvas position. Display only; the engine never reads it."""

    x: float = 0.0
    y: float = 0.0

    model_config = FLOW_MODEL_CONFIG


# Overlay fields written by the activation deriver, never by the user
DERIVED_FIELDS = ("is_flowing", "is_inactive", "is_disabled", "can_delete", "is_active")


class FlowPayload(BaseModel):
    """
    Base for node and edge ``data`` payloads.

    Serializes every field, nulls included, so a saved flow keeps the keys it
    was loaded with. Derived overlays are the exception: they are written only
    once computed.
    """

    model_config = FLOW_MODEL_CONFIG

    @model_serializer(mode="wrap")
    def _omit_underived(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for name in DERIVED_FIELDS:
            if name in type(self).model_fields and getattr(self, name) is None:
                data.pop(name, None)
                data.pop(to_camel(name), None)
        return data


class TriggerData(FlowPayload):
    label: str = ""
    trigger_type: TriggerKind = TriggerKind.TIME
    icon: str | None = None

    # Derived by the activation deriver
    is_flowing: bool | None = None

    model_config = FLOW_MODEL_CONFIG


class HabitData(FlowPayload):
    """
    Payload of a habit step.

    ``is_completed`` and ``completed_at`` are the only user-owned state that
    changes day to day. ``is_inactive``, ``is_flowing``, ``is_disabled`` and
    ``can_delete`` are overlays written by the activation deriver and the
    deletion engine; they are None until derived.
    """

    habit_id: str | None = None
    label: str = ""
    icon: str | None = None
    description: str | None = None
    timing: HabitTiming | None = None
    is_completed: bool = False
    completed_at: datetime | None = None

    # Derived overlays
    is_inactive: bool | None = None
    is_flowing: bool | None = None
    is_disabled: bool | None = None
    can_delete: bool | None = None

    model_config = FLOW_MODEL_CONFIG


class ConditionalData(FlowPayload):
    label: str = ""
    condition: str = ""
    icon: str | None = None

    # Derived by the activation deriver
    is_flowing: bool | None = None

    model_config = FLOW_MODEL_CONFIG


class TriggerNode(BaseModel):
    """Root of a routine. Has no incoming edges."""

    id: str
    type: Literal["trigger"] = "trigger"
    position: Position = Field(default_factory=Position)
    data: TriggerData = Field(default_factory=TriggerData)

    model_config = FLOW_MODEL_CONFIG


class HabitNode(BaseModel):
    """An action step with a daily completion flag."""

    id: str
    type: Literal["habit"] = "habit"
    position: Position = Field(default_factory=Position)
    data: HabitData = Field(default_factory=HabitData)

    model_config = FLOW_MODEL_CONFIG

    @property
    def is_completed(self) -> bool:
        return self.data.is_completed


class ConditionalNode(BaseModel):
    """
    A branch point.

    A well-formed conditional has at most two outgoing edges, one per branch
    handle ("yes" / "no"). The branches are mutually exclusive paths: on any
    given day the user follows one of them.
    """

    id: str
    type: Literal["conditional"] = "conditional"
    position: Position = Field(default_factory=Position)
    data: ConditionalData = Field(default_factory=ConditionalData)

    model_config = FLOW_MODEL_CONFIG


FlowNode = Annotated[TriggerNode | HabitNode | ConditionalNode, Field(discriminator="type")]


def is_completed(node: FlowNode | None) -> bool:
    """True only for a habit node whose completion flag is set."""
    return isinstance(node, HabitNode) and node.data.is_completed


def has_fired(node: FlowNode | None) -> bool:
    """
    Whether a node counts as done for edge activation.

    Triggers always count as fired; habits count once completed;
    conditionals never do on their own.
    """
    if isinstance(node, TriggerNode):
        return True
    return is_completed(node)


def update_data(node: FlowNode, **changes) -> FlowNode:
    """Return a copy of ``node`` with its data payload updated."""
    return node.model_copy(update={"data": node.data.model_copy(update=changes)})
