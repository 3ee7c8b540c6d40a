"""
State machine types for HUSL IR.

Example document syntax:

    State Machine: OrderLifecycle
      Entity: Order
      Initial: draft
      States:
        draft: Being assembled
          Allowed: AddItem, SubmitOrder
        submitted: Awaiting payment
          Entry: payment requested
          Prohibited: AddItem
      Transitions:
        draft -> submitted: SubmitOrder
          Preconditions:
            - order has at least one item
          Effects:
            - submittedAt is set
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StateSpec(BaseModel):
    """A declared state with its per-state operation lists."""

    name: str
    description: str = ""
    entry_condition: str = ""
    allowed_operations: list[str] = Field(default_factory=list)
    prohibited_operations: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class TransitionSpec(BaseModel):
    """
    A single state transition.

    Attributes:
        source: State transitioned from
        target: State transitioned to
        trigger: Operation, background job, or event that fires the transition
        preconditions: Ordered guard descriptions
        effects: Ordered effect descriptions
    """

    source: str
    target: str
    trigger: str
    preconditions: list[str] = Field(default_factory=list)
    effects: list[str] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class StateMachineSpec(BaseModel):
    """Complete state machine specification for an entity."""

    name: str
    entity: str | None = None
    states: list[StateSpec] = Field(default_factory=list)
    initial: str | None = None
    transitions: list[TransitionSpec] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def state_names(self) -> list[str]:
        return [s.name for s in self.states]

    def get_transitions_from(self, state: str) -> list[TransitionSpec]:
        """Get all transitions from a given state."""
        return [t for t in self.transitions if t.source == state]

    def duplicate_triggers(self) -> list[tuple[str, str]]:
        """Return (source, trigger) pairs declared by more than one transition."""
        seen: dict[tuple[str, str], int] = {}
        for transition in self.transitions:
            key = (transition.source, transition.trigger)
            seen[key] = seen.get(key, 0) + 1
        return [key for key, count in seen.items() if count > 1]
