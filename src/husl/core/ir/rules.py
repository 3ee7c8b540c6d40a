"""
Business rules and behavioural records for HUSL IR.

Rules carry When/Then clause pairs that the generator embeds as inline
validation logic in every operation consuming them. Events, background jobs,
and cross-cutting concerns are structurally parsed records whose text is
treated as opaque by code generation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RuleClause(BaseModel):
    """A When/Then pair."""

    when: str
    then: str

    model_config = ConfigDict(frozen=True)


class RuleContext(BaseModel):
    """Optional context tags attached to a rule."""

    critical: bool = False
    exception_to: str | None = None
    reasoning: str | None = None
    status: str | None = None
    todo: str | None = None

    model_config = ConfigDict(frozen=True)


class RuleSpec(BaseModel):
    """
    A business rule declared with ``Rule: <Name>``.

    Attributes:
        name: Rule identifier
        category: Grouping category (from ``Category:`` or a ``##`` heading)
        clauses: Ordered When/Then pairs
        applies_to: Operations that enforce this rule
    """

    name: str
    category: str | None = None
    description: str = ""
    clauses: list[RuleClause] = Field(default_factory=list)
    validation: str | None = None
    implementation: str | None = None
    example: str | None = None
    applies_to: list[str] = Field(default_factory=list)
    context: RuleContext = Field(default_factory=RuleContext)
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class EventSpec(BaseModel):
    """A domain event."""

    name: str
    trigger: str = ""
    payload: list[str] = Field(default_factory=list)
    description: str = ""
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class BackgroundJobSpec(BaseModel):
    """A scheduled or triggered background job."""

    name: str
    schedule: str = ""
    trigger: str = ""
    behavior: list[str] = Field(default_factory=list)
    description: str = ""
    line: int | None = None

    model_config = ConfigDict(frozen=True)


class CrossCuttingConcernSpec(BaseModel):
    """
    A concern that spans operations (auditing, rate limiting, ...).

    ``applies_to`` may contain ``*`` to mean every operation.
    """

    name: str
    applies_to: list[str] = Field(default_factory=list)
    behavior: list[str] = Field(default_factory=list)
    description: str = ""
    line: int | None = None

    model_config = ConfigDict(frozen=True)
