"""
Version history and refactoring metadata for HUSL IR.

Refactoring metadata is machine-readable (YAML in the document) and is
applied mechanically by the refactor applier. ``"*"`` as an entity key means
every entity.

Example document syntax:

    Version: 1.2.0
      Type: minor
      Changes:
        - renamed notes to remarks everywhere
      Refactoring:
        renames:
          fields: {"*": {notes: remarks}}
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

WILDCARD = "*"

_SEMVER_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")

_METADATA_GROUPS = ("renames", "additions", "removals", "modifications")


class SemanticVersion(BaseModel):
    """A semantic version triple."""

    major: int
    minor: int
    patch: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        match = _SEMVER_RE.match(text.strip())
        if not match:
            raise ValueError(f"'{text}' is not a semantic version (expected MAJOR.MINOR.PATCH)")
        return cls(major=int(match.group(1)), minor=int(match.group(2)), patch=int(match.group(3)))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class RenameSet(BaseModel):
    """Old-name to new-name pairs, per namespace."""

    entities: dict[str, str] = Field(default_factory=dict)
    enums: dict[str, str] = Field(default_factory=dict)
    operations: dict[str, str] = Field(default_factory=dict)
    rules: dict[str, str] = Field(default_factory=dict)
    # entity name (or "*") -> {old field: new field}
    fields: dict[str, dict[str, str]] = Field(default_factory=dict)
    # enum name -> {old value: new value}
    enum_values: dict[str, dict[str, str]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


class AdditionSet(BaseModel):
    """New elements appended to the end of their target's list."""

    # entity name (or "*") -> field lines, e.g. "remarks: Text (optional)"
    fields: dict[str, list[str]] = Field(default_factory=dict)
    # enum name -> value lines, e.g. "archived: No longer listed"
    enum_values: dict[str, list[str]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


class RemovalSet(BaseModel):
    """Elements to delete."""

    entities: list[str] = Field(default_factory=list)
    enums: list[str] = Field(default_factory=list)
    operations: list[str] = Field(default_factory=list)
    rules: list[str] = Field(default_factory=list)
    fields: dict[str, list[str]] = Field(default_factory=dict)
    enum_values: dict[str, list[str]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ModificationSet(BaseModel):
    """In-place changes to existing elements."""

    # entity name (or "*") -> {field: "Type (constraints) - description"}
    fields: dict[str, dict[str, str]] = Field(default_factory=dict)
    # enum name -> {value: new description}
    enum_values: dict[str, dict[str, str]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


class RefactoringMetadata(BaseModel):
    """
    Structured rename/add/remove/modify instructions.

    A mapping without any of the four group keys is read as a rename set,
    so ``{fields: {"*": {notes: remarks}}}`` is shorthand for
    ``{renames: {fields: {"*": {notes: remarks}}}}``.
    """

    renames: RenameSet = Field(default_factory=RenameSet)
    additions: AdditionSet = Field(default_factory=AdditionSet)
    removals: RemovalSet = Field(default_factory=RemovalSet)
    modifications: ModificationSet = Field(default_factory=ModificationSet)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _shorthand_renames(cls, data: Any) -> Any:
        if isinstance(data, dict) and data and not any(key in data for key in _METADATA_GROUPS):
            return {"renames": data}
        return data

    def is_empty(self) -> bool:
        return self == RefactoringMetadata()


class VersionEntry(BaseModel):
    """One entry of the document's version history."""

    version: SemanticVersion
    change_type: str = ""
    changes: list[str] = Field(default_factory=list)
    refactoring: RefactoringMetadata | None = None
    line: int | None = None

    model_config = ConfigDict(frozen=True)
