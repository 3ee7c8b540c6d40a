"""
HUSL Internal Representation (IR).

Immutable pydantic models for every construct of a specification document.
All types are re-exported here so callers can write ``from husl.core import ir``.
"""

from .document import OpaqueSection, SpecDocument
from .fields import (
    BUILTIN_TYPES,
    ConstraintKind,
    FieldConstraint,
    FieldSpec,
    TypeRef,
)
from .hooks import CustomImplementationSpec, HookType
from .operations import (
    Assertion,
    ErrorCaseSpec,
    GivenBinding,
    Invocation,
    OperationInputs,
    OperationSpec,
    OperationTestSpec,
    ParameterLocation,
    ResponseShape,
)
from .rules import (
    BackgroundJobSpec,
    CrossCuttingConcernSpec,
    EventSpec,
    RuleClause,
    RuleContext,
    RuleSpec,
)
from .schema import CustomTypeSpec, EntitySpec, EnumSpec, EnumValueSpec, InvalidExample
from .state_machine import StateMachineSpec, StateSpec, TransitionSpec
from .versioning import (
    WILDCARD,
    AdditionSet,
    ModificationSet,
    RefactoringMetadata,
    RemovalSet,
    RenameSet,
    SemanticVersion,
    VersionEntry,
)

__all__ = [
    # Document
    "SpecDocument",
    "OpaqueSection",
    # Fields
    "BUILTIN_TYPES",
    "ConstraintKind",
    "FieldConstraint",
    "FieldSpec",
    "TypeRef",
    # Hooks
    "CustomImplementationSpec",
    "HookType",
    # Schema
    "EntitySpec",
    "EnumSpec",
    "EnumValueSpec",
    "CustomTypeSpec",
    "InvalidExample",
    # State machines
    "StateMachineSpec",
    "StateSpec",
    "TransitionSpec",
    # Operations
    "Assertion",
    "ErrorCaseSpec",
    "GivenBinding",
    "Invocation",
    "OperationInputs",
    "OperationSpec",
    "OperationTestSpec",
    "ParameterLocation",
    "ResponseShape",
    # Rules and records
    "RuleClause",
    "RuleContext",
    "RuleSpec",
    "EventSpec",
    "BackgroundJobSpec",
    "CrossCuttingConcernSpec",
    # Versioning
    "WILDCARD",
    "SemanticVersion",
    "VersionEntry",
    "RefactoringMetadata",
    "RenameSet",
    "AdditionSet",
    "RemovalSet",
    "ModificationSet",
]
