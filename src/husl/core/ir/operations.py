"""
Operation types for HUSL IR.

Operations are HTTP-bound service methods with typed inputs, response
shapes, error cases, and embedded behavioural tests.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .fields import FieldSpec, TypeRef
from .hooks import CustomImplementationSpec


class ParameterLocation(str, Enum):
    """Where an input parameter is carried in a request."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"
    HEADER = "header"


class OperationInputs(BaseModel):
    """Input shape of an operation, grouped by parameter location."""

    path: list[FieldSpec] = Field(default_factory=list)
    query: list[FieldSpec] = Field(default_factory=list)
    body: list[FieldSpec] = Field(default_factory=list)
    header: list[FieldSpec] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def by_location(self) -> list[tuple[ParameterLocation, FieldSpec]]:
        """All parameters in a stable order: path, query, body, header."""
        ordered: list[tuple[ParameterLocation, FieldSpec]] = []
        for location in ParameterLocation:
            for field in getattr(self, location.value):
                ordered.append((location, field))
        return ordered


class ResponseShape(BaseModel):
    """A success or error response: status code and optional body type."""

    status: int | None = None
    type: TypeRef | None = None

    model_config = ConfigDict(frozen=True)


class ErrorCaseSpec(BaseModel):
    """
    A declared error case.

    Syntax: ``CODE (status): condition => message template``
    """

    code: str
    status: int
    condition: str = ""
    message: str = ""

    model_config = ConfigDict(frozen=True)


class GivenBinding(BaseModel):
    """
    A ``given`` binding in a test, e.g. ``order = Order { total: 5 }``.

    Object-literal values are kept as raw literal text.
    """

    variable: str
    type_name: str | None = None
    fields: dict[str, str] = Field(default_factory=dict)
    value: str | None = None

    model_config = ConfigDict(frozen=True)


class Invocation(BaseModel):
    """The ``when`` clause of a test: an operation call expression."""

    operation: str
    arguments: str = ""

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.operation}({self.arguments})"


class Assertion(BaseModel):
    """A ``then`` assertion: subject, operator, expected value."""

    subject: str
    operator: str
    expected: str = ""

    model_config = ConfigDict(frozen=True)


class OperationTestSpec(BaseModel):
    """A behavioural test attached to an operation."""

    name: str
    given: list[GivenBinding] = Field(default_factory=list)
    when: Invocation | None = None
    then: list[Assertion] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    def binding(self, variable: str) -> GivenBinding | None:
        for item in self.given:
            if item.variable == variable:
                return item
        return None


class OperationSpec(BaseModel):
    """
    An operation declared with ``Operation: <Name>``.

    Attributes:
        name: PascalCase identifier
        method: HTTP method (upper case)
        path: Path template, e.g. ``/orders/{orderId}``
        inputs: Path/query/body/header parameters
        success: Success response shapes
        error_responses: Error response shapes
        errors: Declared error cases
        rules: Names of rules this operation enforces
        tests: Behavioural tests
    """

    name: str
    description: str = ""
    method: str | None = None
    path: str | None = None
    inputs: OperationInputs = Field(default_factory=OperationInputs)
    success: list[ResponseShape] = Field(default_factory=list)
    error_responses: list[ResponseShape] = Field(default_factory=list)
    preconditions: list[str] = Field(default_factory=list)
    effects: list[str] = Field(default_factory=list)
    errors: list[ErrorCaseSpec] = Field(default_factory=list)
    sla: dict[str, str] = Field(default_factory=dict)
    rules: list[str] = Field(default_factory=list)
    custom_implementations: list[CustomImplementationSpec] = Field(default_factory=list)
    tests: list[OperationTestSpec] = Field(default_factory=list)
    line: int | None = None

    model_config = ConfigDict(frozen=True)

    def type_refs(self) -> list[TypeRef]:
        """Every type reference used by inputs and outputs, in order."""
        refs = [field.type for _, field in self.inputs.by_location()]
        for shape in [*self.success, *self.error_responses]:
            if shape.type is not None:
                refs.append(shape.type)
        return refs

    @property
    def primary_status(self) -> int:
        for shape in self.success:
            if shape.status is not None:
                return shape.status
        return 200
