"""
Custom implementation hooks for HUSL IR.

A Custom Implementation entry names a protected region the generator emits
into an artifact; hand-written code inside it survives regeneration.

Example document syntax:

    Operation: CreateOrder
      Custom Implementation:
        - fraud_check (before): input: Order; output: FraudVerdict
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class HookType(str, Enum):
    """Where a protected region sits relative to generated logic."""

    BEFORE = "before"
    AFTER = "after"
    REPLACE = "replace"
    EXTEND = "extend"


class CustomImplementationSpec(BaseModel):
    """
    A declared protected region.

    Attributes:
        name: Stable, case-sensitive region identifier
        hook: Hook location
        contract: Declared input/output contract (opaque text)
    """

    name: str
    hook: HookType
    contract: str = ""
    line: int | None = None

    model_config = ConfigDict(frozen=True)
