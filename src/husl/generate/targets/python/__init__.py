"""
Python target.

Generates a FastAPI + pydantic code base from a SpecDocument:
- models.py - pydantic models for entities (with state machine tables)
- enums.py - str enums and constrained custom types
- operations.py - service functions with inlined rules, plus FastAPI routes
- rules.py - inline rule validation functions
- testing.py - pytest modules from operation tests
- utils.py - type mapping, imports, and literal rendering
"""

from __future__ import annotations

from husl.generate.generator import Generator
from husl.generate.targets.base import Target, TargetRegistry

from .enums import CustomTypeGenerator, EnumGenerator
from .models import ModelGenerator
from .operations import OperationGenerator
from .testing import OperationTestGenerator
from .utils import TYPE_MAPPING


class PythonTarget(Target):
    """Generate a Python service from a SpecDocument.

    Uses composition to delegate generation to one generator per element kind.
    """

    frameworks = ("fastapi",)

    def get_generators(self) -> list[Generator]:
        args = (self.document, self.config, self.scope)
        return [
            ModelGenerator(*args),
            EnumGenerator(*args),
            CustomTypeGenerator(*args),
            OperationGenerator(*args),
            OperationTestGenerator(*args),
        ]


# Register target
TargetRegistry.register("python", PythonTarget)

__all__ = [
    "PythonTarget",
    "ModelGenerator",
    "EnumGenerator",
    "CustomTypeGenerator",
    "OperationGenerator",
    "OperationTestGenerator",
    "TYPE_MAPPING",
]
