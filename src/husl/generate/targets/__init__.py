"""
Language targets for projection.

Each target generates artifacts for one language and registers itself in
the TargetRegistry under its ``language`` key:
- python: FastAPI service with pydantic models and pytest tests
"""

from .base import Target, TargetRegistry
from .python import PythonTarget

__all__ = [
    # Base classes
    "Target",
    "TargetRegistry",
    # Implementations
    "PythonTarget",
]
