"""
HUSL - specification compiler and regeneration engine.

Turns a structured specification document into target-language source code,
preserving hand-written code in protected regions across regenerations.
"""

from __future__ import annotations

# Re-export commonly used types for convenience
from ._version import get_version
from .core import ir
from .core.errors import HuslError, MergeConflict, ParseError, ValidationError

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "HuslError",
    "ParseError",
    "ValidationError",
    "MergeConflict",
]
