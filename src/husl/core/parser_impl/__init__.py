"""
HUSL document parser package.

The document is split into top-level sections, each section body is turned
into an indentation outline, and one section parser per construct family
walks the outline:

- schema: entities, enums, custom types
- state_machines: state machines and transitions
- rules: business rules
- operations: operations and their embedded tests
- records: events, background jobs, cross-cutting concerns, version history

Usage:
    from husl.core.parser import parse_document

    document = parse_document(text, source="orders.husl.md")
"""

from .base import ParseContext
from .operations import parse_operations_section
from .records import (
    parse_concerns_section,
    parse_events_section,
    parse_jobs_section,
    parse_refactoring_yaml,
    parse_version_history_section,
)
from .rules import parse_rules_section
from .schema import parse_schema_section
from .state_machines import parse_state_machines_section

__all__ = [
    "ParseContext",
    "parse_schema_section",
    "parse_state_machines_section",
    "parse_rules_section",
    "parse_operations_section",
    "parse_events_section",
    "parse_jobs_section",
    "parse_concerns_section",
    "parse_version_history_section",
    "parse_refactoring_yaml",
]
