"""Tests for the semantic validator."""

from __future__ import annotations

import pytest

from husl.core import ir
from husl.core.errors import ValidationError
from husl.core.parser import parse_document
from husl.core.validator import Severity, require_valid, validate


def error_codes(text: str) -> list[str]:
    return [issue.code for issue in validate(parse_document(text)).errors]


def warning_codes(text: str) -> list[str]:
    return [issue.code for issue in validate(parse_document(text)).warnings]


class TestValidDocuments:
    """Tests for documents that pass."""

    def test_orders_document_passes(self, orders_doc: ir.SpecDocument) -> None:
        report = validate(orders_doc)
        assert report.passed, [issue.format() for issue in report.errors]

    def test_missing_endpoint_is_a_warning(self, widget_doc: ir.SpecDocument) -> None:
        report = validate(widget_doc)
        assert report.passed
        assert report.codes() == ["missing-endpoint"]
        assert report.warnings[0].severity == Severity.WARNING

    def test_deterministic(self, orders_doc: ir.SpecDocument) -> None:
        """Test identical input yields an identical issue list."""
        text = "# Schema\nEntity: a { x: Gizmo; y: Widget }\n"
        first = validate(parse_document(text))
        second = validate(parse_document(text))
        assert first.issues == second.issues
        assert validate(orders_doc) == validate(orders_doc)


class TestReferenceChecks:
    """Tests for unresolved names."""

    def test_unknown_type(self) -> None:
        assert error_codes("# Schema\nEntity: A { id: UUID; owner: Gizmo }\n") == ["unknown-type"]

    def test_unknown_list_type(self) -> None:
        assert error_codes("# Schema\nEntity: A { id: UUID; parts: List<Part> }\n") == ["unknown-type"]

    def test_unknown_enum_value_in_default(self) -> None:
        text = "# Schema\nStatus Enum:\n  - open\n\nEntity: A { status: Status(default:closed) }\n"
        assert error_codes(text) == ["unknown-enum-value"]

    def test_unknown_reference_target(self) -> None:
        text = "# Schema\nEntity: B { id: UUID }\nEntity: A { bId: UUID(references:B.missing) }\n"
        assert error_codes(text) == ["unknown-reference-target"]

    def test_reference_to_unknown_entity(self) -> None:
        text = "# Schema\nEntity: A { bId: UUID(references:B.id) }\n"
        assert error_codes(text) == ["unknown-entity"]

    def test_rule_applies_to_unknown_operation(self) -> None:
        text = "# Rules\nRule: Limit\n  Applies To: Missing\n  When: x\n  Then: y\n"
        assert error_codes(text) == ["unknown-operation"]

    def test_operation_rules_must_exist(self) -> None:
        text = "# Operations\nOperation: GetA\n  Endpoint: GET /a\n  Rules: Missing\n"
        assert error_codes(text) == ["unknown-rule"]

    def test_test_literal_uses_unknown_enum_value(self, orders_text: str) -> None:
        text = orders_text.replace("- order.status equals draft", "- order.status equals shipped")
        assert error_codes(text) == ["unknown-enum-value"]


class TestStateMachineChecks:
    """Tests for state machine checks."""

    SPEC = """\
# Schema
Entity: Ticket { id: UUID }

# State Machines
State Machine: TicketFlow
  Entity: Ticket
  Initial: open
  States:
    - open
    - closed
  Transitions:
    - open -> closed: CloseTicket
    - open -> closed: CloseTicket
    - open -> archived: Archive

# Operations
Operation: CloseTicket
  Endpoint: POST /tickets/close
"""

    def test_unknown_state_and_trigger(self) -> None:
        assert sorted(error_codes(self.SPEC)) == ["unknown-state", "unknown-trigger"]

    def test_duplicate_source_trigger_is_a_warning(self) -> None:
        assert "duplicate-trigger" in warning_codes(self.SPEC)

    def test_initial_state_must_be_declared(self) -> None:
        text = self.SPEC.replace("Initial: open", "Initial: pending")
        assert "unknown-state" in error_codes(text)


class TestStructuralChecks:
    """Tests for constraint, name, and convention checks."""

    def test_required_and_optional(self) -> None:
        assert error_codes("# Schema\nEntity: A { id: UUID(required, optional) }\n") == ["conflicting-constraints"]

    def test_min_above_max(self) -> None:
        assert error_codes("# Schema\nEntity: A { size: Integer(min:5, max:1) }\n") == ["invalid-bounds"]

    def test_duplicate_enum_value(self) -> None:
        assert error_codes("# Schema\nStatus Enum:\n  - open\n  - open\n") == ["duplicate-name"]

    def test_duplicate_custom_implementation(self) -> None:
        text = (
            "# Operations\nOperation: GetA\n  Endpoint: GET /a\n  Custom Implementation:\n"
            "    - audit (before): one\n    - audit (after): two\n"
        )
        assert error_codes(text) == ["duplicate-region"]

    def test_custom_implementation_clashing_with_rule_region(self) -> None:
        """Test a custom implementation cannot reuse the region name of an enforced rule."""
        text = (
            "# Operations\nOperation: GetA\n  Endpoint: GET /a\n  Custom Implementation:\n"
            "    - rule_limit (before): checks the limit\n"
            "# Rules\nRule: Limit\n  Applies To: GetA\n  When: x\n  Then: y\n"
        )
        assert error_codes(text) == ["duplicate-region"]

    def test_undeclared_path_parameter(self) -> None:
        assert error_codes("# Operations\nOperation: GetA\n  Endpoint: GET /a/{aId}\n") == ["undeclared-path-parameter"]

    @pytest.mark.parametrize(
        "text",
        [
            "# Schema\nEntity: widget { id: UUID }\n",
            "# Schema\nEntity: Widget { Id: UUID }\n",
            "# Operations\nOperation: GetA\n  Endpoint: GET /a\n  Errors:\n    - notFound (404): missing\n",
        ],
    )
    def test_naming_conventions_are_warnings(self, text: str) -> None:
        report = validate(parse_document(text))
        assert report.passed
        assert "naming-convention" in report.codes()


class TestRequireValid:
    """Tests for require_valid."""

    def test_raises_with_every_error(self) -> None:
        report = validate(parse_document("# Schema\nEntity: A { x: Gizmo; y: Gadget }\n"))
        with pytest.raises(ValidationError) as exc_info:
            require_valid(report)
        assert len(exc_info.value.issues) == 2
        assert "2 validation error(s)" in str(exc_info.value)

    def test_warnings_pass(self, widget_doc: ir.SpecDocument) -> None:
        report = validate(widget_doc)
        assert require_valid(report) is report
