"""Tests for the document parser and the field line grammar."""

from __future__ import annotations

import pytest

from husl.core import ir
from husl.core.errors import ParseError
from husl.core.parser import parse_document
from husl.core.parser_impl.fields import FieldSyntaxError, parse_field_line, split_top_level
from husl.core.parser_impl.operations import parse_assertion, parse_binding, parse_invocation

# =============================================================================
# Field line grammar
# =============================================================================


class TestFieldLine:
    """Tests for parse_field_line."""

    def test_type_and_constraints_without_space(self) -> None:
        """Test the constraint list may follow the type directly."""
        field = parse_field_line("status: OrderStatus(required,default:draft)")
        assert field.name == "status"
        assert field.type == ir.TypeRef(name="OrderStatus")
        assert [c.kind for c in field.constraints] == [ir.ConstraintKind.REQUIRED, ir.ConstraintKind.DEFAULT]
        assert field.default == "draft"

    def test_nested_commas_stay_in_one_token(self) -> None:
        """Test commas inside brackets do not split constraint tokens."""
        field = parse_field_line("reason: Text (conditional:in(status, [draft, open]), optional)")
        assert len(field.constraints) == 2
        assert field.constraints[0].kind == ir.ConstraintKind.CONDITIONAL
        assert field.constraints[0].value == "in(status, [draft, open])"
        assert field.is_optional

    @pytest.mark.parametrize(
        "text",
        ["items: List<OrderItem>", "items: List[OrderItem]", "items: OrderItem[]"],
    )
    def test_list_type_spellings(self, text: str) -> None:
        """Test every list spelling yields a list TypeRef."""
        field = parse_field_line(text)
        assert field.type == ir.TypeRef(name="OrderItem", is_list=True)

    def test_apostrophe_inside_bare_value(self) -> None:
        """Test an apostrophe inside an unquoted value is not read as a quote."""
        field = parse_field_line("owner: String (default:O'Brien, required) - account holder")
        assert field.default == "O'Brien"
        assert field.is_required
        assert field.description == "account holder"

    def test_quoted_value_keeps_commas(self) -> None:
        field = parse_field_line("label: String (default:'a, b', optional)")
        assert field.default == "'a, b'"
        assert field.is_optional

    def test_description_after_dash(self) -> None:
        field = parse_field_line("email: Email (required) - contact address")
        assert field.description == "contact address"
        assert field.is_required

    def test_references_target(self) -> None:
        field = parse_field_line("customerId: UUID (references:Customer.id)")
        assert field.references == ("Customer", "id")

    @pytest.mark.parametrize(
        "text",
        [
            "total: Decimal (min:abc)",
            "name: String (required",
            "name: String (mystery)",
            "name String",
            "name: String trailing",
            "owner: UUID (references:Customer)",
            "flag: Boolean (required:yes)",
        ],
    )
    def test_malformed_lines(self, text: str) -> None:
        """Test malformed lines raise instead of being guessed at."""
        with pytest.raises(FieldSyntaxError):
            parse_field_line(text)

    def test_split_respects_quotes(self) -> None:
        assert split_top_level('a, "b, c", d') == ["a", '"b, c"', "d"]


# =============================================================================
# Document structure
# =============================================================================


class TestDocument:
    """Tests for section dispatch and per-construct parsing."""

    def test_title_and_overview(self, orders_doc: ir.SpecDocument) -> None:
        assert orders_doc.title == "Order Service"
        assert orders_doc.overview == "Orders for a small shop."
        assert orders_doc.source == "spec.husl.md"

    def test_inline_entity(self, widget_doc: ir.SpecDocument) -> None:
        """Test the ``Entity: Name { ... }`` form."""
        widget = widget_doc.get_entity("Widget")
        assert widget is not None
        assert widget.field_names == ["id"]
        assert widget.fields[0].is_required

    def test_entity_blocks(self, orders_doc: ir.SpecDocument) -> None:
        order = orders_doc.get_entity("Order")
        assert [e.name for e in orders_doc.entities] == ["Customer", "Order", "Shipment"]
        assert order.field_names == ["id", "customerId", "status", "total", "notes"]
        assert order.description == "A customer order"
        assert order.state_machine == "OrderLifecycle"
        assert order.get_field("customerId").references == ("Customer", "id")

    def test_custom_implementation_entries(self, orders_doc: ir.SpecDocument) -> None:
        order = orders_doc.get_entity("Order")
        submit = orders_doc.get_operation("SubmitOrder")
        assert order.custom_implementations[0].hook == ir.HookType.EXTEND
        assert order.custom_implementations[0].contract == "adds computed totals"
        assert submit.custom_implementations[0].name == "fraud_check"
        assert submit.custom_implementations[0].hook == ir.HookType.BEFORE
        assert submit.custom_implementations[0].contract == "input: Order, output: None"

    def test_enum_and_custom_type(self, orders_doc: ir.SpecDocument) -> None:
        status = orders_doc.get_enum("OrderStatus")
        sku = orders_doc.get_custom_type("Sku")
        assert status.value_names == ["draft", "submitted", "paid"]
        assert status.values[1].description == "Awaiting payment"
        assert (sku.base, sku.min_length, sku.max_length) == ("String", 6, 12)
        assert sku.allowed == ["[A-Z0-9-]"]
        assert sku.valid_examples == ["AB-1234"]
        assert sku.invalid_examples == [ir.InvalidExample(value="ab", reason="lower case is not allowed")]

    def test_state_machine(self, orders_doc: ir.SpecDocument) -> None:
        machine = orders_doc.get_state_machine("OrderLifecycle")
        assert machine.entity == "Order"
        assert machine.initial == "draft"
        assert machine.state_names == ["draft", "submitted"]
        assert [(t.source, t.target, t.trigger) for t in machine.transitions] == [("draft", "submitted", "SubmitOrder")]

    def test_rules_take_category_from_subheading(self, orders_doc: ir.SpecDocument) -> None:
        rule = orders_doc.get_rule("MinimumOrderValue")
        assert rule.category == "Pricing"
        assert rule.applies_to == ["SubmitOrder"]
        assert rule.clauses == [ir.RuleClause(when="order.total < 10", then="reject with ORDER_TOO_SMALL")]

    def test_operation(self, orders_doc: ir.SpecDocument) -> None:
        operation = orders_doc.get_operation("GetOrder")
        assert (operation.method, operation.path) == ("GET", "/orders/{orderId}")
        assert [f.name for f in operation.inputs.path] == ["orderId"]
        assert operation.success == [ir.ResponseShape(status=200, type=ir.TypeRef(name="Order"))]
        assert operation.error_responses == [ir.ResponseShape(status=404)]
        error = operation.errors[0]
        assert (error.code, error.status) == ("ORDER_NOT_FOUND", 404)
        assert error.condition == "no order has this id"
        assert error.message == "Order {orderId} was not found"

    def test_operation_tests(self, orders_doc: ir.SpecDocument) -> None:
        test = orders_doc.get_operation("GetOrder").tests[0]
        assert test.name == "returns an existing order"
        binding = test.binding("order")
        assert binding.type_name == "Order"
        assert binding.fields == {"id": '"o-1"', "status": "draft", "notes": '"fragile"'}
        assert test.when == ir.Invocation(operation="GetOrder", arguments="orderId: order.id")
        assert test.then[0] == ir.Assertion(subject="order.status", operator="equals", expected="draft")

    def test_version_history_metadata(self, orders_doc: ir.SpecDocument) -> None:
        """Test the Refactoring block is loaded as YAML."""
        entry = orders_doc.version_history[1]
        assert str(entry.version) == "1.1.0"
        assert entry.change_type == "minor"
        assert entry.refactoring.renames.fields == {"*": {"notes": "remarks"}}
        assert orders_doc.version_history[0].refactoring is None
        assert str(orders_doc.current_version) == "1.1.0"

    def test_unknown_sections_are_opaque(self) -> None:
        doc = parse_document("# Schema\nEntity: A { id: UUID }\n\n# Glossary\nWidget: a thing\n")
        assert [s.title for s in doc.opaque_sections] == ["Glossary"]
        assert doc.opaque_sections[0].text == "Widget: a thing"

    def test_numbered_and_synonym_titles(self) -> None:
        doc = parse_document("# 2. Data Model\nEntity: A { id: UUID }\n\n# 4. API\nOperation: GetA\n")
        assert doc.get_entity("A") is not None
        assert doc.get_operation("GetA") is not None

    def test_fenced_headings_are_not_sections(self) -> None:
        text = "# Schema\n```\n# Operations\n```\nEntity: A { id: UUID }\n"
        doc = parse_document(text)
        assert doc.operations == []
        assert doc.get_entity("A") is not None


# =============================================================================
# Errors
# =============================================================================


class TestParseErrors:
    """Tests for ParseError aggregation."""

    def test_all_defects_are_reported(self) -> None:
        """Test every malformed line is collected before raising."""
        text = (
            "# Schema\n"
            "\n"
            "Entity: Widget\n"
            "  id UUID\n"
            "  size: Integer (min:big)\n"
            "\n"
            "Entity: Gadget\n"
            "  name: String (mystery)\n"
        )
        with pytest.raises(ParseError) as exc_info:
            parse_document(text, source="bad.md")
        issues = exc_info.value.issues
        assert [issue.context.line for issue in issues] == [4, 5, 8]
        assert all(issue.context.file == "bad.md" for issue in issues)
        assert "3 parse error(s)" in str(exc_info.value)

    def test_offset_points_at_line_start(self) -> None:
        text = "# Schema\nEntity: Widget\n  id UUID\n"
        with pytest.raises(ParseError) as exc_info:
            parse_document(text)
        context = exc_info.value.issues[0].context
        assert context.offset == len("# Schema\nEntity: Widget\n")
        assert context.snippet == "  id UUID"

    def test_malformed_endpoint(self) -> None:
        with pytest.raises(ParseError, match="malformed endpoint"):
            parse_document("# Operations\nOperation: GetA\n  Endpoint: FETCH /a\n")

    def test_unknown_hook(self) -> None:
        text = "# Operations\nOperation: GetA\n  Custom Implementation:\n    - audit (around): none\n"
        with pytest.raises(ParseError, match="unknown hook type"):
            parse_document(text)

    def test_invalid_refactoring_yaml(self) -> None:
        text = "# Version History\nVersion: 1.0.0\n  Refactoring:\n    renames: [unbalanced\n"
        with pytest.raises(ParseError, match="invalid refactoring metadata"):
            parse_document(text)


class TestTestClauses:
    """Tests for Given/When/Then line parsers."""

    def test_binding_literal(self) -> None:
        binding = parse_binding("count = 3")
        assert binding == ir.GivenBinding(variable="count", value="3")

    def test_binding_object(self) -> None:
        binding = parse_binding('item = Item { sku: "AB-1234", tags: [a, b] }')
        assert binding.type_name == "Item"
        assert binding.fields == {"sku": '"AB-1234"', "tags": "[a, b]"}

    def test_invocation(self) -> None:
        assert parse_invocation("Ship(order.id, carrier: \"dhl\")") == ir.Invocation(
            operation="Ship", arguments='order.id, carrier: "dhl"'
        )
        assert parse_invocation("Ship order") is None

    @pytest.mark.parametrize(
        ("text", "operator", "expected"),
        [
            ("order.total is not 0", "not equals", "0"),
            ("order.total greater than or equal to 10", "at least", "10"),
            ("order.status == draft", "equals", "draft"),
            ("order.id exists", "exists", ""),
        ],
    )
    def test_assertion_operators(self, text: str, operator: str, expected: str) -> None:
        assertion = parse_assertion(text)
        assert assertion.operator == operator
        assert assertion.expected == expected

    def test_incomplete_assertion(self) -> None:
        assert parse_assertion("order.total equals") is None
        assert parse_assertion("order.id exists twice") is None
