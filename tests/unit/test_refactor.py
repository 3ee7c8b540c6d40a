"""Tests for the refactor applier and metadata loading."""

from __future__ import annotations

import pytest

from husl import api
from husl.core import ir
from husl.core.errors import DanglingReferenceError, RefactoringError
from husl.core.refactor import apply_refactoring, load_metadata, metadata_for_version
from husl.core.validator import validate


def refactor(document: ir.SpecDocument, yaml_text: str) -> ir.SpecDocument:
    return apply_refactoring(document, load_metadata(yaml_text))


# =============================================================================
# Renames
# =============================================================================


class TestFieldRenames:
    """Tests for wildcard and entity-scoped field renames."""

    def test_wildcard_rename_reaches_every_entity(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, 'renames:\n  fields: {"*": {notes: remarks}}\n')

        all_fields = [f for e in updated.entities for f in e.field_names]
        assert all_fields.count("notes") == 0
        assert all_fields.count("remarks") == 3

    def test_wildcard_rename_rewrites_tests_and_rules(self, orders_doc: ir.SpecDocument) -> None:
        """Test given keys, assertion subjects and rule text follow the rename."""
        updated = refactor(orders_doc, 'renames:\n  fields: {"*": {notes: remarks}}\n')

        test = updated.get_operation("GetOrder").tests[0]
        assert "remarks" in test.binding("order").fields
        assert "notes" not in test.binding("order").fields
        assert test.then[1].subject == "order.remarks"

        fragile = updated.get_rule("FragileHandling")
        assert fragile.clauses[0].when == 'order.remarks contains "fragile"'
        assert fragile.clauses[0].then == "shipment.remarks must mention padding"

    def test_renamed_document_validates(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, 'fields: {"*": {notes: remarks}}\n')
        assert validate(updated).passed

    def test_entity_scoped_rename(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "renames:\n  fields: {Order: {notes: remarks}}\n")
        assert "remarks" in updated.get_entity("Order").field_names
        assert "notes" in updated.get_entity("Customer").field_names
        assert "notes" in updated.get_entity("Shipment").field_names

    def test_swap_field_names(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "renames:\n  fields: {Order: {total: notes, notes: total}}\n")
        order = updated.get_entity("Order")
        assert order.get_field("notes").type.name == "Decimal"
        assert order.get_field("total").type.name == "Text"


class TestNameRenames:
    """Tests for entity, enum, operation and rule renames."""

    def test_chain_does_not_cascade(self, orders_doc: ir.SpecDocument) -> None:
        """Test A->B plus B->C turns A into B, not C."""
        updated = refactor(orders_doc, "renames:\n  entities: {Customer: Shipment, Shipment: Parcel}\n")
        assert [e.name for e in updated.entities] == ["Shipment", "Order", "Parcel"]
        assert updated.get_entity("Order").get_field("customerId").references == ("Shipment", "id")

    def test_swap_entities(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "renames:\n  entities: {Customer: Shipment, Shipment: Customer}\n")
        assert [e.name for e in updated.entities] == ["Shipment", "Order", "Customer"]
        assert updated.get_entity("Customer").field_names == ["id", "orderId", "notes"]

    def test_entity_rename_reaches_types_and_contracts(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "renames:\n  entities: {Order: Purchase}\n")
        submit = updated.get_operation("SubmitOrder")
        assert submit.success[0].type.name == "Purchase"
        assert submit.custom_implementations[0].contract == "input: Purchase, output: None"
        assert updated.get_state_machine("OrderLifecycle").entity == "Purchase"
        assert updated.get_entity("Shipment").get_field("orderId").references == ("Purchase", "id")
        assert validate(updated).passed

    def test_operation_rename(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "renames:\n  operations: {SubmitOrder: PlaceOrder}\n")
        machine = updated.get_state_machine("OrderLifecycle")
        assert machine.transitions[0].trigger == "PlaceOrder"
        assert updated.get_rule("MinimumOrderValue").applies_to == ["PlaceOrder"]
        assert validate(updated).passed

    def test_enum_value_rename(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "renames:\n  enum_values: {OrderStatus: {draft: pending}}\n")
        assert updated.get_enum("OrderStatus").value_names == ["pending", "submitted", "paid"]
        assert updated.get_entity("Order").get_field("status").default == "pending"
        test = updated.get_operation("GetOrder").tests[0]
        assert test.binding("order").fields["status"] == "pending"
        assert test.then[0].expected == "pending"

    def test_unknown_name(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(RefactoringError, match="Entity 'Ghost' does not exist"):
            refactor(orders_doc, "renames:\n  entities: {Ghost: Spirit}\n")

    def test_unknown_field(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(RefactoringError, match="does not exist"):
            refactor(orders_doc, "renames:\n  fields: {Order: {weight: mass}}\n")

    def test_collision(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(RefactoringError, match="two types named 'Order'"):
            refactor(orders_doc, "renames:\n  entities: {Customer: Order}\n")


# =============================================================================
# Removals, additions, modifications
# =============================================================================


class TestRemovals:
    """Tests for removals and dangling reference detection."""

    def test_referenced_entity_cannot_be_removed(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(DanglingReferenceError) as exc_info:
            refactor(orders_doc, "removals:\n  entities: [Customer]\n")
        assert exc_info.value.removed == "Customer"
        assert any("entity Order field customerId" in ref for ref in exc_info.value.references)

    def test_removal_takes_owned_state_machine(self, orders_doc: ir.SpecDocument) -> None:
        """Test removing an entity with its referrers removes its state machine too."""
        updated = refactor(
            orders_doc,
            "removals:\n"
            "  entities: [Order, Shipment]\n"
            "  operations: [GetOrder, SubmitOrder]\n"
            "  rules: [MinimumOrderValue]\n",
        )
        assert [e.name for e in updated.entities] == ["Customer"]
        assert updated.state_machines == []
        assert updated.operations == []

    def test_unreferenced_entity(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(orders_doc, "removals:\n  entities: [Shipment]\n")
        assert updated.get_entity("Shipment") is None

    def test_removed_field_still_used_by_test(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(DanglingReferenceError):
            refactor(orders_doc, "removals:\n  fields: {Order: [notes]}\n")

    def test_unknown_removal(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(RefactoringError, match="Operation 'ShipOrder' does not exist"):
            refactor(orders_doc, "removals:\n  operations: [ShipOrder]\n")


class TestAdditionsAndModifications:
    """Tests for additions and modifications."""

    def test_additions_append(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(
            orders_doc,
            "additions:\n"
            "  fields: {Order: ['discount: Decimal (min:0)']}\n"
            "  enum_values: {OrderStatus: ['cancelled: Withdrawn by the customer']}\n",
        )
        assert updated.get_entity("Order").field_names[-1] == "discount"
        assert updated.get_enum("OrderStatus").values[-1] == ir.EnumValueSpec(
            value="cancelled", description="Withdrawn by the customer"
        )

    def test_duplicate_addition(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(RefactoringError, match="already has a field 'total'"):
            refactor(orders_doc, "additions:\n  fields: {Order: ['total: Decimal']}\n")

    def test_modification_replaces_field_definition(self, orders_doc: ir.SpecDocument) -> None:
        updated = refactor(
            orders_doc,
            "modifications:\n  fields: {Order: {total: 'Decimal (required, min:1) - grand total'}}\n",
        )
        total = updated.get_entity("Order").get_field("total")
        assert total.is_required
        assert total.description == "grand total"
        assert updated.get_entity("Order").field_names == orders_doc.get_entity("Order").field_names

    def test_invalid_field_definition(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(RefactoringError, match="Invalid field definition"):
            refactor(orders_doc, "modifications:\n  fields: {Order: {total: 'Decimal (mystery)'}}\n")


# =============================================================================
# Metadata sources
# =============================================================================


class TestMetadata:
    """Tests for metadata loading and version lookup."""

    def test_shorthand_is_a_rename_set(self) -> None:
        metadata = load_metadata('fields: {"*": {notes: remarks}}')
        assert metadata.renames.fields == {"*": {"notes": "remarks"}}

    def test_empty_metadata(self) -> None:
        assert load_metadata("").is_empty()

    @pytest.mark.parametrize("text", ["- notes", "renames: {widgets: {}}", "renames: [unbalanced"])
    def test_invalid_metadata(self, text: str) -> None:
        with pytest.raises(RefactoringError):
            load_metadata(text)

    def test_metadata_for_version(self, orders_doc: ir.SpecDocument) -> None:
        metadata = metadata_for_version(orders_doc, "1.1.0")
        assert metadata.renames.fields == {"*": {"notes": "remarks"}}

    @pytest.mark.parametrize(
        ("version", "message"),
        [("1.0.0", "no refactoring metadata"), ("9.9.9", "not in the version history"), ("latest", "semantic version")],
    )
    def test_metadata_for_version_errors(self, orders_doc: ir.SpecDocument, version: str, message: str) -> None:
        with pytest.raises(RefactoringError, match=message):
            metadata_for_version(orders_doc, version)

    def test_api_defaults_to_current_version(self, orders_doc: ir.SpecDocument) -> None:
        updated = api.refactor(orders_doc)
        assert "remarks" in updated.get_entity("Customer").field_names

    def test_input_document_is_unchanged(self, orders_doc: ir.SpecDocument) -> None:
        before = orders_doc.model_dump()
        api.refactor(orders_doc, 'renames:\n  entities: {Order: Purchase}\n  fields: {"*": {notes: remarks}}\n')
        assert orders_doc.model_dump() == before
