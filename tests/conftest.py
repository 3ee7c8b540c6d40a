"""Shared pytest fixtures for HUSL tests."""

from pathlib import Path

import pytest

from husl.core import ir
from husl.core.parser import parse_document
from husl.generate.config import StackConfig

WIDGET_SPEC = """\
# Widgets

# Overview
A single widget lookup.

# Schema

Entity: Widget { id: UUID(required) }

# Operations

Operation: GetWidget
"""

ORDERS_SPEC = """\
# Order Service

# Overview
Orders for a small shop.

# Schema

Entity: Customer
  id: UUID (required, immutable, system-generated)
  email: Email (required) - contact address
  notes: Text (optional)

Entity: Order
  Description: A customer order
  id: UUID (required, immutable, system-generated)
  customerId: UUID (required, references:Customer.id)
  status: OrderStatus (required, default:draft)
  total: Decimal (min:0)
  notes: Text (optional)
  State Machine: OrderLifecycle
  Custom Implementation:
    - pricing_helpers (extend): adds computed totals

Entity: Shipment
  id: UUID (required)
  orderId: UUID (required, references:Order.id)
  notes: Text (optional)

OrderStatus Enum:
  - draft: Being assembled
  - submitted: Awaiting payment
  - paid: Payment received

Type: Sku
  Base: String
  Length: 6..12
  Allowed: [A-Z0-9-]
  Valid:
    - AB-1234
  Invalid:
    - ab => lower case is not allowed

# State Machines

State Machine: OrderLifecycle
  Entity: Order
  Initial: draft
  States:
    - draft: Being assembled
    - submitted: Awaiting payment
  Transitions:
    - draft -> submitted: SubmitOrder

# Rules

## Pricing

Rule: MinimumOrderValue
  Description: Orders below the minimum are rejected
  Applies To: SubmitOrder
  When: order.total < 10
  Then: reject with ORDER_TOO_SMALL

Rule: FragileHandling
  When: order.notes contains "fragile"
  Then: shipment.notes must mention padding

# Operations

Operation: GetOrder
  Endpoint: GET /orders/{orderId}
  Input:
    Path:
      orderId: UUID (required)
  Output:
    Success: 200 Order
    Error: 404
  Errors:
    - ORDER_NOT_FOUND (404): no order has this id => Order {orderId} was not found
  Custom Implementation:
    - audit_lookup (after): input: Order
  Tests:
    Test: returns an existing order
      Given:
        order = Order { id: "o-1", status: draft, notes: "fragile" }
      When: GetOrder(orderId: order.id)
      Then:
        - order.status equals draft
        - order.notes equals "fragile"

Operation: SubmitOrder
  Endpoint: POST /orders/{orderId}/submit
  Input:
    Path:
      orderId: UUID (required)
  Output:
    Success: 200 Order
  Effects:
    - order status becomes submitted
  Rules: MinimumOrderValue
  Custom Implementation:
    - fraud_check (before): input: Order, output: None

# Version History

Version: 1.0.0
  Type: major
  Changes:
    - initial release

Version: 1.1.0
  Type: minor
  Changes:
    - renamed notes to remarks everywhere
  Refactoring:
    renames:
      fields: {"*": {notes: remarks}}
"""


@pytest.fixture
def widget_text() -> str:
    """Return the single-entity, single-operation document."""
    return WIDGET_SPEC


@pytest.fixture
def orders_text() -> str:
    """Return a document exercising every section kind."""
    return ORDERS_SPEC


@pytest.fixture
def widget_doc() -> ir.SpecDocument:
    return parse_document(WIDGET_SPEC, source="spec.husl.md")


@pytest.fixture
def orders_doc() -> ir.SpecDocument:
    return parse_document(ORDERS_SPEC, source="spec.husl.md")


@pytest.fixture
def stack_config() -> StackConfig:
    """Return the default Python/FastAPI stack configuration."""
    return StackConfig()


@pytest.fixture
def spec_file(tmp_path: Path, orders_text: str) -> Path:
    """Write the orders document into a temporary project directory."""
    path = tmp_path / "spec.husl.md"
    path.write_text(orders_text, encoding="utf-8")
    return path
