"""Tests for the target projector."""

from __future__ import annotations

import pytest

from husl.core import ir
from husl.core.errors import ConfigError, ScopeError
from husl.core.parser import parse_document
from husl.generate.config import StackConfig
from husl.generate.projector import project, render_header, resolve_scope, strip_header
from husl.generate.regions import contract_fingerprint


class TestProjection:
    """Tests for artifact projection."""

    def test_widget_artifacts(self, widget_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        projection = project(widget_doc, stack_config)
        assert projection.paths == ["app/models/widget.py", "app/services/get_widget.py"]

    def test_orders_artifacts(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        projection = project(orders_doc, stack_config)
        assert projection.paths == [
            "app/models/customer.py",
            "app/models/order.py",
            "app/models/shipment.py",
            "app/enums/order_status.py",
            "app/types/sku.py",
            "app/services/get_order.py",
            "app/services/submit_order.py",
            "tests/test_get_order.py",
        ]

    def test_deterministic(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        """Test two projections of the same input are byte-identical."""
        first = project(orders_doc, stack_config, timestamp="2024-01-01T00:00:00+00:00")
        second = project(orders_doc, stack_config, timestamp="2024-01-01T00:00:00+00:00")
        assert first.contents() == second.contents()

    def test_split_endpoints(self, orders_doc: ir.SpecDocument) -> None:
        projection = project(orders_doc, StackConfig(split_endpoints=True))
        assert "app/api/get_order.py" in projection
        assert "router = APIRouter()" not in projection.get("app/services/get_order.py").body

    def test_path_templates_and_naming(self, widget_doc: ir.SpecDocument) -> None:
        config = StackConfig.model_validate(
            {"package": "svc", "paths": {"models": "{package}/{name}_model.py"}, "naming": {"files": "kebab"}}
        )
        projection = project(widget_doc, config)
        assert "svc/widget_model.py" in projection
        assert "svc/services/get-widget.py" in projection

    def test_colliding_paths(self, orders_doc: ir.SpecDocument) -> None:
        config = StackConfig.model_validate({"paths": {"models": "app/models.py"}})
        with pytest.raises(ConfigError, match="both map to app/models.py"):
            project(orders_doc, config)

    def test_unknown_language(self, widget_doc: ir.SpecDocument) -> None:
        with pytest.raises(ConfigError, match="No target registered for language 'cobol'"):
            project(widget_doc, StackConfig(language="cobol"))

    def test_unsupported_framework(self, widget_doc: ir.SpecDocument) -> None:
        with pytest.raises(ConfigError, match="does not support framework 'django'"):
            project(widget_doc, StackConfig(framework="django"))


class TestRegionPlaceholders:
    """Tests for protected region placement."""

    def test_before_region_has_pass(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        artifact = project(orders_doc, stack_config).get("app/services/submit_order.py")
        fingerprint = contract_fingerprint(ir.HookType.BEFORE, "input: Order, output: None")
        assert f"    # HUSL:BEGIN fraud_check hook=before contract={fingerprint}\n" in artifact.body
        assert (
            "    # contract: input: Order, output: None\n    pass\n    # HUSL:END fraud_check\n" in artifact.body
        )
        assert [p.name for p in artifact.placeholders] == ["rule_minimum_order_value", "fraud_check"]

    def test_replace_region_has_contract_only(self, stack_config: StackConfig) -> None:
        document = parse_document(
            "# Operations\nOperation: Ping\n  Endpoint: GET /ping\n"
            "  Custom Implementation:\n    - handler (replace): returns pong\n"
        )
        body = project(document, stack_config).get("app/services/ping.py").body
        assert "    # contract: returns pong\n    # HUSL:END handler\n" in body

    def test_extend_region_inside_model(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        body = project(orders_doc, stack_config).get("app/models/order.py").body
        assert "    # HUSL:BEGIN pricing_helpers hook=extend" in body
        assert body.index("class Order(BaseModel):") < body.index("HUSL:BEGIN pricing_helpers")

    def test_effects_and_rules_are_inlined(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        body = project(orders_doc, stack_config).get("app/services/submit_order.py").body
        assert "# Effect: order status becomes submitted" in body
        assert "minimum_order_value" in body

    def test_rule_check_is_a_replace_region(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        """Test an unimplemented rule raises instead of passing silently."""
        artifact = project(orders_doc, stack_config).get("app/services/submit_order.py")
        fingerprint = contract_fingerprint(ir.HookType.REPLACE, "when order.total < 10 then reject with ORDER_TOO_SMALL")
        assert f"    # HUSL:BEGIN rule_minimum_order_value hook=replace contract={fingerprint}\n" in artifact.body
        assert (
            "    # contract: when order.total < 10 then reject with ORDER_TOO_SMALL\n"
            "    raise NotImplementedError('rule MinimumOrderValue is not enforced yet')\n"
            "    # HUSL:END rule_minimum_order_value\n"
        ) in artifact.body
        assert artifact.body.index("def _rule_minimum_order_value") < artifact.body.index("def submit_order")


class TestHeaders:
    """Tests for header rendering."""

    def test_default_header(self, widget_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        artifact = project(widget_doc, stack_config).get("app/models/widget.py")
        assert artifact.header == (
            "# Generated by husl from spec.husl.md. Code outside protected regions is overwritten.\n"
        )
        assert artifact.content.startswith(artifact.header)

    def test_timestamp_placeholder(self) -> None:
        config = StackConfig(header_template="{comment} {path}\n{comment} at {timestamp}")
        header = render_header(config, "docs/spec.husl.md", "app/x.py", "2024-05-01T12:00:00+00:00")
        assert header == "# app/x.py\n# at 2024-05-01T12:00:00+00:00\n"
        assert config.header_line_count == 2

    def test_strip_header(self) -> None:
        config = StackConfig(header_template="{comment} one\n{comment} two")
        assert strip_header("# one\n# two\nbody\n", config) == "body\n"

    def test_unknown_placeholder(self) -> None:
        with pytest.raises(ConfigError, match="Invalid header_template"):
            render_header(StackConfig(header_template="{comment} {author}"), "spec.md", "a.py")


class TestScope:
    """Tests for selective-regeneration scope closure."""

    def test_operation_pulls_in_dependencies(self, orders_doc: ir.SpecDocument) -> None:
        scope = resolve_scope(orders_doc, ["GetOrder"])
        assert scope.operations == frozenset({"GetOrder"})
        assert scope.entities == frozenset({"Order", "Customer"})
        assert scope.enums == frozenset({"OrderStatus"})
        assert scope.custom_types == frozenset()

    def test_scoped_projection(self, orders_doc: ir.SpecDocument, stack_config: StackConfig) -> None:
        projection = project(orders_doc, stack_config, scope=["GetOrder"])
        assert projection.paths == [
            "app/models/customer.py",
            "app/models/order.py",
            "app/enums/order_status.py",
            "app/services/get_order.py",
            "tests/test_get_order.py",
        ]

    def test_entity_scope(self, orders_doc: ir.SpecDocument) -> None:
        scope = resolve_scope(orders_doc, ["Shipment"])
        assert scope.entities == frozenset({"Shipment", "Order", "Customer"})
        assert scope.operations == frozenset()

    def test_unknown_name(self, orders_doc: ir.SpecDocument) -> None:
        with pytest.raises(ScopeError, match="ShipOrder"):
            resolve_scope(orders_doc, ["GetOrder", "ShipOrder"])
