"""
Rule generation for the Python target.

Business rules are not emitted as artifacts of their own. Each consuming
operation gets a private ``_rule_<name>`` function per rule, called from the
service method before its main logic. Rule text is opaque, so the check
itself lives in a ``replace`` region named ``rule_<name>``. Until it is
filled in, the default body raises NotImplementedError.
"""

from __future__ import annotations

from husl.core import ir
from husl.core.naming import snake_case
from husl.generate.generator import ArtifactBuilder, RegionPlaceholder

from .utils import bulleted, docstring, safe_identifier

INDENT = "    "


def rule_function_name(rule: ir.RuleSpec) -> str:
    return safe_identifier(f"_rule_{snake_case(rule.name)}")


def rule_region_name(rule: ir.RuleSpec) -> str:
    return f"rule_{snake_case(rule.name)}"


def rule_contract(rule: ir.RuleSpec) -> str:
    """One contract line per When/Then clause."""
    lines = [f"when {clause.when} then {clause.then}" for clause in rule.clauses]
    return "\n".join(lines) or rule.name


def rule_placeholder(rule: ir.RuleSpec, comment: str = "#") -> RegionPlaceholder:
    contract = rule_contract(rule)
    lines = [f"{INDENT}{comment} contract: {line}" for line in contract.splitlines()]
    lines.append(f"{INDENT}raise NotImplementedError({f'rule {rule.name} is not enforced yet'!r})")
    return RegionPlaceholder(
        name=rule_region_name(rule),
        hook=ir.HookType.REPLACE,
        contract=contract,
        default_body="\n".join(lines) + "\n",
    )


def generate_rule_function(rule: ir.RuleSpec, builder: ArtifactBuilder, comment: str = "#") -> None:
    """
    Render the inline validation function for a rule.

    Example output:
        def _rule_minimum_order_value(**params: Any) -> None:
            # HUSL:BEGIN rule_minimum_order_value hook=replace contract=...
            # contract: when order.total < 10 then reject with ORDER_TOO_SMALL
            raise NotImplementedError('rule MinimumOrderValue is not enforced yet')
            # HUSL:END rule_minimum_order_value
    """
    details: list[str] = []
    if rule.description:
        details.extend([rule.description, ""])
    if rule.category:
        details.extend([f"Category: {rule.category}", ""])
    if rule.context.critical:
        details.extend(["Critical rule.", ""])
    if rule.context.exception_to:
        details.extend([f"Exception to: {rule.context.exception_to}", ""])
    for label, block in (
        ("Validation", rule.validation),
        ("Implementation", rule.implementation),
        ("Example", rule.example),
    ):
        if block:
            details.extend(bulleted(label, block.splitlines()))

    builder.line(f"def {rule_function_name(rule)}(**params: Any) -> None:")
    builder.lines(docstring(f"{rule.name} rule.", details, indent=INDENT))
    builder.region(rule_placeholder(rule, comment), indent=INDENT)


def rule_call(rule: ir.RuleSpec, arguments: list[str]) -> str:
    args = ", ".join(f"{name}={name}" for name in arguments)
    return f"{rule_function_name(rule)}({args})"


__all__ = [
    "rule_function_name",
    "rule_region_name",
    "rule_contract",
    "rule_placeholder",
    "generate_rule_function",
    "rule_call",
]
