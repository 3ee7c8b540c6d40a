"""
Utility functions for the Python target.

Contains type mappings, import bookkeeping, and literal rendering.
"""

from __future__ import annotations

import keyword
import re
from collections import defaultdict
from typing import TYPE_CHECKING

from husl.core import ir
from husl.core.naming import convert, python_identifier
from husl.core.references import RESPONSE_SUBJECTS, literal_value

if TYPE_CHECKING:
    from husl.generate.config import StackConfig


# Built-in document types -> (python annotation, import module)
TYPE_MAPPING: dict[str, tuple[str, str | None]] = {
    "String": ("str", None),
    "Text": ("str", None),
    "Email": ("str", None),
    "URL": ("str", None),
    "Integer": ("int", None),
    "Int": ("int", None),
    "Float": ("float", None),
    "Number": ("float", None),
    "Decimal": ("Decimal", "decimal"),
    "Money": ("Decimal", "decimal"),
    "Boolean": ("bool", None),
    "Bool": ("bool", None),
    "Date": ("date", "datetime"),
    "DateTime": ("datetime", "datetime"),
    "Timestamp": ("datetime", "datetime"),
    "Time": ("time", "datetime"),
    "Duration": ("timedelta", "datetime"),
    "UUID": ("UUID", "uuid"),
    "JSON": ("dict[str, Any]", "typing"),
    "Map": ("dict[str, Any]", "typing"),
    "Any": ("Any", "typing"),
}

NUMERIC_TYPES = frozenset({"Integer", "Int", "Float", "Number", "Decimal", "Money"})

_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_QUOTED_RE = re.compile(r"""^(?:"[^"]*"|'[^']*')$""")
_ENUM_MEMBER_RE = re.compile(r"^(?P<enum>[A-Z]\w*)\.(?P<value>[A-Za-z0-9_][\w-]*)$")

# Artifact kinds that hold importable element definitions
ELEMENT_KINDS = {"entity": "models", "enum": "enums", "custom_type": "types"}


# =============================================================================
# Imports
# =============================================================================


class ImportSet:
    """
    Collects ``from module import name`` lines for a generated module.

    Rendered in three groups (standard library, third party, generated
    package), each sorted, separated by a blank line.
    """

    GROUPS = ("stdlib", "third_party", "local")

    def __init__(self) -> None:
        self._imports: dict[str, dict[str, set[str]]] = {group: defaultdict(set) for group in self.GROUPS}

    def add(self, module: str, name: str, group: str = "stdlib") -> None:
        self._imports[group][module].add(name)

    def render(self) -> list[str]:
        lines: list[str] = []
        for group in self.GROUPS:
            modules = self._imports[group]
            if not modules:
                continue
            if lines:
                lines.append("")
            for module in sorted(modules):
                names = ", ".join(sorted(modules[module]))
                lines.append(f"from {module} import {names}")
        return lines


def module_path(config: StackConfig, kind: str, name: str) -> str:
    """Dotted module path of a generated artifact, derived from its path template."""
    path = config.artifact_path(kind, name)
    if path.endswith(".py"):
        path = path[: -len(".py")]
    return path.replace("/", ".")


def function_name(config: StackConfig, name: str) -> str:
    """Function name for an operation, in the configured ``functions`` style."""
    return safe_identifier(convert(name, config.name_style("functions")))


def safe_identifier(name: str) -> str:
    ident = python_identifier(name)
    if keyword.iskeyword(ident):
        ident = f"{ident}_"
    return ident


def member_name(value: str) -> str:
    """Python enum member name for a declared enum value."""
    return safe_identifier(value)


# =============================================================================
# Types
# =============================================================================


def element_kind(document: ir.SpecDocument, name: str) -> str | None:
    if document.get_entity(name) is not None:
        return "entity"
    if document.get_enum(name) is not None:
        return "enum"
    if document.get_custom_type(name) is not None:
        return "custom_type"
    return None


def python_type(
    type_ref: ir.TypeRef,
    document: ir.SpecDocument,
    config: StackConfig,
    imports: ImportSet,
    current: str | None = None,
) -> str:
    """
    Python annotation for a type reference, recording the imports it needs.

    Args:
        type_ref: Declared type
        document: Document the type resolves against
        config: Stack configuration (module paths of generated elements)
        imports: Import collector
        current: Element whose artifact is being generated (no self-import)
    """
    mapped = TYPE_MAPPING.get(type_ref.name)
    if mapped is not None:
        annotation, module = mapped
        if module == "typing":
            imports.add("typing", "Any")
        elif module is not None:
            imports.add(module, annotation)
    else:
        annotation = type_ref.name
        kind = element_kind(document, type_ref.name)
        if kind is not None and type_ref.name != current:
            imports.add(module_path(config, ELEMENT_KINDS[kind], type_ref.name), type_ref.name, "local")
    if type_ref.is_list:
        return f"list[{annotation}]"
    return annotation


def is_string_type(type_ref: ir.TypeRef) -> bool:
    mapped = TYPE_MAPPING.get(type_ref.name)
    return mapped is not None and mapped[0] == "str"


# =============================================================================
# Literals
# =============================================================================


def python_literal(
    text: str,
    document: ir.SpecDocument,
    enum: ir.EnumSpec | None = None,
    variables: frozenset[str] = frozenset(),
) -> str:
    """
    Render a document literal as a Python expression.

    Values of enum-typed fields become enum members; ``true``/``false``/``null``
    become Python constants; numbers and quoted strings pass through; dotted
    names rooted at a known variable pass through; anything else is quoted.
    """
    value = text.strip()
    lowered = value.lower()
    if lowered in ("null", "none"):
        return "None"
    if enum is not None:
        return f"{enum.name}.{member_name(literal_value(value))}"
    if lowered in ("true", "false"):
        return "True" if lowered == "true" else "False"
    if _NUMBER_RE.match(value) or _QUOTED_RE.match(value):
        return value
    match = _ENUM_MEMBER_RE.match(value)
    if match and document.get_enum(match.group("enum")) is not None:
        return f"{match.group('enum')}.{member_name(match.group('value'))}"
    root = value.split(".", 1)[0]
    if root in variables or root in RESPONSE_SUBJECTS:
        return value
    if value.startswith(("[", "{", "(")):
        return value
    return repr(value)


def enum_literal_names(document: ir.SpecDocument, text: str) -> set[str]:
    """Declared enums named by ``Enum.value`` literals in a rendered expression."""
    names = set()
    for token in re.findall(r"\b([A-Z]\w*)\.", text):
        if document.get_enum(token) is not None:
            names.add(token)
    return names


# =============================================================================
# Text
# =============================================================================


def default_region_body(hook: ir.HookType, contract: str, indent: str, comment: str = "#") -> str:
    """
    Default body for a protected region.

    The contract is emitted as comments. A ``replace`` region carries the
    contract only; other hooks also get a ``pass`` so the block stays valid.
    """
    contract_lines = contract.splitlines() or ["(none declared)"]
    lines = [f"{indent}{comment} contract: {line.strip()}" for line in contract_lines]
    if hook != ir.HookType.REPLACE:
        lines.append(f"{indent}pass")
    return "\n".join(lines) + "\n"


def docstring(summary: str, details: list[str] | None = None, indent: str = "") -> list[str]:
    """Docstring lines: one-liner when there are no details."""
    summary = escape_docstring(summary)
    details = list(details or [])
    while details and not details[-1]:
        details.pop()
    if not details:
        return [f'{indent}"""{summary}"""']
    lines = [f'{indent}"""', f"{indent}{summary}", ""]
    for detail in details:
        lines.append(f"{indent}{escape_docstring(detail)}" if detail else "")
    lines.append(f'{indent}"""')
    return lines


def escape_docstring(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def bulleted(title: str, items: list[str]) -> list[str]:
    if not items:
        return []
    return [f"{title}:", *[f"    - {item}" for item in items], ""]


__all__ = [
    "TYPE_MAPPING",
    "NUMERIC_TYPES",
    "ImportSet",
    "module_path",
    "function_name",
    "safe_identifier",
    "member_name",
    "element_kind",
    "python_type",
    "is_string_type",
    "python_literal",
    "enum_literal_names",
    "default_region_body",
    "docstring",
    "escape_docstring",
    "bulleted",
]
