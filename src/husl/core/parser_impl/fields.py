"""
Field line grammar.

    name: Type (constraint, constraint, ...) - description

``Type`` is a name, optionally wrapped as ``List<T>``, ``List[T]`` or
``T[]``. The constraint list may follow the type directly (``UUID(required)``).
Constraint tokens are split on commas at bracket depth zero, so a token such
as ``conditional:in(status, [draft, open])`` stays whole.
"""

from __future__ import annotations

import re

from ..ir import ConstraintKind, FieldConstraint, FieldSpec, TypeRef

_FIELD_HEAD_RE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*:\s*(?P<rest>.*)$")
_TYPE_RE = re.compile(
    r"^(?:List\s*<\s*(?P<angle>[A-Za-z_][\w.]*)\s*>"
    r"|List\s*\[\s*(?P<square>[A-Za-z_][\w.]*)\s*\]"
    r"|(?P<plain>[A-Za-z_][\w.]*)(?P<array>\[\])?)"
)
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}

_QUOTE_LEADERS = "([{,;:"

_CONSTRAINT_ALIASES = {
    "system generated": ConstraintKind.SYSTEM_GENERATED,
    "system_generated": ConstraintKind.SYSTEM_GENERATED,
}


class FieldSyntaxError(ValueError):
    """A malformed field line, with the column and construct expected there."""

    def __init__(self, message: str, expected: str, column: int = 1):
        self.message = message
        self.expected = expected
        self.column = column
        super().__init__(message)


def opens_quote(text: str, index: int) -> bool:
    """A quote character starts a literal only at the start of a token, so O'Brien stays bare."""
    if text[index] not in "\"'":
        return False
    if index == 0:
        return True
    before = text[index - 1]
    return before in _QUOTE_LEADERS or before.isspace()


def find_closing(text: str, start: int) -> int:
    """
    Return the index of the bracket closing the one at ``start``.

    Raises:
        FieldSyntaxError: If brackets are unbalanced
    """
    stack: list[str] = []
    quote: str | None = None
    for index in range(start, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
            continue
        if opens_quote(text, index):
            quote = char
        elif char in _OPENERS:
            stack.append(char)
        elif char in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[char]:
                raise FieldSyntaxError(f"unexpected '{char}'", "balanced brackets", index + 1)
            stack.pop()
            if not stack:
                return index
    raise FieldSyntaxError(f"unterminated '{text[start]}'", f"closing '{_OPENERS[text[start]]}'", start + 1)


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """
    Split on a separator outside brackets and quotes.

    Raises:
        FieldSyntaxError: If brackets are unbalanced
    """
    parts: list[str] = []
    stack: list[str] = []
    quote: str | None = None
    current: list[str] = []

    for index, char in enumerate(text):
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if opens_quote(text, index):
            quote = char
        elif char in _OPENERS:
            stack.append(char)
        elif char in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[char]:
                raise FieldSyntaxError(f"unexpected '{char}'", "balanced brackets", index + 1)
            stack.pop()
        elif char == separator and not stack:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    if stack:
        raise FieldSyntaxError(f"unterminated '{stack[-1]}'", f"closing '{_OPENERS[stack[-1]]}'", len(text))
    if quote:
        raise FieldSyntaxError("unterminated string literal", f"closing {quote}", len(text))
    parts.append("".join(current).strip())
    return parts


def parse_type_ref(text: str) -> tuple[TypeRef, str]:
    """
    Parse a type reference at the start of ``text``.

    Returns:
        (TypeRef, remaining text)
    """
    match = _TYPE_RE.match(text)
    if not match:
        raise FieldSyntaxError(f"invalid type '{text.split(' ')[0]}'", "type name")
    if match.group("angle"):
        ref = TypeRef(name=match.group("angle"), is_list=True)
    elif match.group("square"):
        ref = TypeRef(name=match.group("square"), is_list=True)
    else:
        ref = TypeRef(name=match.group("plain"), is_list=bool(match.group("array")))
    return ref, text[match.end():]


def parse_constraint(token: str) -> FieldConstraint:
    """Parse a single constraint token from the fixed vocabulary."""
    token = token.strip()
    if not token:
        raise FieldSyntaxError("empty constraint", "constraint token")

    lowered = token.lower()
    if lowered in _CONSTRAINT_ALIASES:
        return FieldConstraint(kind=_CONSTRAINT_ALIASES[lowered])

    key, sep, value = token.partition(":")
    key = key.strip().lower()
    try:
        kind = ConstraintKind(key)
    except ValueError:
        raise FieldSyntaxError(f"unknown constraint '{token}'", "known constraint") from None

    value = value.strip()
    if kind.takes_value:
        if not sep or not value:
            raise FieldSyntaxError(f"constraint '{key}' needs a value", f"{key}:<value>")
        if kind in (ConstraintKind.MIN, ConstraintKind.MAX) and not _NUMBER_RE.match(value):
            raise FieldSyntaxError(f"'{key}' expects a number, got '{value}'", "number")
        if kind == ConstraintKind.REFERENCES and "." not in value:
            raise FieldSyntaxError(f"references target '{value}' is not Entity.field", "Entity.field")
        return FieldConstraint(kind=kind, value=value)

    if sep:
        raise FieldSyntaxError(f"constraint '{key}' takes no value", key)
    return FieldConstraint(kind=kind)


def parse_constraints(text: str) -> list[FieldConstraint]:
    """Parse the inside of a constraint list."""
    if not text.strip():
        return []
    return [parse_constraint(token) for token in split_top_level(text)]


def parse_field_line(text: str, line: int | None = None) -> FieldSpec:
    """
    Parse a complete field line.

    Raises:
        FieldSyntaxError: If the line does not follow the field grammar
    """
    head = _FIELD_HEAD_RE.match(text.strip())
    if not head:
        raise FieldSyntaxError(f"malformed field line '{text.strip()}'", "name: Type (constraints)")

    name = head.group("name")
    rest = head.group("rest").strip()
    if not rest:
        raise FieldSyntaxError(f"field '{name}' has no type", "type name", len(name) + 2)

    type_ref, remainder = parse_type_ref(rest)
    return field_from_parts(name, type_ref, remainder, line)


def parse_field_tail(name: str, text: str, line: int | None = None) -> FieldSpec:
    """Parse ``Type (constraints) - description`` for a known field name."""
    type_ref, remainder = parse_type_ref(text.strip())
    return field_from_parts(name, type_ref, remainder, line)


def field_from_parts(name: str, type_ref: TypeRef, remainder: str, line: int | None) -> FieldSpec:
    constraints: list[FieldConstraint] = []
    remainder = remainder.strip()

    if remainder.startswith("("):
        close = find_closing(remainder, 0)
        constraints = parse_constraints(remainder[1:close])
        remainder = remainder[close + 1 :].strip()

    description = ""
    if remainder:
        if not remainder.startswith("- "):
            raise FieldSyntaxError(
                f"unexpected '{remainder}' after type of field '{name}'",
                "'(constraints)' or '- description'",
            )
        description = remainder[2:].strip()

    return FieldSpec(
        name=name,
        type=type_ref,
        constraints=constraints,
        description=description,
        line=line,
    )


__all__ = [
    "FieldSyntaxError",
    "opens_quote",
    "find_closing",
    "split_top_level",
    "parse_type_ref",
    "parse_constraint",
    "parse_constraints",
    "parse_field_line",
    "parse_field_tail",
]
