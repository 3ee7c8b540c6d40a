"""
Name conversions and naming-convention checks.
"""

from __future__ import annotations

import re

_PASCAL_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_CAMEL_RE = re.compile(r"^[a-z][A-Za-z0-9]*$")
_UPPER_SNAKE_RE = re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*$")
_WORD_SPLIT_RE = re.compile(r"[\s\-_.]+")


def snake_case(name: str) -> str:
    """
    Convert PascalCase, camelCase or kebab-case to snake_case.

    Args:
        name: Identifier in any supported case

    Returns:
        snake_case string
    """
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return _WORD_SPLIT_RE.sub("_", s2).strip("_").lower()


def pascal_case(name: str) -> str:
    """Convert snake_case, kebab-case or camelCase to PascalCase."""
    parts = snake_case(name).split("_")
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def camel_case(name: str) -> str:
    """Convert to camelCase."""
    pascal = pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def kebab_case(name: str) -> str:
    return snake_case(name).replace("_", "-")


def upper_snake_case(name: str) -> str:
    return snake_case(name).upper()


def is_pascal_case(name: str) -> bool:
    return bool(_PASCAL_RE.match(name))


def is_camel_case(name: str) -> bool:
    return bool(_CAMEL_RE.match(name))


def is_upper_snake_case(name: str) -> bool:
    return bool(_UPPER_SNAKE_RE.match(name))


def python_identifier(name: str) -> str:
    """A safe Python identifier for an arbitrary name (enum values, test names)."""
    ident = re.sub(r"\W+", "_", name).strip("_")
    if not ident:
        return "_"
    if ident[0].isdigit():
        ident = f"_{ident}"
    return ident


CASE_CONVERTERS = {
    "snake": snake_case,
    "camel": camel_case,
    "pascal": pascal_case,
    "kebab": kebab_case,
    "upper_snake": upper_snake_case,
}


def convert(name: str, style: str) -> str:
    """
    Convert a name to a named case style.

    Raises:
        ValueError: If the style is unknown
    """
    try:
        return CASE_CONVERTERS[style](name)
    except KeyError:
        raise ValueError(f"Unknown case style '{style}' (expected one of {', '.join(CASE_CONVERTERS)})") from None


__all__ = [
    "snake_case",
    "pascal_case",
    "camel_case",
    "kebab_case",
    "upper_snake_case",
    "is_pascal_case",
    "is_camel_case",
    "is_upper_snake_case",
    "python_identifier",
    "CASE_CONVERTERS",
    "convert",
]
