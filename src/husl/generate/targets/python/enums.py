"""
Enum and custom type generation for the Python target.

Enums become ``str`` enums. Custom types become ``Annotated`` aliases with
pydantic string constraints, plus module constants carrying the declared
allowed/forbidden classes, structural rules and examples verbatim.
"""

from __future__ import annotations

from husl.core import ir
from husl.core.naming import upper_snake_case
from husl.generate.generator import Artifact, Generator, GeneratorResult

from .utils import TYPE_MAPPING, ImportSet, docstring, member_name


class EnumGenerator(Generator):
    """Generates enum artifacts."""

    def generate(self) -> GeneratorResult:
        result = GeneratorResult()
        for enum in self.document.enums:
            if self.scope.includes("enums", enum.name):
                result.add_artifact(self.generate_enum(enum))
        return result

    def generate_enum(self, enum: ir.EnumSpec) -> Artifact:
        builder = self.builder()
        builder.lines(docstring(f"{enum.name} enum."))
        builder.line()
        builder.line("from __future__ import annotations")
        builder.line()
        builder.line("from enum import Enum")
        builder.line()
        builder.line()
        builder.line(f"class {enum.name}(str, Enum):")
        builder.lines(docstring(f"{enum.name} values.", indent="    "))
        if enum.values:
            builder.line()
        for value in enum.values:
            line = f"    {member_name(value.value)} = {value.value!r}"
            if value.description:
                line += f"  # {value.description}"
            builder.line(line)
        return self.make_artifact("enums", enum.name, builder)


class CustomTypeGenerator(Generator):
    """Generates constrained scalar type artifacts."""

    def generate(self) -> GeneratorResult:
        result = GeneratorResult()
        for custom_type in self.document.custom_types:
            if self.scope.includes("custom_types", custom_type.name):
                result.add_artifact(self.generate_custom_type(custom_type))
        return result

    def generate_custom_type(self, custom_type: ir.CustomTypeSpec) -> Artifact:
        imports = ImportSet()
        base, module = TYPE_MAPPING.get(custom_type.base, ("str", None))
        if module == "typing":
            imports.add("typing", "Any")
        elif module is not None:
            imports.add(module, base)

        constraints = []
        if custom_type.min_length is not None:
            constraints.append(f"min_length={custom_type.min_length}")
        if custom_type.max_length is not None:
            constraints.append(f"max_length={custom_type.max_length}")
        if custom_type.pattern:
            constraints.append(f"pattern={custom_type.pattern!r}")

        if base == "str" and constraints:
            imports.add("typing", "Annotated")
            imports.add("pydantic", "StringConstraints", "third_party")
            alias = f"{custom_type.name} = Annotated[str, StringConstraints({', '.join(constraints)})]"
        else:
            alias = f"{custom_type.name} = {base}"

        details = [custom_type.description] if custom_type.description else []
        builder = self.builder()
        builder.lines(docstring(f"{custom_type.name} type.", details))
        builder.line()
        builder.line("from __future__ import annotations")
        rendered = imports.render()
        if rendered:
            builder.line()
            builder.lines(rendered)
        builder.line()
        builder.line(alias)

        prefix = upper_snake_case(custom_type.name)
        tables = [
            ("ALLOWED", custom_type.allowed),
            ("FORBIDDEN", custom_type.forbidden),
            ("RULES", custom_type.rules),
            ("VALID_EXAMPLES", custom_type.valid_examples),
        ]
        constants = [(f"{prefix}_{suffix}", values) for suffix, values in tables if values]
        if custom_type.invalid_examples:
            constants.append(
                (
                    f"{prefix}_INVALID_EXAMPLES",
                    [(example.value, example.reason) for example in custom_type.invalid_examples],
                )
            )
        if constants:
            builder.line()
        for name, values in constants:
            builder.line(f"{name} = (")
            for value in values:
                builder.line(f"    {value!r},")
            builder.line(")")

        return self.make_artifact("types", custom_type.name, builder)


__all__ = ["EnumGenerator", "CustomTypeGenerator"]
