"""
Operation generation for the Python target.

Each operation becomes a service module holding:
- The declared error table and an exception class
- A request body model when the operation takes body parameters
- Inline rule functions for every rule the operation enforces
- The service function with its protected regions
- A FastAPI router with the endpoint (unless endpoints are split out)
"""

from __future__ import annotations

from husl.core import ir
from husl.core.naming import upper_snake_case
from husl.generate.generator import Artifact, ArtifactBuilder, Generator, GeneratorResult

from .models import field_line, region
from .rules import generate_rule_function, rule_call
from .utils import ImportSet, bulleted, docstring, function_name, module_path, python_type, safe_identifier

INDENT = "    "


class OperationGenerator(Generator):
    """Generates service (and endpoint) artifacts for operations."""

    def generate(self) -> GeneratorResult:
        result = GeneratorResult()
        for operation in self.document.operations:
            if not self.scope.includes("operations", operation.name):
                continue
            result.add_artifact(self.generate_service(operation))
            if self.config.split_endpoints and self.has_endpoint(operation):
                result.add_artifact(self.generate_endpoint_module(operation))
        return result

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    @staticmethod
    def has_endpoint(operation: ir.OperationSpec) -> bool:
        return bool(operation.method and operation.path)

    def service_name(self, operation: ir.OperationSpec) -> str:
        return function_name(self.config, operation.name)

    @staticmethod
    def error_class(operation: ir.OperationSpec) -> str:
        return f"{operation.name}Error"

    @staticmethod
    def errors_table(operation: ir.OperationSpec) -> str:
        return f"{upper_snake_case(operation.name)}_ERRORS"

    @staticmethod
    def body_model(operation: ir.OperationSpec) -> str:
        return f"{operation.name}Body"

    # -------------------------------------------------------------------------
    # Service module
    # -------------------------------------------------------------------------

    def generate_service(self, operation: ir.OperationSpec) -> Artifact:
        imports = ImportSet()
        hooks = {hook: [c for c in operation.custom_implementations if c.hook == hook] for hook in ir.HookType}
        rules = self.document.rules_for(operation)

        sections: list[list[str]] = []
        if operation.errors:
            sections.append(self.error_lines(operation))
        if operation.inputs.body:
            sections.append(self.body_model_lines(operation, imports))
        if rules:
            imports.add("typing", "Any")
        signature = self.service_signature(operation, imports)
        endpoint: list[str] = []
        if self.has_endpoint(operation) and not self.config.split_endpoints:
            imports.add("fastapi", "APIRouter", "third_party")
            endpoint = self.endpoint_lines(operation, imports)

        builder = self.builder()
        details = [operation.description] if operation.description else []
        if self.has_endpoint(operation):
            if details:
                details.append("")
            details.append(f"{operation.method} {operation.path}")
        builder.lines(docstring(f"{operation.name} operation.", details))
        builder.line()
        builder.line("from __future__ import annotations")
        rendered = imports.render()
        if rendered:
            builder.line()
            builder.lines(rendered)
        if endpoint:
            builder.line()
            builder.line("router = APIRouter()")

        for section in sections:
            builder.line()
            builder.line()
            builder.lines(section)

        for rule in rules:
            builder.line()
            builder.line()
            generate_rule_function(rule, builder, self.config.comment)

        builder.line()
        builder.line()
        self.service_function(operation, signature, rules, hooks, builder)

        if endpoint:
            builder.line()
            builder.line()
            builder.lines(endpoint)

        for custom in hooks[ir.HookType.EXTEND]:
            builder.line()
            builder.line()
            builder.region(region(custom, "", self.config.comment))

        return self.make_artifact("operations", operation.name, builder)

    def error_lines(self, operation: ir.OperationSpec) -> list[str]:
        table = self.errors_table(operation)
        lines = [f"{table}: dict[str, tuple[int, str]] = {{"]
        for error in operation.errors:
            entry = f"    {error.code!r}: ({error.status}, {error.message!r}),"
            if error.condition:
                entry += f"  # {error.condition}"
            lines.append(entry)
        lines.append("}")
        lines.append("")
        lines.append("")
        lines.append(f"class {self.error_class(operation)}(Exception):")
        lines.extend(docstring(f"A declared {operation.name} error case.", indent=INDENT))
        lines.append("")
        lines.append(f"{INDENT}def __init__(self, code: str, message: str | None = None):")
        lines.append(f"{INDENT}{INDENT}self.code = code")
        lines.append(f"{INDENT}{INDENT}self.status, template = {table}[code]")
        lines.append(f"{INDENT}{INDENT}self.message = message or template")
        lines.append(f"{INDENT}{INDENT}super().__init__(self.message)")
        return lines

    def body_model_lines(self, operation: ir.OperationSpec, imports: ImportSet) -> list[str]:
        imports.add("pydantic", "BaseModel", "third_party")
        lines = [f"class {self.body_model(operation)}(BaseModel):"]
        lines.extend(docstring(f"Request body for {operation.name}.", indent=INDENT))
        lines.append("")
        for field in operation.inputs.body:
            lines.append(INDENT + field_line(field, self.document, self.config, imports))
        return lines

    def parameters(self, operation: ir.OperationSpec, imports: ImportSet) -> list[tuple[ir.ParameterLocation, str, str, bool]]:
        """``(location, name, annotation, required)`` for every input, in declaration order."""
        params = []
        for location, field in operation.inputs.by_location():
            annotation = python_type(field.type, self.document, self.config, imports)
            required = location == ir.ParameterLocation.PATH or field.is_required
            params.append((location, safe_identifier(field.name), annotation, required))
        return params

    def service_signature(self, operation: ir.OperationSpec, imports: ImportSet) -> str:
        params = []
        for _, name, annotation, required in self.parameters(operation, imports):
            params.append(f"{name}: {annotation}" if required else f"{name}: {annotation} | None = None")
        returns = self.return_type(operation, imports)
        args = ", ".join(["*", *params]) if params else ""
        return f"def {self.service_name(operation)}({args}) -> {returns}:"

    def return_type(self, operation: ir.OperationSpec, imports: ImportSet) -> str:
        shape = next((s for s in operation.success if s.type is not None), None)
        if shape is None:
            imports.add("typing", "Any")
            return "Any"
        return python_type(shape.type, self.document, self.config, imports)

    def service_function(
        self,
        operation: ir.OperationSpec,
        signature: str,
        rules: list[ir.RuleSpec],
        hooks: dict[ir.HookType, list[ir.CustomImplementationSpec]],
        builder: ArtifactBuilder,
    ) -> None:
        """Emit the service function: rules, regions, and default logic in hook order."""
        comment = self.config.comment
        details: list[str] = []
        details.extend(bulleted("Preconditions", operation.preconditions))
        details.extend(bulleted("Effects", operation.effects))
        details.extend(bulleted("Errors", [f"{e.code} ({e.status})" for e in operation.errors]))
        details.extend(bulleted("SLA", [f"{key}: {value}" for key, value in operation.sla.items()]))
        concerns = [
            c.name for c in self.document.concerns if ir.WILDCARD in c.applies_to or operation.name in c.applies_to
        ]
        details.extend(bulleted("Concerns", concerns))

        builder.line(signature)
        builder.lines(docstring(f"{operation.name} service method.", details, indent=INDENT))
        builder.line(f"{INDENT}result = None")
        for custom in hooks[ir.HookType.BEFORE]:
            builder.region(region(custom, INDENT, comment), indent=INDENT)
        arguments = [name for _, name, _, _ in self.parameters(operation, ImportSet())]
        for rule in rules:
            builder.line(INDENT + rule_call(rule, arguments))
        if hooks[ir.HookType.REPLACE]:
            for custom in hooks[ir.HookType.REPLACE]:
                builder.region(region(custom, INDENT, comment), indent=INDENT)
        else:
            for effect in operation.effects:
                builder.line(f"{INDENT}# Effect: {effect}")
        for custom in hooks[ir.HookType.AFTER]:
            builder.region(region(custom, INDENT, comment), indent=INDENT)
        builder.line(f"{INDENT}return result")

    # -------------------------------------------------------------------------
    # Endpoint
    # -------------------------------------------------------------------------

    def endpoint_lines(self, operation: ir.OperationSpec, imports: ImportSet) -> list[str]:
        """FastAPI route function delegating to the service function."""
        required: list[str] = []
        optional: list[str] = []
        call: list[str] = []
        for location, name, annotation, is_required in self.parameters(operation, imports):
            if location == ir.ParameterLocation.BODY:
                continue
            if location == ir.ParameterLocation.HEADER:
                imports.add("fastapi", "Header", "third_party")
                if is_required:
                    required.append(f"{name}: {annotation} = Header(...)")
                else:
                    optional.append(f"{name}: {annotation} | None = Header(None)")
            elif is_required:
                required.append(f"{name}: {annotation}")
            else:
                optional.append(f"{name}: {annotation} | None = None")
            call.append(f"{name}={name}")
        if operation.inputs.body:
            required.append(f"body: {self.body_model(operation)}")
            call.append("**body.model_dump()")

        returns = self.return_type(operation, imports)
        method = operation.method.lower()
        name = self.service_name(operation)
        lines = [
            f"@router.{method}({operation.path!r}, status_code={operation.primary_status})",
            f"def {name}_endpoint({', '.join(required + optional)}) -> {returns}:",
        ]
        lines.extend(docstring(f"{operation.method} {operation.path}", indent=INDENT))
        invoke = f"{name}({', '.join(call)})"
        if operation.errors:
            imports.add("fastapi", "HTTPException", "third_party")
            lines.extend(
                [
                    f"{INDENT}try:",
                    f"{INDENT}{INDENT}return {invoke}",
                    f"{INDENT}except {self.error_class(operation)} as e:",
                    f"{INDENT}{INDENT}raise HTTPException(",
                    f'{INDENT}{INDENT}{INDENT}status_code=e.status, detail={{"code": e.code, "message": e.message}}',
                    f"{INDENT}{INDENT}) from e",
                ]
            )
        else:
            lines.append(f"{INDENT}return {invoke}")
        return lines

    def generate_endpoint_module(self, operation: ir.OperationSpec) -> Artifact:
        """Endpoint in its own artifact, importing the service module."""
        imports = ImportSet()
        imports.add("fastapi", "APIRouter", "third_party")
        lines = self.endpoint_lines(operation, imports)
        service_module = module_path(self.config, "operations", operation.name)
        imports.add(service_module, self.service_name(operation), "local")
        if operation.errors:
            imports.add(service_module, self.error_class(operation), "local")
        if operation.inputs.body:
            imports.add(service_module, self.body_model(operation), "local")

        builder = self.builder()
        builder.lines(docstring(f"{operation.name} endpoint."))
        builder.line()
        builder.line("from __future__ import annotations")
        builder.line()
        builder.lines(imports.render())
        builder.line()
        builder.line("router = APIRouter()")
        builder.line()
        builder.line()
        builder.lines(lines)
        return self.make_artifact("endpoints", operation.name, builder)


__all__ = ["OperationGenerator"]
