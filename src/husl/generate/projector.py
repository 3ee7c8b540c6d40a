"""
Target projector.

Turns a validated SpecDocument into in-memory artifacts through the target
registered for the stack's language, then stamps each artifact with the
rendered header. Output depends only on the document, the configuration and
the header timestamp, so two runs with the same inputs are byte-identical
below the header.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path

from husl.core import ir
from husl.core.errors import ConfigError, ScopeError

from .config import StackConfig
from .generator import Artifact, Scope
from .targets import TargetRegistry

logger = logging.getLogger(__name__)


@dataclass
class Projection:
    """Artifacts keyed by path, in generation order."""

    artifacts: dict[str, Artifact] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.artifacts.values())

    def __len__(self) -> int:
        return len(self.artifacts)

    def __contains__(self, path: object) -> bool:
        return path in self.artifacts

    def get(self, path: str) -> Artifact | None:
        return self.artifacts.get(path)

    @property
    def paths(self) -> list[str]:
        return list(self.artifacts)

    def contents(self) -> dict[str, str]:
        return {path: artifact.content for path, artifact in self.artifacts.items()}


# =============================================================================
# Headers
# =============================================================================


def render_header(config: StackConfig, source: str, path: str, timestamp: str | None = None) -> str:
    """
    Render the generated-file header.

    Available placeholders: ``{comment}``, ``{source}`` (file name of the
    document), ``{path}`` (artifact path) and ``{timestamp}`` (empty when
    no timestamp is given).

    Raises:
        ConfigError: If the template uses an unknown placeholder
    """
    try:
        header = config.header_template.format(
            comment=config.comment,
            source=Path(source).name,
            path=path,
            timestamp=timestamp or "",
        )
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigError(f"Invalid header_template: {config.header_template} ({e})") from e
    lines = [line.rstrip() for line in header.split("\n")]
    return "\n".join(lines) + "\n"


def strip_header(text: str, config: StackConfig) -> str:
    """Drop the header lines from artifact text."""
    lines = text.splitlines(keepends=True)
    return "".join(lines[config.header_line_count :])


# =============================================================================
# Scope
# =============================================================================


def _type_dependencies(refs: Iterable[ir.TypeRef]) -> set[str]:
    return {ref.name for ref in refs if not ref.is_builtin}


def resolve_scope(document: ir.SpecDocument, names: Iterable[str]) -> Scope:
    """
    Compute the dependency closure of a selective-regeneration scope.

    Operations pull in the entities, enums and custom types they reference
    through inputs, outputs and test bindings. Rules are inlined into
    operation artifacts and need no artifact of their own. Entities pull in
    the entities, enums and custom types their fields reference, transitively.

    Raises:
        ScopeError: If a name is not a declared operation, entity, enum or
            custom type
    """
    requested = list(dict.fromkeys(names))
    operations: set[str] = set()
    pending: list[str] = []

    unknown = []
    for name in requested:
        if document.get_operation(name) is not None:
            operations.add(name)
        elif name in document.schema_names():
            pending.append(name)
        else:
            unknown.append(name)
    if unknown:
        raise ScopeError(f"Unknown scope name(s): {', '.join(unknown)}")

    for name in sorted(operations):
        operation = document.get_operation(name)
        refs = list(operation.type_refs())
        pending.extend(_type_dependencies(refs))
        for test in operation.tests:
            pending.extend(b.type_name for b in test.given if b.type_name)

    entities: set[str] = set()
    enums: set[str] = set()
    custom_types: set[str] = set()
    while pending:
        name = pending.pop()
        if name in entities or name in enums or name in custom_types:
            continue
        entity = document.get_entity(name)
        if entity is not None:
            entities.add(name)
            pending.extend(_type_dependencies((f.type for f in entity.fields)))
            pending.extend(f.references[0] for f in entity.fields if f.references)
        elif document.get_enum(name) is not None:
            enums.add(name)
        elif document.get_custom_type(name) is not None:
            custom_types.add(name)

    logger.debug(
        f"Scope {requested} resolves to {len(operations)} operation(s), {len(entities)} entit(ies), "
        f"{len(enums)} enum(s), {len(custom_types)} custom type(s)"
    )
    return Scope(
        entities=frozenset(entities),
        enums=frozenset(enums),
        custom_types=frozenset(custom_types),
        operations=frozenset(operations),
    )


# =============================================================================
# Projection
# =============================================================================


def project(
    document: ir.SpecDocument,
    config: StackConfig,
    scope: Iterable[str] | Scope | None = None,
    timestamp: str | None = None,
) -> Projection:
    """
    Project a validated document into artifacts.

    Args:
        document: Validated specification document
        config: Stack configuration
        scope: Element names to regenerate (closed over dependencies), a
            pre-computed Scope, or None for everything
        timestamp: Value for ``{timestamp}`` in the header template

    Returns:
        Projection with artifacts in deterministic order

    Raises:
        ConfigError: If no target is registered for the language, or path
            templates make two artifacts collide
        ScopeError: If the scope names unknown elements
    """
    if scope is None:
        selected = Scope.everything()
    elif isinstance(scope, Scope):
        selected = scope
    else:
        selected = resolve_scope(document, scope)

    target_class = TargetRegistry.require(config.language)
    result = target_class(document, config, selected).generate()
    if result.errors:
        raise ConfigError("; ".join(result.errors))

    projection = Projection(warnings=list(result.warnings))
    for artifact in result.artifacts:
        header = render_header(config, document.source, artifact.path, timestamp)
        projection.artifacts[artifact.path] = replace(artifact, header=header)

    logger.debug(f"Projected {len(projection)} artifact(s) for language '{config.language}'")
    return projection


__all__ = [
    "Projection",
    "render_header",
    "strip_header",
    "resolve_scope",
    "project",
]
