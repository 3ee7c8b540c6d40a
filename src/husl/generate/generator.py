"""
Base generator classes for projection.

Generators turn one kind of document element into artifacts:
- Entities become model artifacts
- Enums and custom types become type artifacts
- Operations become service/endpoint artifacts with rules inlined
- Operation tests become test artifacts

Each generator returns its artifacts in memory. Nothing here touches the
filesystem; the planner and runner decide what reaches disk.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from husl.core import ir

from .config import StackConfig
from .regions import MarkerStyle, contract_fingerprint


@dataclass(frozen=True)
class RegionPlaceholder:
    """
    A protected region the projector emits into an artifact.

    Attributes:
        name: Region identifier (the Custom Implementation name)
        hook: Hook location
        contract: Declared contract text
        default_body: Body emitted when no prior content is captured
    """

    name: str
    hook: ir.HookType
    contract: str
    default_body: str

    @property
    def fingerprint(self) -> str:
        return contract_fingerprint(self.hook, self.contract)


@dataclass(frozen=True)
class Artifact:
    """
    One generated output file.

    Attributes:
        path: Path relative to the output directory, using ``/`` separators
        kind: Artifact kind (models, enums, types, operations, endpoints, tests)
        element: Name of the document element the artifact was generated from
        body: Generated text below the header
        placeholders: Regions in the order they appear in ``body``
        header: Rendered header lines, including the trailing newline
    """

    path: str
    kind: str
    element: str
    body: str
    placeholders: tuple[RegionPlaceholder, ...] = ()
    header: str = ""

    @property
    def content(self) -> str:
        return self.header + self.body

    def placeholder(self, name: str) -> RegionPlaceholder | None:
        return next((p for p in self.placeholders if p.name == name), None)


@dataclass(frozen=True)
class Scope:
    """Names of elements selected for projection; ``None`` fields mean everything."""

    entities: frozenset[str] | None = None
    enums: frozenset[str] | None = None
    custom_types: frozenset[str] | None = None
    operations: frozenset[str] | None = None

    @classmethod
    def everything(cls) -> Scope:
        return cls()

    def includes(self, kind: str, name: str) -> bool:
        selected = getattr(self, kind)
        return selected is None or name in selected

    @property
    def is_partial(self) -> bool:
        return any(
            getattr(self, kind) is not None for kind in ("entities", "enums", "custom_types", "operations")
        )


@dataclass
class GeneratorResult:
    """
    Result from a generator execution.

    Attributes:
        artifacts: Artifacts in generation order
        errors: Non-fatal errors encountered
        warnings: Warnings to display to the user
    """

    artifacts: list[Artifact] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether generation succeeded (no errors)."""
        return len(self.errors) == 0

    def add_artifact(self, artifact: Artifact) -> None:
        self.artifacts.append(artifact)

    def add_error(self, error: str) -> None:
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def merge(self, other: GeneratorResult) -> None:
        """Merge another result into this one."""
        self.artifacts.extend(other.artifacts)
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


class ArtifactBuilder:
    """
    Accumulates artifact text and the regions placed in it.

    Example:
        builder = ArtifactBuilder(markers)
        builder.line("class Widget(BaseModel):")
        builder.region(placeholder, indent="    ")
        body, placeholders = builder.build()
    """

    def __init__(self, markers: MarkerStyle):
        self.markers = markers
        self._chunks: list[str] = []
        self._placeholders: list[RegionPlaceholder] = []

    def line(self, text: str = "") -> None:
        self._chunks.append(f"{text}\n" if text else "\n")

    def lines(self, texts: list[str]) -> None:
        for text in texts:
            self.line(text)

    def block(self, text: str) -> None:
        """Append pre-formatted text, adding a trailing newline if missing."""
        self._chunks.append(text if text.endswith("\n") else f"{text}\n")

    def region(self, placeholder: RegionPlaceholder, indent: str = "") -> None:
        self._placeholders.append(placeholder)
        self._chunks.append(
            self.markers.render(
                placeholder.name,
                placeholder.hook,
                placeholder.contract,
                placeholder.default_body,
                indent=indent,
            )
        )

    def build(self) -> tuple[str, tuple[RegionPlaceholder, ...]]:
        body = "".join(self._chunks)
        # Exactly one trailing newline
        return body.rstrip("\n") + "\n", tuple(self._placeholders)


class Generator(ABC):
    """
    Base class for all generators.

    A generator creates artifacts for one element kind of a SpecDocument.

    Example:
        class EnumGenerator(Generator):
            def generate(self) -> GeneratorResult:
                result = GeneratorResult()
                for enum in self.document.enums:
                    if self.scope.includes("enums", enum.name):
                        result.add_artifact(self.generate_enum(enum))
                return result
    """

    def __init__(self, document: ir.SpecDocument, config: StackConfig, scope: Scope | None = None):
        """
        Initialize generator.

        Args:
            document: Validated specification document
            config: Stack configuration
            scope: Selected elements (everything when omitted)
        """
        self.document = document
        self.config = config
        self.scope = scope or Scope.everything()
        self.markers = config.markers()

    @abstractmethod
    def generate(self) -> GeneratorResult:
        """
        Generate artifacts.

        Returns:
            GeneratorResult with artifacts in a deterministic order
        """
        pass

    def builder(self) -> ArtifactBuilder:
        return ArtifactBuilder(self.markers)

    def make_artifact(self, kind: str, element: str, builder: ArtifactBuilder, name: str | None = None) -> Artifact:
        body, placeholders = builder.build()
        return Artifact(
            path=self.config.artifact_path(kind, name or element),
            kind=kind,
            element=element,
            body=body,
            placeholders=placeholders,
        )


class CompositeGenerator(Generator):
    """Generator that runs multiple sub-generators in order and merges results."""

    @abstractmethod
    def get_generators(self) -> list[Generator]:
        pass

    def generate(self) -> GeneratorResult:
        combined = GeneratorResult()
        for generator in self.get_generators():
            combined.merge(generator.generate())
        return combined


__all__ = [
    "RegionPlaceholder",
    "Artifact",
    "Scope",
    "GeneratorResult",
    "ArtifactBuilder",
    "Generator",
    "CompositeGenerator",
]
