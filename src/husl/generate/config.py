"""
Configuration for code generation.

Settings live in ``husl.toml`` at the project root:

    [project]
    spec = "spec.husl.md"
    output = "."

    [stack]
    language = "python"
    framework = "fastapi"
    package = "app"
    split_endpoints = false

    [stack.paths]
    models = "{package}/models/{name}.py"

    [stack.naming]
    files = "snake"

Values are consumed verbatim by the projector; the engine only looks keys up.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from husl.core.errors import ConfigError
from husl.core.naming import convert

from .regions import MarkerStyle

CONFIG_FILENAME = "husl.toml"

DEFAULT_HEADER_TEMPLATE = (
    "{comment} Generated by husl from {source}. Code outside protected regions is overwritten."
)
DEFAULT_MARKER_TEMPLATE = "{comment} {token} {name}{attrs}"


class PathTemplates(BaseModel):
    """
    Artifact path templates, relative to the output directory.

    Placeholders: ``{package}``, ``{name}`` (element name in the configured
    file naming style) and ``{Name}`` (element name as declared).
    """

    models: str = "{package}/models/{name}.py"
    enums: str = "{package}/enums/{name}.py"
    types: str = "{package}/types/{name}.py"
    operations: str = "{package}/services/{name}.py"
    endpoints: str = "{package}/api/{name}.py"
    tests: str = "tests/test_{name}.py"

    model_config = ConfigDict(frozen=True, extra="forbid")


class StackConfig(BaseModel):
    """
    Target stack settings.

    Attributes:
        language: Target registry key
        framework: Framework identifier passed through to the target
        package: Root package of generated code
        comment: Line-comment prefix for headers and markers
        header_template: Generated-file header; may use ``{timestamp}``
        marker_template: Protected-region marker line template
        region_start: Start-marker token
        region_end: End-marker token
        split_endpoints: Emit endpoints to their own artifacts
        naming: Naming conventions (``files``, ``functions``)
        options: Target-specific options
    """

    language: str = "python"
    framework: str = "fastapi"
    package: str = "app"
    comment: str = "#"
    header_template: str = DEFAULT_HEADER_TEMPLATE
    marker_template: str = DEFAULT_MARKER_TEMPLATE
    region_start: str = "HUSL:BEGIN"
    region_end: str = "HUSL:END"
    split_endpoints: bool = False
    paths: PathTemplates = Field(default_factory=PathTemplates)
    naming: dict[str, str] = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("marker_template")
    @classmethod
    def _marker_placeholders(cls, value: str) -> str:
        for placeholder in ("{token}", "{name}", "{attrs}"):
            if placeholder not in value:
                raise ValueError(f"marker_template must contain {placeholder}")
        return value

    @model_validator(mode="after")
    def _distinct_tokens(self) -> StackConfig:
        if not self.region_start.strip() or not self.region_end.strip():
            raise ValueError("region_start and region_end must not be empty")
        if self.region_start in self.region_end or self.region_end in self.region_start:
            raise ValueError("region_start and region_end must not contain one another")
        return self

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    def markers(self) -> MarkerStyle:
        return MarkerStyle(
            start=self.region_start,
            end=self.region_end,
            comment=self.comment,
            template=self.marker_template,
        )

    def name_style(self, key: str, default: str = "snake") -> str:
        return self.naming.get(key, default)

    def artifact_path(self, kind: str, name: str) -> str:
        """
        Render the path template for an artifact kind.

        Raises:
            ConfigError: If the kind or naming style is unknown, or the
                template uses an unknown placeholder
        """
        template = getattr(self.paths, kind, None)
        if template is None:
            raise ConfigError(f"No path template for artifact kind '{kind}'")
        try:
            file_name = convert(name, self.name_style("files"))
            return template.format(package=self.package, name=file_name, Name=name)
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigError(f"Invalid path template for '{kind}': {template} ({e})") from e

    @property
    def header_line_count(self) -> int:
        """Number of leading lines every artifact header occupies."""
        return self.header_template.count("\n") + 1


class ProjectSettings(BaseModel):
    """The ``[project]`` table."""

    spec: str = "spec.husl.md"
    output: str = "."

    model_config = ConfigDict(frozen=True, extra="forbid")


class HuslConfig(BaseModel):
    """Complete ``husl.toml`` contents."""

    project: ProjectSettings = Field(default_factory=ProjectSettings)
    stack: StackConfig = Field(default_factory=StackConfig)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def spec_path(self, root: Path) -> Path:
        return (root / self.project.spec).resolve()

    def output_path(self, root: Path) -> Path:
        return (root / self.project.output).resolve()


def load_config(path: Path) -> HuslConfig:
    """
    Load ``husl.toml``.

    A missing file yields the defaults.

    Args:
        path: Path to husl.toml

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If the file is unreadable, not valid TOML, or has
            unknown or ill-typed keys
    """
    if not path.exists():
        return HuslConfig()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path} is not valid TOML: {e}") from e

    try:
        return HuslConfig.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration in {path}: {details}") from e


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_HEADER_TEMPLATE",
    "DEFAULT_MARKER_TEMPLATE",
    "PathTemplates",
    "StackConfig",
    "ProjectSettings",
    "HuslConfig",
    "load_config",
]
