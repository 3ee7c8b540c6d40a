"""
Base target classes for projection.

A target turns a SpecDocument into artifacts for one language. Targets are
looked up by the ``language`` key of the stack configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from husl.core.errors import ConfigError
from husl.generate.generator import CompositeGenerator, GeneratorResult

if TYPE_CHECKING:
    from husl.core.ir import SpecDocument
    from husl.generate.config import StackConfig
    from husl.generate.generator import Scope


class Target(CompositeGenerator, ABC):
    """
    Base class for language targets.

    Targets generate, in order:
    - Entity models
    - Enums
    - Custom types
    - Operation services (with inlined rules) and endpoints
    - Operation tests
    """

    # Frameworks this target knows how to emit
    frameworks: tuple[str, ...] = ()

    def __init__(self, document: SpecDocument, config: StackConfig, scope: Scope | None = None):
        super().__init__(document, config, scope)
        if self.frameworks and config.framework not in self.frameworks:
            raise ConfigError(
                f"Target '{config.language}' does not support framework '{config.framework}' "
                f"(supported: {', '.join(self.frameworks)})"
            )

    def generate(self) -> GeneratorResult:
        result = super().generate()
        seen: dict[str, str] = {}
        for artifact in result.artifacts:
            label = f"{artifact.kind} {artifact.element}"
            owner = seen.setdefault(artifact.path, label)
            if owner != label:
                raise ConfigError(
                    f"{owner} and {label} both map to {artifact.path}; "
                    "adjust [stack.paths] or [stack.naming]"
                )
        return result

    @abstractmethod
    def get_generators(self) -> list:
        pass


class TargetRegistry:
    """
    Registry for language targets.

    Maps the ``language`` configuration value to a target implementation.
    """

    _targets: dict[str, type[Target]] = {}

    @classmethod
    def register(cls, language: str, target: type[Target]) -> None:
        """Register a target."""
        cls._targets[language] = target

    @classmethod
    def get(cls, language: str) -> type[Target] | None:
        """Get a target by language name."""
        return cls._targets.get(language)

    @classmethod
    def require(cls, language: str) -> type[Target]:
        """
        Get a target by language name.

        Raises:
            ConfigError: If no target is registered for the language
        """
        target = cls.get(language)
        if target is None:
            available = ", ".join(cls.list_targets()) or "none"
            raise ConfigError(f"No target registered for language '{language}' (available: {available})")
        return target

    @classmethod
    def list_targets(cls) -> list[str]:
        """List registered languages."""
        return list(cls._targets.keys())


__all__ = ["Target", "TargetRegistry"]
