"""
Architecture rules: configuration in, architecture decisions out.

The rules score the domain described by a TemplateConfiguration, classify
the score into a complexity level, and derive every architecture decision
from it. All derived flags follow the same tri-state contract: an explicit
"enabled"/"disabled" value in the configuration always wins, "auto" falls
back to a level- or complexity-derived default.

Scoring:
    score = 2 * aggregates
          + operations across all aggregates
          + value objects
          + 3 if messaging is enabled
          + 2 if authentication is not "none"

    score <= 3 -> SIMPLE, score <= 8 -> MEDIUM, otherwise COMPLEX

This is the scored classifier used for planning. Snapshots of existing
projects use a separate classifier based on project count (see
archmigrate.history.snapshot.level_from_project_count).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from archmigrate.configuration.models import TemplateConfiguration
from archmigrate.exceptions import UnrecognizedLevelError

SIMPLE_MAX_SCORE = 3
MEDIUM_MAX_SCORE = 8


class ComplexityLevel(Enum):
    """Complexity of a configured domain."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"

    @property
    def ordinal(self) -> int:
        return _COMPLEXITY_ORDER.index(self)

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ComplexityLevel):
            return NotImplemented
        return self.ordinal >= other.ordinal

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ComplexityLevel):
            return NotImplemented
        return self.ordinal < other.ordinal


_COMPLEXITY_ORDER = (ComplexityLevel.SIMPLE, ComplexityLevel.MEDIUM, ComplexityLevel.COMPLEX)


class ArchitectureLevel(Enum):
    """
    Ordinal classification of project layering.

    Levels only ever advance: MINIMAL < STANDARD < ENTERPRISE.

    Attributes:
        MINIMAL: A single project.
        STANDARD: Separate Domain, Application and Api projects.
        ENTERPRISE: Standard plus an Infrastructure project.
    """

    MINIMAL = "minimal"
    STANDARD = "standard"
    ENTERPRISE = "enterprise"

    @property
    def ordinal(self) -> int:
        """Position of this level in the fixed order."""
        return LEVEL_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ArchitectureLevel):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ArchitectureLevel):
            return NotImplemented
        return self.ordinal <= other.ordinal

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ArchitectureLevel):
            return NotImplemented
        return self.ordinal > other.ordinal

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ArchitectureLevel):
            return NotImplemented
        return self.ordinal >= other.ordinal

    @classmethod
    def parse(cls, value: str | ArchitectureLevel) -> ArchitectureLevel:
        """
        Parse a level name case-insensitively.

        Args:
            value: A level name such as "Standard", or a level.

        Returns:
            The matching ArchitectureLevel.

        Raises:
            UnrecognizedLevelError: If the name is not a known level.
        """
        if isinstance(value, ArchitectureLevel):
            return value
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise UnrecognizedLevelError(str(value)) from None


LEVEL_ORDER = (ArchitectureLevel.MINIMAL, ArchitectureLevel.STANDARD, ArchitectureLevel.ENTERPRISE)


class ProjectShape(Enum):
    """Project layout implied by an architecture level."""

    SINGLE_PROJECT = "single_project"
    THREE_LAYER = "three_layer"
    FOUR_LAYER = "four_layer"


class ApiStyle(Enum):
    MINIMAL_API = "minimal_api"
    CONTROLLERS = "controllers"
    BOTH = "both"


@dataclass(frozen=True)
class PersistenceStrategy:
    """
    Write/read storage providers for the target service.

    Attributes:
        write_provider: Provider of the write model.
        read_provider: Provider of the read model.
        separate_read_model: Whether reads use a different store than writes.
    """

    write_provider: str = "inmemory"
    read_provider: str = "inmemory"
    separate_read_model: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "write_provider": self.write_provider,
            "read_provider": self.read_provider,
            "separate_read_model": self.separate_read_model,
        }


@dataclass(frozen=True)
class ArchitectureDecisions:
    """
    Architecture derived from a TemplateConfiguration.

    Attributes:
        architecture_level: Target architecture level.
        project_structure: Project layout for the level.
        enable_ddd: Whether DDD building blocks are generated.
        enable_cqrs: Whether commands and queries are separated.
        api_style: Style of the HTTP surface.
        persistence_strategy: Write/read storage providers.
        enable_docker: Whether container files are generated.
        enable_infrastructure: Whether an Infrastructure project exists.
        complexity: Complexity level the decisions were derived from.
        score: Raw complexity score.
    """

    architecture_level: ArchitectureLevel
    project_structure: ProjectShape
    enable_ddd: bool
    enable_cqrs: bool
    api_style: ApiStyle
    persistence_strategy: PersistenceStrategy = field(default_factory=PersistenceStrategy)
    enable_docker: bool = False
    enable_infrastructure: bool = False
    complexity: ComplexityLevel = ComplexityLevel.SIMPLE
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "architecture_level": self.architecture_level.value,
            "project_structure": self.project_structure.value,
            "enable_ddd": self.enable_ddd,
            "enable_cqrs": self.enable_cqrs,
            "api_style": self.api_style.value,
            "persistence_strategy": self.persistence_strategy.to_dict(),
            "enable_docker": self.enable_docker,
            "enable_infrastructure": self.enable_infrastructure,
            "complexity": self.complexity.value,
            "score": self.score,
        }


def calculate_score(config: TemplateConfiguration) -> int:
    """
    Score the domain described by a configuration.

    Args:
        config: The target configuration.

    Returns:
        The complexity score.
    """
    aggregates = config.domain.aggregates
    score = 2 * len(aggregates)
    score += sum(len(aggregate.operations) for aggregate in aggregates)
    score += len(config.domain.value_objects)
    if config.features.messaging.enabled:
        score += 3
    if config.features.api.authentication != "none":
        score += 2
    return score


def classify_score(score: int) -> ComplexityLevel:
    if score <= SIMPLE_MAX_SCORE:
        return ComplexityLevel.SIMPLE
    if score <= MEDIUM_MAX_SCORE:
        return ComplexityLevel.MEDIUM
    return ComplexityLevel.COMPLEX


def calculate_complexity(config: TemplateConfiguration) -> ComplexityLevel:
    """Classify a configuration's complexity from its score."""
    return classify_score(calculate_score(config))


def determine_architecture_level(
    requested: str | None,
    complexity: ComplexityLevel,
) -> ArchitectureLevel:
    """
    Pick the architecture level.

    An explicitly requested level always wins; "auto" or no request maps
    SIMPLE -> MINIMAL, MEDIUM -> STANDARD, COMPLEX -> ENTERPRISE.

    Args:
        requested: Level requested in the configuration, if any.
        complexity: Computed complexity.

    Returns:
        The target architecture level.
    """
    if requested and requested != "auto":
        return ArchitectureLevel.parse(requested)
    return {
        ComplexityLevel.SIMPLE: ArchitectureLevel.MINIMAL,
        ComplexityLevel.MEDIUM: ArchitectureLevel.STANDARD,
        ComplexityLevel.COMPLEX: ArchitectureLevel.ENTERPRISE,
    }[complexity]


def determine_project_structure(level: ArchitectureLevel) -> ProjectShape:
    return {
        ArchitectureLevel.MINIMAL: ProjectShape.SINGLE_PROJECT,
        ArchitectureLevel.STANDARD: ProjectShape.THREE_LAYER,
        ArchitectureLevel.ENTERPRISE: ProjectShape.FOUR_LAYER,
    }[level]


def should_enable_ddd(config: TemplateConfiguration, complexity: ComplexityLevel) -> bool:
    return config.architecture.patterns.ddd.resolve(complexity >= ComplexityLevel.MEDIUM)


def should_enable_cqrs(config: TemplateConfiguration, complexity: ComplexityLevel) -> bool:
    busy_aggregate = any(len(a.operations) > 2 for a in config.domain.aggregates)
    default = complexity >= ComplexityLevel.MEDIUM or busy_aggregate
    return config.architecture.patterns.cqrs.resolve(default)


def determine_api_style(config: TemplateConfiguration, level: ArchitectureLevel) -> ApiStyle:
    style = config.features.api.style
    if style == "minimal":
        return ApiStyle.MINIMAL_API
    if style == "controllers":
        return ApiStyle.CONTROLLERS
    if style == "both":
        return ApiStyle.BOTH
    if level == ArchitectureLevel.MINIMAL:
        return ApiStyle.MINIMAL_API
    return ApiStyle.CONTROLLERS


def determine_persistence(config: TemplateConfiguration) -> PersistenceStrategy:
    write_provider = config.write_provider
    read_provider = config.read_provider
    return PersistenceStrategy(
        write_provider=write_provider,
        read_provider=read_provider,
        separate_read_model=read_provider != write_provider,
    )


def should_enable_docker(config: TemplateConfiguration, level: ArchitectureLevel) -> bool:
    return config.features.deployment.docker.resolve(level >= ArchitectureLevel.STANDARD)


def should_enable_infrastructure(config: TemplateConfiguration, level: ArchitectureLevel) -> bool:
    # Minimal projects never get an Infrastructure layer unless it is forced on
    return config.architecture.layers.infrastructure.resolve(level >= ArchitectureLevel.STANDARD)


class ArchitectureRules:
    """
    Derives ArchitectureDecisions from a TemplateConfiguration.

    Pure and deterministic: the same configuration always yields the same
    decisions.

    Example:
        >>> config = TemplateConfiguration.model_validate(
        ...     {"architecture": {"level": "enterprise"}}
        ... )
        >>> decisions = ArchitectureRules.make_decisions(config)
        >>> decisions.architecture_level
        <ArchitectureLevel.ENTERPRISE: 'enterprise'>
    """

    @staticmethod
    def make_decisions(config: TemplateConfiguration) -> ArchitectureDecisions:
        score = calculate_score(config)
        complexity = classify_score(score)
        level = determine_architecture_level(config.architecture.level, complexity)
        return ArchitectureDecisions(
            architecture_level=level,
            project_structure=determine_project_structure(level),
            enable_ddd=should_enable_ddd(config, complexity),
            enable_cqrs=should_enable_cqrs(config, complexity),
            api_style=determine_api_style(config, level),
            persistence_strategy=determine_persistence(config),
            enable_docker=should_enable_docker(config, level),
            enable_infrastructure=should_enable_infrastructure(config, level),
            complexity=complexity,
            score=score,
        )


__all__ = [
    "ArchitectureLevel",
    "LEVEL_ORDER",
    "ComplexityLevel",
    "ProjectShape",
    "ApiStyle",
    "PersistenceStrategy",
    "ArchitectureDecisions",
    "ArchitectureRules",
    "calculate_score",
    "classify_score",
    "calculate_complexity",
    "determine_architecture_level",
]
