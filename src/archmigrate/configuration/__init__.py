"""
Target configuration and architecture rules.

Usage:
    >>> from archmigrate.configuration import ArchitectureRules, load_configuration
    >>>
    >>> config = load_configuration("target.json")
    >>> decisions = ArchitectureRules.make_decisions(config)
    >>> decisions.architecture_level
"""

from archmigrate.configuration.loader import configuration_for_level, load_configuration
from archmigrate.configuration.models import (
    AggregateConfiguration,
    ArchitectureConfiguration,
    DomainConfiguration,
    FeaturesConfiguration,
    TemplateConfiguration,
    TriState,
    ValueObjectConfiguration,
)
from archmigrate.configuration.rules import (
    LEVEL_ORDER,
    ApiStyle,
    ArchitectureDecisions,
    ArchitectureLevel,
    ArchitectureRules,
    ComplexityLevel,
    PersistenceStrategy,
    ProjectShape,
    calculate_complexity,
    calculate_score,
)

__all__ = [
    # Models
    "TemplateConfiguration",
    "ArchitectureConfiguration",
    "DomainConfiguration",
    "AggregateConfiguration",
    "ValueObjectConfiguration",
    "FeaturesConfiguration",
    "TriState",
    # Rules
    "ArchitectureRules",
    "ArchitectureDecisions",
    "ArchitectureLevel",
    "LEVEL_ORDER",
    "ComplexityLevel",
    "ProjectShape",
    "ApiStyle",
    "PersistenceStrategy",
    "calculate_score",
    "calculate_complexity",
    # Loading
    "load_configuration",
    "configuration_for_level",
]
