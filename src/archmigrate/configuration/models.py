"""
Target configuration models.

A TemplateConfiguration is the declarative description of the service a
migration should arrive at: the requested architecture level, the domain
model, and the feature switches. It is immutable once loaded.

Files use camelCase keys; snake_case field names are accepted as well.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

LEVEL_REQUESTS = ("minimal", "standard", "enterprise", "auto")


class TriState(Enum):
    """
    A configuration switch that can be forced on, forced off, or left to
    a computed default.

    Attributes:
        ENABLED: Always on, regardless of computed complexity.
        DISABLED: Always off, regardless of computed complexity.
        AUTO: Defer to the level- or complexity-derived default.
    """

    ENABLED = "enabled"
    DISABLED = "disabled"
    AUTO = "auto"

    def resolve(self, default: bool) -> bool:
        """
        Resolve the switch against a computed default.

        Args:
            default: Value to use when the switch is AUTO.

        Returns:
            True or False.
        """
        if self is TriState.ENABLED:
            return True
        if self is TriState.DISABLED:
            return False
        return default

    @classmethod
    def coerce(cls, value: Any) -> Any:
        """
        Map loose file values onto tri-state values.

        JSON booleans map to enabled/disabled and null maps to auto; strings
        are matched case-insensitively. Anything else is passed through for
        pydantic to reject.
        """
        if value is None:
            return cls.AUTO
        if isinstance(value, bool):
            return cls.ENABLED if value else cls.DISABLED
        if isinstance(value, str):
            return value.strip().lower()
        return value


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PropertyConfiguration(_ConfigModel):
    name: str
    type: str = "string"
    is_required: bool = True


class AggregateConfiguration(_ConfigModel):
    """An aggregate root and the operations it exposes."""

    name: str
    properties: tuple[PropertyConfiguration, ...] = ()
    operations: tuple[str, ...] = ()


class ValueObjectConfiguration(_ConfigModel):
    name: str
    properties: tuple[PropertyConfiguration, ...] = ()


class DomainConfiguration(_ConfigModel):
    aggregates: tuple[AggregateConfiguration, ...] = ()
    value_objects: tuple[ValueObjectConfiguration, ...] = ()


class PatternsConfiguration(_ConfigModel):
    ddd: TriState = TriState.AUTO
    cqrs: TriState = TriState.AUTO

    @field_validator("ddd", "cqrs", mode="before")
    @classmethod
    def coerce_tristate(cls, value: Any) -> Any:
        return TriState.coerce(value)


class LayersConfiguration(_ConfigModel):
    infrastructure: TriState = TriState.AUTO

    @field_validator("infrastructure", mode="before")
    @classmethod
    def coerce_tristate(cls, value: Any) -> Any:
        return TriState.coerce(value)


class ArchitectureConfiguration(_ConfigModel):
    """Requested architecture level and pattern overrides."""

    level: str | None = None
    patterns: PatternsConfiguration = Field(default_factory=PatternsConfiguration)
    layers: LayersConfiguration = Field(default_factory=LayersConfiguration)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in LEVEL_REQUESTS:
                raise ValueError(f"level must be one of {', '.join(LEVEL_REQUESTS)}")
        return value


class ApiFeature(_ConfigModel):
    style: Literal["minimal", "controllers", "both", "auto"] = "auto"
    authentication: str = "none"


class MessagingFeature(_ConfigModel):
    enabled: bool = False
    provider: str = "inmemory"


class ExternalServicesFeature(_ConfigModel):
    enabled: bool = False


class DeploymentFeature(_ConfigModel):
    docker: TriState = TriState.AUTO

    @field_validator("docker", mode="before")
    @classmethod
    def coerce_tristate(cls, value: Any) -> Any:
        return TriState.coerce(value)


class ProviderConfiguration(_ConfigModel):
    provider: str | None = None


class SwitchConfiguration(_ConfigModel):
    enabled: bool = False


class DatabaseFeature(_ConfigModel):
    write_model: ProviderConfiguration | None = None
    read_model: ProviderConfiguration | None = None
    cache: SwitchConfiguration = Field(default_factory=SwitchConfiguration)
    event_store: SwitchConfiguration = Field(default_factory=SwitchConfiguration)


class FeaturesConfiguration(_ConfigModel):
    api: ApiFeature = Field(default_factory=ApiFeature)
    messaging: MessagingFeature = Field(default_factory=MessagingFeature)
    external_services: ExternalServicesFeature = Field(default_factory=ExternalServicesFeature)
    deployment: DeploymentFeature = Field(default_factory=DeploymentFeature)
    database: DatabaseFeature = Field(default_factory=DatabaseFeature)
    persistence: ProviderConfiguration = Field(default_factory=ProviderConfiguration)


class TemplateConfiguration(_ConfigModel):
    """
    Declarative description of a target service architecture.

    Attributes:
        microservice_name: Service name (informational; the migrated
            project's directory name wins during migration).
        namespace: Root namespace of the generated code.
        architecture: Requested level and pattern overrides.
        domain: Aggregates and value objects.
        features: Feature switches that influence the derived decisions.

    Example:
        >>> config = TemplateConfiguration.model_validate(
        ...     {"architecture": {"level": "standard"}}
        ... )
        >>> config.architecture.level
        'standard'
    """

    microservice_name: str = ""
    namespace: str = ""
    architecture: ArchitectureConfiguration = Field(default_factory=ArchitectureConfiguration)
    domain: DomainConfiguration = Field(default_factory=DomainConfiguration)
    features: FeaturesConfiguration = Field(default_factory=FeaturesConfiguration)

    @property
    def write_provider(self) -> str:
        """Provider of the write model database."""
        write_model = self.features.database.write_model
        if write_model is not None and write_model.provider:
            return write_model.provider
        if self.features.persistence.provider:
            return self.features.persistence.provider
        return "inmemory"

    @property
    def read_provider(self) -> str:
        """Provider of the read model; "same" means the write provider."""
        read_model = self.features.database.read_model
        if read_model is None or not read_model.provider or read_model.provider == "same":
            return self.write_provider
        return read_model.provider


__all__ = [
    "TriState",
    "TemplateConfiguration",
    "ArchitectureConfiguration",
    "PatternsConfiguration",
    "LayersConfiguration",
    "DomainConfiguration",
    "AggregateConfiguration",
    "ValueObjectConfiguration",
    "PropertyConfiguration",
    "FeaturesConfiguration",
    "ApiFeature",
    "MessagingFeature",
    "ExternalServicesFeature",
    "DeploymentFeature",
    "DatabaseFeature",
    "ProviderConfiguration",
    "SwitchConfiguration",
]
