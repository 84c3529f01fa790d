"""
Loading target configurations.

Configurations come either from a JSON file (``migrate --config``) or from
a bare level request (``migrate --level``).
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from archmigrate.configuration.models import ArchitectureConfiguration, TemplateConfiguration
from archmigrate.configuration.rules import ArchitectureLevel
from archmigrate.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def load_configuration(path: Path | str) -> TemplateConfiguration:
    """
    Load and validate a TemplateConfiguration from a JSON file.

    Args:
        path: Path of the configuration file.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid
            configuration document.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file {config_path}: {e}", config_path
        ) from e

    try:
        config = TemplateConfiguration.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path}: {e.error_count()} error(s)\n{e}",
            config_path,
        ) from e

    logger.debug("Loaded configuration from %s", config_path)
    return config


def configuration_for_level(level: str | ArchitectureLevel) -> TemplateConfiguration:
    """
    Build a configuration that only requests an architecture level.

    Every other decision is left on "auto" and the domain is empty.

    Args:
        level: The requested level name.

    Returns:
        A TemplateConfiguration requesting that level.

    Raises:
        UnrecognizedLevelError: If the level name is unknown.
    """
    parsed = ArchitectureLevel.parse(level)
    return TemplateConfiguration(
        architecture=ArchitectureConfiguration(level=parsed.value),
    )


__all__ = [
    "load_configuration",
    "configuration_for_level",
]
