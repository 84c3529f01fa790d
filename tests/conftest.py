"""
Shared pytest fixtures for the archmigrate tests.

This module provides:
- Project tree fixtures (minimal_project, standard_project, enterprise_project)
- Target configuration fixtures (standard_config, enterprise_config)
- Collaborator fixtures (code_mover, template_generator, analyzer)
- A MockTracer for span assertions
"""

from __future__ import annotations

from pathlib import Path

import pytest

from archmigrate.configuration import TemplateConfiguration, configuration_for_level
from archmigrate.history import SnapshotScanner
from archmigrate.migration import (
    FileSystemCodeMover,
    FileSystemProjectAnalyzer,
    FileSystemTemplateGenerator,
)
from archmigrate.observability import MockTracer
from tests.fixtures import build_layered_project, build_minimal_project

# ============================================================================
# Project trees
# ============================================================================


@pytest.fixture
def minimal_project(tmp_path: Path) -> Path:
    """A single-project Orders service."""
    return build_minimal_project(tmp_path)


@pytest.fixture
def standard_project(tmp_path: Path) -> Path:
    """An Orders service with Domain, Application and Api projects."""
    return build_layered_project(tmp_path)


@pytest.fixture
def enterprise_project(tmp_path: Path) -> Path:
    """An Orders service with all four layer projects."""
    return build_layered_project(
        tmp_path, layers=("Domain", "Application", "Infrastructure", "Api")
    )


# ============================================================================
# Target configurations
# ============================================================================


@pytest.fixture
def standard_config() -> TemplateConfiguration:
    """Standard target without an Infrastructure layer."""
    return TemplateConfiguration.model_validate(
        {"architecture": {"level": "standard", "layers": {"infrastructure": "disabled"}}}
    )


@pytest.fixture
def enterprise_config() -> TemplateConfiguration:
    return configuration_for_level("enterprise")


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def scanner() -> SnapshotScanner:
    return SnapshotScanner()


@pytest.fixture
def analyzer(scanner: SnapshotScanner) -> FileSystemProjectAnalyzer:
    return FileSystemProjectAnalyzer(scanner)


@pytest.fixture
def code_mover() -> FileSystemCodeMover:
    return FileSystemCodeMover()


@pytest.fixture
def template_generator() -> FileSystemTemplateGenerator:
    return FileSystemTemplateGenerator()


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Tracer that records span names and attributes."""
    return MockTracer()
