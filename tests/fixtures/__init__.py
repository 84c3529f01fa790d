"""
Shared test fixtures for archmigrate.

This module provides reusable builders for project trees on disk:
- build_minimal_project: a single-project service
- build_layered_project: a service with one project per layer
- write_git_head: a .git directory with a resolvable HEAD

Usage:
    from tests.fixtures import build_minimal_project, SERVICE_NAME
"""

from tests.fixtures.projects import (
    CREATE_ORDER_COMMAND,
    GET_ORDER_QUERY,
    ORDER_AGGREGATE,
    ORDER_REPOSITORY,
    ORDERS_CONTROLLER,
    PROGRAM,
    SERVICE_NAME,
    SINGLE_PROJECT_MANIFEST,
    build_layered_project,
    build_minimal_project,
    write_file,
    write_git_head,
)

__all__ = [
    "SERVICE_NAME",
    "SINGLE_PROJECT_MANIFEST",
    "ORDER_AGGREGATE",
    "CREATE_ORDER_COMMAND",
    "GET_ORDER_QUERY",
    "ORDER_REPOSITORY",
    "ORDERS_CONTROLLER",
    "PROGRAM",
    "build_minimal_project",
    "build_layered_project",
    "write_file",
    "write_git_head",
]
