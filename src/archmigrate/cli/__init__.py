"""Command-line interface for archmigrate (``migrate`` and ``history``)."""

from archmigrate.cli.main import build_parser, configure_logging, main

__all__ = [
    "build_parser",
    "configure_logging",
    "main",
]
