"""Command-line entry points."""

from bulletcluster.cli.main import main, build_parser

__all__ = ['main', 'build_parser']
