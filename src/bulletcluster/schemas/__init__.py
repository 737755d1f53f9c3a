"""Pydantic configuration schemas for the spectral pipeline.

This module provides strictly typed configuration models. All configuration
validation, coercion, and normalization happens at schema validation time
via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    Env-file configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from bulletcluster.schemas.resolve import resolve_config
from bulletcluster.schemas.internal import InternalConfig
from bulletcluster.schemas.param import ParamConfig
from bulletcluster.schemas.user import UserConfig
from bulletcluster.schemas.cli import CLIConfig
from bulletcluster.schemas.env_file import ConfigurationError

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'ConfigurationError',
]
