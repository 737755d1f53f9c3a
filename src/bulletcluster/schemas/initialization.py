"""Complete runtime initialization for the spectral pipeline.

This module handles ALL initialization responsibilities:
- Configuration resolution (CLI > env file > Param)
- Output directory setup
- Configuration persistence with run ID
- Returns fully ready InternalConfig for orchestrator
"""

import json
import secrets
from pathlib import Path
from typing import Dict
from datetime import datetime, timezone

from bulletcluster.schemas.resolve import resolve_config
from bulletcluster.schemas.param import ParamConfig
from bulletcluster.schemas.user import UserConfig
from bulletcluster.schemas.cli import CLIConfig
from bulletcluster.schemas.internal import InternalConfig
from bulletcluster.schemas.env_file import read_env_file
from bulletcluster.setup_directories import setup_output_directories


def generate_run_id() -> str:
    """Return a sortable, unique run identifier like ``20250305T101500Z-a1b2c3``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{secrets.token_hex(3)}"


def cli_overrides_from_args(args) -> dict:
    """Collect non-None CLI overrides from an argparse namespace."""
    return {
        k: v
        for k, v in {
            "base_dir": getattr(args, 'base_dir', None),
            "log_level": "DEBUG" if getattr(args, 'verbose', False) else None,
            "batch_size": getattr(args, 'batch_size', None),
            "chunk_size": getattr(args, 'chunk_size', None),
            "database_url": getattr(args, 'database_url', None),
        }.items()
        if v is not None
    }


def _persist_runtime_config(config: InternalConfig, output_dirs: Dict[str, Path]) -> Path:
    """Persist final runtime configuration with run ID.

    Secrets are dumped in their masked form.
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)
    config_file = log_dir / f"runtime_config_{config.run_id}.json"

    config_dict = config.model_dump(mode="json")
    config_dict["created_at"] = datetime.now(timezone.utc).isoformat()

    with open(config_file, 'w') as f:
        json.dump(config_dict, f, indent=2, default=str)

    return config_file


def load_config(env_file=".env", cli_args=None) -> InternalConfig:
    """Resolve configuration from an env file and CLI overrides.

    No directories are created; use init_runtime_config() for that.
    """
    user_cfg = UserConfig.model_validate(read_env_file(env_file))
    cli_cfg = CLIConfig.model_validate(cli_args or {})
    return resolve_config(ParamConfig(), user_cfg, cli_cfg)


def init_runtime_config(args) -> InternalConfig:
    """Complete runtime initialization - single entry point for pipeline commands.

    Handles ALL initialization responsibilities:
    1. Configuration resolution (CLI > env file > Param)
    2. Output directory setup
    3. Configuration persistence with run ID
    4. Returns fully ready InternalConfig for orchestrator

    Parameters
    ----------
    args : argparse.Namespace
        Command line arguments with ``env_file`` and all overrides

    Returns
    -------
    InternalConfig
        Fully validated configuration with ``run_id`` and ``output_dirs`` set.

    Raises
    ------
    ConfigurationError
        If the env file does not exist.
    ValidationError
        If any configuration value is invalid.

    Examples
    --------
    >>> args = parser.parse_args()
    >>> config = init_runtime_config(args)
    >>> orchestrator = PipelineOrchestrator(config, config.output_dirs)
    """
    env_file = getattr(args, 'env_file', None) or ".env"
    config = load_config(env_file, cli_overrides_from_args(args))

    output_dirs = setup_output_directories(config.base_dir)

    config_dict = config.model_dump()
    config_dict["output_dirs"] = {k: str(v) for k, v in output_dirs.items()}
    config_dict["run_id"] = generate_run_id()
    config = InternalConfig.model_validate(config_dict)

    _persist_runtime_config(config, output_dirs)

    return config


__all__ = ['init_runtime_config', 'load_config', 'generate_run_id', 'cli_overrides_from_args']
