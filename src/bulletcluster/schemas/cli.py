"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: output location, verbosity, batch sizes, database URL.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field
from bulletcluster.schemas.base import BulletBaseModel


class CLIConfig(BulletBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override env-file and default configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            base_dir="/scratch/bullet",
            log_level="DEBUG",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    batch_size: Optional[int] = Field(None, ge=1)
    chunk_size: Optional[int] = Field(None, ge=1)
    database_url: Optional[str] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        if self.batch_size is not None:
            overrides["ingestion"] = {"batch_size": self.batch_size}

        if self.chunk_size is not None:
            overrides["processing"] = {"chunk_size": self.chunk_size}

        if self.database_url is not None:
            overrides["database"] = {"url": self.database_url}

        return overrides
