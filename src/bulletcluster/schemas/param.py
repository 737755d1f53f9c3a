"""ParamConfig: Expert defaults for the spectral pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

import re
from typing import Literal, Optional
from pydantic import Field, SecretStr, field_validator
from bulletcluster.schemas.base import BulletBaseModel


MEMORY_PATTERN = re.compile(r"^\d+[kmgt]$")

DEFAULT_COLUMN_ALIASES = {
    "specobjid": "spec_id",
    "z": "redshift",
    "sn_median": "snr",
    "snmedian": "snr",
    "declination": "dec",
    "right_ascension": "ra",
    "env": "environment",
}

DEFAULT_FEATURES = [
    "redshift",
    "snr",
    "line_redshift",
    "velocity_offset_kms",
    "balmer_center_ratio",
    "cluster_distance_arcmin",
]


def normalize_memory(v):
    """Validate Spark-style memory strings such as '4g' or '512m'."""
    if v is None:
        return v
    v = str(v).strip().lower()
    if not v:
        return None
    if not MEMORY_PATTERN.match(v):
        raise ValueError(f"Invalid memory size '{v}', expected e.g. '4g' or '512m'")
    return v


# =============================================================================
# Nested Configuration Models
# =============================================================================

class DatabaseConfig(BulletBaseModel):
    """Relational database connection settings."""
    host: str = "localhost"
    port: int = Field(5432, ge=1, le=65535)
    name: str = "spectral_analysis"
    user: str = "bullet_user"
    password: Optional[SecretStr] = None
    admin_user: str = "postgres"
    admin_password: Optional[SecretStr] = None
    url: Optional[str] = Field(None, description="Full SQLAlchemy URL, overrides host/port composition")
    driver: str = "postgresql+psycopg2"
    echo: bool = False


class SparkConfig(BulletBaseModel):
    """Cluster resource settings carried for distributed processing jobs."""
    master: str = "local[*]"
    driver_memory: str = "4g"
    executor_memory: str = "2g"

    @field_validator("driver_memory", "executor_memory", mode="before")
    @classmethod
    def validate_memory(cls, v):
        return normalize_memory(v)


class IngestionConfig(BulletBaseModel):
    """Catalog ingestion configuration."""
    batch_size: int = Field(1000, ge=1, description="Rows per database insert batch")
    lamost_api_key: Optional[SecretStr] = None
    file_patterns: list[str] = Field(
        default_factory=lambda: ["*.csv", "*.csv.gz", "*.parquet", "*.pq"]
    )
    column_aliases: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_COLUMN_ALIASES))
    min_snr: Optional[float] = None
    redshift_range: Optional[tuple[float, float]] = None

    @field_validator("redshift_range")
    @classmethod
    def check_redshift_range(cls, v):
        if v is not None and v[0] > v[1]:
            raise ValueError(f"redshift_range lower bound {v[0]} exceeds upper bound {v[1]}")
        return v


class ProcessingConfig(BulletBaseModel):
    """Spectral feature derivation configuration."""
    chunk_size: int = Field(10000, ge=1, description="Rows read from the database per chunk")
    rest_halpha: float = Field(6564.61, gt=0, description="H-alpha rest wavelength (Angstrom, vacuum)")
    rest_hbeta: float = Field(4862.68, gt=0, description="H-beta rest wavelength (Angstrom, vacuum)")
    # 1E 0657-558
    cluster_ra: float = Field(104.658, ge=0, lt=360)
    cluster_dec: float = Field(-55.946, ge=-90, le=90)


class AnalysisConfig(BulletBaseModel):
    """Environmental correlation analysis configuration."""
    features: list[str] = Field(default_factory=lambda: list(DEFAULT_FEATURES))
    min_group_size: int = Field(3, ge=2)
    significance: float = Field(0.05, gt=0, lt=1)
    correlation_method: Literal["spearman", "pearson", "kendall"] = "spearman"


class VisualizationConfig(BulletBaseModel):
    """Plot output settings."""
    enabled: bool = True
    dpi: int = Field(150, ge=50)
    figsize: tuple[float, float] = (10.0, 6.0)
    output_format: Literal["png", "pdf", "jpeg", "svg"] = "png"


class OutputConfig(BulletBaseModel):
    """Processed output settings."""
    compression: Literal["snappy", "gzip", "zstd", "none"] = "snappy"
    features_filename: str = "spectral_features.parquet"


class TrackerConfig(BulletBaseModel):
    """Stage tracker settings."""
    db_filename: str = "pipeline_tracker.db"


class LoggingConfig(BulletBaseModel):
    """Logging settings."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(BulletBaseModel):
    """Complete default configuration.

    Every section carries a default, so ``ParamConfig()`` alone resolves
    to a runnable (local) configuration.
    """

    base_dir: str = "."
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    spark: SparkConfig = Field(default_factory=SparkConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
