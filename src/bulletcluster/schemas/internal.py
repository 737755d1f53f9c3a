"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict, SecretStr, field_serializer, field_validator
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from bulletcluster.schemas.base import BulletBaseModel
from bulletcluster.schemas.param import normalize_memory


def mask_url(url: Optional[str]) -> Optional[str]:
    """Return ``url`` with any password replaced by ``***``."""
    if not url:
        return url
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "***"


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalDatabaseConfig(BulletBaseModel):
    """Runtime database configuration."""
    host: str
    port: int = Field(ge=1, le=65535)
    name: str
    user: str
    password: Optional[SecretStr]
    admin_user: str
    admin_password: Optional[SecretStr]
    url: Optional[str]
    driver: str
    echo: bool

    @field_serializer("url", when_used="json")
    def _mask_url_password(self, url: Optional[str]) -> Optional[str]:
        return mask_url(url)

    def display_url(self) -> str:
        """Connection target for messages, password masked."""
        if self.url:
            return mask_url(self.url)
        return f"{self.host}:{self.port}/{self.name}"


class InternalSparkConfig(BulletBaseModel):
    """Runtime cluster resource configuration."""
    master: str
    driver_memory: str
    executor_memory: str

    @field_validator("driver_memory", "executor_memory", mode="before")
    @classmethod
    def validate_memory(cls, v):
        return normalize_memory(v)


class InternalIngestionConfig(BulletBaseModel):
    """Runtime ingestion configuration."""
    batch_size: int = Field(ge=1)
    lamost_api_key: Optional[SecretStr]
    file_patterns: list[str]
    column_aliases: dict[str, str]
    min_snr: Optional[float]
    redshift_range: Optional[tuple[float, float]]


class InternalProcessingConfig(BulletBaseModel):
    """Runtime feature derivation configuration."""
    chunk_size: int = Field(ge=1)
    rest_halpha: float = Field(gt=0)
    rest_hbeta: float = Field(gt=0)
    cluster_ra: float
    cluster_dec: float


class InternalAnalysisConfig(BulletBaseModel):
    """Runtime analysis configuration."""
    features: list[str]
    min_group_size: int = Field(ge=2)
    significance: float = Field(gt=0, lt=1)
    correlation_method: Literal["spearman", "pearson", "kendall"]


class InternalVisualizationConfig(BulletBaseModel):
    """Runtime visualization settings."""
    enabled: bool
    dpi: int
    figsize: tuple[float, float]
    output_format: Literal["png", "pdf", "jpeg", "svg"]


class InternalOutputConfig(BulletBaseModel):
    """Runtime output configuration."""
    compression: Literal["snappy", "gzip", "zstd", "none"]
    features_filename: str


class InternalTrackerConfig(BulletBaseModel):
    """Runtime tracker configuration."""
    db_filename: str


class InternalLoggingConfig(BulletBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(BulletBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.batch_size = config.ingestion.batch_size  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: str
    database: InternalDatabaseConfig
    spark: InternalSparkConfig
    ingestion: InternalIngestionConfig
    processing: InternalProcessingConfig
    analysis: InternalAnalysisConfig
    visualization: InternalVisualizationConfig
    output: InternalOutputConfig
    tracker: InternalTrackerConfig
    logging: InternalLoggingConfig

    # Filled in by init_runtime_config()
    run_id: Optional[str] = None
    output_dirs: Optional[dict[str, str]] = None

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
