"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts the flat key-value pairs of the ``.env`` file, using the
uppercase key names as aliases (e.g., DB_HOST → db_host, SDSS_BATCH_SIZE →
batch_size).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient: unknown keys
are ignored, empty values count as unset, numbers may arrive as strings.
"""

from typing import Literal, Optional
from pydantic import Field, SecretStr, field_validator
from bulletcluster.schemas.base import BulletBaseModel
from bulletcluster.schemas.param import normalize_memory


class UserConfig(BulletBaseModel):
    """User-facing configuration schema (one field per env-file key).

    Usage
    -----
        user_cfg = UserConfig.model_validate(read_env_file(".env"))

        # Or by field name:
        user_cfg = UserConfig(db_host="db.internal", batch_size=500)

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Database
    db_host: Optional[str] = Field(None, alias="DB_HOST")
    db_port: Optional[int] = Field(None, alias="DB_PORT")
    db_name: Optional[str] = Field(None, alias="DB_NAME")
    db_user: Optional[str] = Field(None, alias="DB_USER")
    db_password: Optional[SecretStr] = Field(None, alias="DB_PASSWORD")
    db_admin_user: Optional[str] = Field(None, alias="DB_ADMIN_USER")
    db_admin_password: Optional[SecretStr] = Field(None, alias="DB_ADMIN_PASSWORD")
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")

    # Spark
    spark_master: Optional[str] = Field(None, alias="SPARK_MASTER")
    spark_driver_memory: Optional[str] = Field(None, alias="SPARK_DRIVER_MEMORY")
    spark_executor_memory: Optional[str] = Field(None, alias="SPARK_EXECUTOR_MEMORY")

    # Survey catalogs
    batch_size: Optional[int] = Field(None, alias="SDSS_BATCH_SIZE")
    lamost_api_key: Optional[SecretStr] = Field(None, alias="LAMOST_API_KEY")

    # Operational
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(
        None, alias="LOG_LEVEL"
    )

    model_config = BulletBaseModel.model_config.copy()
    # Env files carry keys for other tools too; ignore them
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("*", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        """Treat ``KEY=`` (empty value) as not provided."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("spark_driver_memory", "spark_executor_memory", mode="before")
    @classmethod
    def validate_memory(cls, v):
        return normalize_memory(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        database = {
            "host": self.db_host,
            "port": self.db_port,
            "name": self.db_name,
            "user": self.db_user,
            "password": self.db_password,
            "admin_user": self.db_admin_user,
            "admin_password": self.db_admin_password,
            "url": self.database_url,
        }
        database = {k: v for k, v in database.items() if v is not None}
        if database:
            overrides["database"] = database

        spark = {
            "master": self.spark_master,
            "driver_memory": self.spark_driver_memory,
            "executor_memory": self.spark_executor_memory,
        }
        spark = {k: v for k, v in spark.items() if v is not None}
        if spark:
            overrides["spark"] = spark

        ingestion = {}
        if self.batch_size is not None:
            ingestion["batch_size"] = self.batch_size
        if self.lamost_api_key is not None:
            ingestion["lamost_api_key"] = self.lamost_api_key
        if ingestion:
            overrides["ingestion"] = ingestion

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
