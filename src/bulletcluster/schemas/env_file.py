"""Flat ``.env`` configuration file generation and loading.

The env file is the only user-edited configuration surface. It holds the
database credentials, Spark resource settings and survey API settings as
plain ``KEY=value`` lines and is parsed with python-dotenv.
"""

import logging
import secrets
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import dotenv_values

__all__ = [
    'ConfigurationError',
    'RECOGNIZED_KEYS',
    'PLACEHOLDER_PREFIX',
    'write_env_template',
    'read_env_file',
    'check_env_file',
]

logger = logging.getLogger(__name__)

RECOGNIZED_KEYS = (
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "DB_ADMIN_USER",
    "DB_ADMIN_PASSWORD",
    "SPARK_MASTER",
    "SPARK_DRIVER_MEMORY",
    "SPARK_EXECUTOR_MEMORY",
    "SDSS_BATCH_SIZE",
    "LAMOST_API_KEY",
)

PLACEHOLDER_PREFIX = "CHANGE_ME"


class ConfigurationError(ValueError):
    """Raised when the env file is missing or incomplete."""


def _template_sections() -> list:
    """Return (section title, [(key, value), ...]) pairs in file order."""
    return [
        ("Database Configuration", [
            ("DB_HOST", "localhost"),
            ("DB_PORT", "5432"),
            ("DB_NAME", "spectral_analysis"),
            ("DB_USER", "bullet_user"),
            ("DB_PASSWORD", f"{PLACEHOLDER_PREFIX}_{secrets.token_hex(8)}"),
        ]),
        ("Database Admin (for setup only)", [
            ("DB_ADMIN_USER", "postgres"),
            ("DB_ADMIN_PASSWORD", PLACEHOLDER_PREFIX),
        ]),
        ("Spark Configuration", [
            ("SPARK_MASTER", "local[*]"),
            ("SPARK_DRIVER_MEMORY", "4g"),
            ("SPARK_EXECUTOR_MEMORY", "2g"),
        ]),
        ("SDSS/LAMOST API Configuration", [
            ("SDSS_BATCH_SIZE", "1000"),
            ("LAMOST_API_KEY", ""),
        ]),
    ]


def write_env_template(path: Union[str, Path] = ".env") -> Optional[Path]:
    """Write a fresh configuration template.

    An existing file is copied to ``<path>.backup`` before being replaced.
    The application password gets a random placeholder so that two
    freshly initialized installations never share credentials.

    Parameters
    ----------
    path : str or Path
        Target env file.

    Returns
    -------
    Path or None
        Backup path if an existing file was backed up, otherwise None.
    """
    path = Path(path)
    backup = None
    if path.exists():
        backup = path.with_name(path.name + ".backup")
        shutil.copyfile(path, backup)
        logger.warning("%s already exists. Backup created as %s", path, backup)

    lines = [
        "# Bullet Cluster Modeling - Environment Configuration",
        f"# Generated on {datetime.now(timezone.utc).isoformat(timespec='seconds')}",
    ]
    for title, pairs in _template_sections():
        lines.append("")
        lines.append(f"# {title}")
        lines.extend(f"{key}={value}" for key, value in pairs)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
    logger.info("Configuration template created: %s", path)
    return backup


def read_env_file(path: Union[str, Path] = ".env") -> Dict[str, Optional[str]]:
    """Parse an env file into a dict.

    Raises
    ------
    ConfigurationError
        If the file does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(
            f"{path} file missing. Run 'bulletcluster init-config' first"
        )
    return dict(dotenv_values(path))


def check_env_file(path: Union[str, Path] = ".env") -> Dict[str, Optional[str]]:
    """Validate that the env file exists and sets DB_PASSWORD.

    Placeholder passwords are accepted but reported, since a local
    SQLite setup never uses them.

    Returns
    -------
    dict
        Parsed env values.

    Raises
    ------
    ConfigurationError
        If the file is missing or DB_PASSWORD is absent or empty.
    """
    values = read_env_file(path)

    if not (values.get("DB_PASSWORD") or "").strip():
        raise ConfigurationError(f"DB_PASSWORD not set in {path}")

    for key in ("DB_PASSWORD", "DB_ADMIN_PASSWORD"):
        value = values.get(key) or ""
        if value.startswith(PLACEHOLDER_PREFIX):
            logger.warning("%s still uses the %s placeholder", key, PLACEHOLDER_PREFIX)

    unknown = sorted(set(values) - set(RECOGNIZED_KEYS) - {"DATABASE_URL", "BASE_DIR", "LOG_LEVEL"})
    if unknown:
        logger.debug("Ignoring unrecognized keys: %s", ", ".join(unknown))

    return values
