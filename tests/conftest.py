"""Root-level pytest fixtures for the bulletcluster test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture. Tests build configs through these fixtures instead of
creating raw dicts.
"""

import logging

import pytest
from pathlib import Path
import tempfile
import shutil

import numpy as np
import pandas as pd

from bulletcluster.schemas import ParamConfig, UserConfig, InternalConfig, resolve_config
from bulletcluster.setup_directories import setup_output_directories


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for configs with UserConfig overrides.

    Examples
    --------
    >>> def test_batch(make_config):
    ...     config = make_config(batch_size=10)
    ...     assert config.ingestion.batch_size == 10
    """
    def _make(**user_overrides):
        if user_overrides:
            return resolve_config(param_config, UserConfig(**user_overrides), None)
        return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard project directory structure under temp_dir."""
    return setup_output_directories(temp_dir)


@pytest.fixture
def runtime_config(temp_dir, output_dirs):
    """Factory for runtime configs wired to temp_dir and a SQLite database.

    Keyword arguments are merged into the resolved config dict, e.g.
    ``runtime_config(analysis={"min_group_size": 2})``.
    """
    def _make(**sections):
        db_url = f"sqlite:///{temp_dir / 'spectra.db'}"
        base = resolve_config(
            ParamConfig(),
            UserConfig(base_dir=str(temp_dir), database_url=db_url),
            None,
        ).model_dump()
        for key, value in sections.items():
            if isinstance(value, dict):
                base[key] = {**base[key], **value}
            else:
                base[key] = value
        base["output_dirs"] = {k: str(v) for k, v in output_dirs.items()}
        base["run_id"] = "test-run"
        return InternalConfig.model_validate(base)

    return _make


# =============================================================================
# Data Fixtures
# =============================================================================

REST_HALPHA = 6564.61
REST_HBETA = 4862.68


def make_spectra_frame(n_per_env=6, environments=("core", "outskirts", "field"), seed=0):
    """Synthetic normalized spectrum records.

    Each environment gets its own redshift offset so that line features
    differ between groups.
    """
    rng = np.random.default_rng(seed)
    rows = []
    spec_id = 1000
    for i, env in enumerate(environments):
        for _ in range(n_per_env):
            z = 0.296 + 0.002 * i + rng.normal(0, 0.0005)
            z_line = z + 0.0003 * i
            rows.append({
                "spec_id": spec_id,
                "ra": 104.658 + rng.normal(0, 0.05) * (i + 1),
                "dec": -55.946 + rng.normal(0, 0.05) * (i + 1),
                "redshift": z,
                "snr": 10.0 + 5 * i + rng.uniform(0, 2),
                "environment": env,
                "h_alpha_center": REST_HALPHA * (1 + z_line),
                "h_beta_center": REST_HBETA * (1 + z_line),
            })
            spec_id += 1
    return pd.DataFrame(rows)


@pytest.fixture
def spectra_frame():
    """18 records across core/outskirts/field."""
    return make_spectra_frame()


@pytest.fixture
def spectra_factory():
    """The make_spectra_frame() builder, for tests that need custom groups."""
    return make_spectra_frame


@pytest.fixture
def sqlite_engine(temp_dir):
    """Engine on a fresh SQLite file with the spectra schema applied."""
    from sqlalchemy import create_engine
    from bulletcluster.database import init_schema

    engine = create_engine(f"sqlite:///{temp_dir / 'test_spectra.db'}")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(sqlite_engine):
    from bulletcluster.database import SpectraRepository
    return SpectraRepository(sqlite_engine)


@pytest.fixture(autouse=True)
def close_pipeline_log_handlers():
    """The orchestrator installs root file/console handlers; drop them after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) in (logging.FileHandler, logging.StreamHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
