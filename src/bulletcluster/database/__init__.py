"""Relational storage for spectrum records (SQLAlchemy Core)."""

from bulletcluster.database.schema import (
    spectra,
    RECORD_COLUMNS,
    TABLE_COLUMNS,
    ENVIRONMENT_MAX_LENGTH,
    init_schema,
    describe_schema,
    render_schema_sql,
)
from bulletcluster.database.session import (
    build_url,
    get_engine,
    is_sqlite,
    check_connection,
    provision_database,
)
from bulletcluster.database.repository import SpectraRepository

__all__ = [
    'spectra',
    'RECORD_COLUMNS',
    'TABLE_COLUMNS',
    'ENVIRONMENT_MAX_LENGTH',
    'init_schema',
    'describe_schema',
    'render_schema_sql',
    'build_url',
    'get_engine',
    'is_sqlite',
    'check_connection',
    'provision_database',
    'SpectraRepository',
]
