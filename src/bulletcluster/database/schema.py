"""Relational schema for spectrum records.

Declares the ``spectra`` table with SQLAlchemy Core so the same definition
drives PostgreSQL (production) and SQLite (local runs, tests). The DDL it
produces is equivalent to ``database/schema.sql``:

    spec_id BIGINT PRIMARY KEY, ra/dec/redshift/snr DOUBLE PRECISION,
    environment VARCHAR(20), h_alpha_center/h_beta_center DOUBLE PRECISION,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    plus non-unique indexes idx_environment and idx_redshift.
"""

import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.schema import CreateIndex, CreateTable

__all__ = [
    'metadata',
    'spectra',
    'RECORD_COLUMNS',
    'TABLE_COLUMNS',
    'ENVIRONMENT_MAX_LENGTH',
    'init_schema',
    'describe_schema',
    'render_schema_sql',
]

logger = logging.getLogger(__name__)

ENVIRONMENT_MAX_LENGTH = 20

metadata = sa.MetaData()

spectra = sa.Table(
    "spectra",
    metadata,
    sa.Column("spec_id", sa.BigInteger, primary_key=True, autoincrement=False),
    sa.Column("ra", sa.DOUBLE_PRECISION),
    sa.Column("dec", sa.DOUBLE_PRECISION),
    sa.Column("redshift", sa.DOUBLE_PRECISION),
    sa.Column("snr", sa.DOUBLE_PRECISION),
    sa.Column("environment", sa.String(ENVIRONMENT_MAX_LENGTH)),
    sa.Column("h_alpha_center", sa.DOUBLE_PRECISION),
    sa.Column("h_beta_center", sa.DOUBLE_PRECISION),
    sa.Column("created_at", sa.TIMESTAMP, server_default=sa.text("CURRENT_TIMESTAMP")),
    sa.Index("idx_environment", "environment"),
    sa.Index("idx_redshift", "redshift"),
)

# Columns supplied by ingestion (created_at is filled by the database)
RECORD_COLUMNS = [
    "spec_id",
    "ra",
    "dec",
    "redshift",
    "snr",
    "environment",
    "h_alpha_center",
    "h_beta_center",
]

TABLE_COLUMNS = RECORD_COLUMNS + ["created_at"]

_DIALECTS = {
    "postgresql": postgresql.dialect,
    "sqlite": sqlite.dialect,
}


def init_schema(engine: Engine) -> None:
    """Create ``spectra`` and any missing index.

    Idempotent: existing table and indexes are left untouched, matching
    ``CREATE ... IF NOT EXISTS`` semantics.
    """
    with engine.begin() as conn:
        spectra.create(conn, checkfirst=True)
        for index in spectra.indexes:
            index.create(conn, checkfirst=True)
    logger.info("Schema ready: table 'spectra' (%s)", engine.url.render_as_string(hide_password=True))


def describe_schema(engine: Engine) -> dict:
    """Reflect the ``spectra`` table as it exists in the database.

    Returns
    -------
    dict
        - `exists` : bool
        - `columns` : list of column names in table order
        - `primary_key` : list of primary key columns
        - `indexes` : dict mapping index name to its column list
    """
    inspector = sa.inspect(engine)
    if not inspector.has_table("spectra"):
        return {"exists": False, "columns": [], "primary_key": [], "indexes": {}}

    return {
        "exists": True,
        "columns": [col["name"] for col in inspector.get_columns("spectra")],
        "primary_key": inspector.get_pk_constraint("spectra")["constrained_columns"],
        "indexes": {
            idx["name"]: idx["column_names"] for idx in inspector.get_indexes("spectra")
        },
    }


def render_schema_sql(dialect: str = "postgresql", app_user: Optional[str] = None) -> str:
    """Render the schema as a SQL script.

    Parameters
    ----------
    dialect : str
        'postgresql' or 'sqlite'
    app_user : str, optional
        If given, a ``GRANT ALL PRIVILEGES ON TABLE spectra`` statement for
        this role is appended.

    Returns
    -------
    str
        Script with one statement per block, each terminated by ``;``.
    """
    if dialect not in _DIALECTS:
        raise ValueError(f"Unsupported dialect: {dialect}. Must be one of {sorted(_DIALECTS)}")
    sql_dialect = _DIALECTS[dialect]()

    statements = [str(CreateTable(spectra, if_not_exists=True).compile(dialect=sql_dialect)).strip()]
    for index in sorted(spectra.indexes, key=lambda ix: ix.name):
        statements.append(
            str(CreateIndex(index, if_not_exists=True).compile(dialect=sql_dialect)).strip()
        )

    if app_user:
        quoted = sql_dialect.identifier_preparer.quote(app_user)
        statements.append(f"GRANT ALL PRIVILEGES ON TABLE spectra TO {quoted}")

    body = ";\n\n".join(statements) + ";\n"
    return "-- Spectral Analysis Database Schema\n" + body
