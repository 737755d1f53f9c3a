"""Database engines and one-time provisioning.

Connection URLs are composed from ``InternalDatabaseConfig``. A full
``database.url`` (``DATABASE_URL`` in the env file) replaces the composed
URL, which is how local runs point the pipeline at a SQLite file.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from bulletcluster.database.schema import init_schema

__all__ = [
    'build_url',
    'get_engine',
    'is_sqlite',
    'check_connection',
    'provision_database',
]

logger = logging.getLogger(__name__)


def _secret(value) -> Optional[str]:
    if value is None:
        return None
    secret = value.get_secret_value()
    return secret or None


def is_sqlite(url) -> bool:
    """True if ``url`` (str or URL) targets SQLite."""
    return make_url(str(url) if not isinstance(url, URL) else url).get_backend_name() == "sqlite"


def build_url(db_cfg, admin: bool = False, database: Optional[str] = None) -> URL:
    """Compose the connection URL.

    Parameters
    ----------
    db_cfg : InternalDatabaseConfig
        Database section of the runtime configuration.
    admin : bool
        Connect with the admin credentials instead of the application user.
    database : str, optional
        Database name to connect to; defaults to ``db_cfg.name``.
    """
    if db_cfg.url:
        url = make_url(db_cfg.url)
        if is_sqlite(url) or not admin:
            return url
        return url.set(
            username=db_cfg.admin_user,
            password=_secret(db_cfg.admin_password),
            database=database or url.database,
        )

    if admin:
        username, password = db_cfg.admin_user, _secret(db_cfg.admin_password)
    else:
        username, password = db_cfg.user, _secret(db_cfg.password)

    return URL.create(
        db_cfg.driver,
        username=username,
        password=password,
        host=db_cfg.host,
        port=db_cfg.port,
        database=database or db_cfg.name,
    )


def get_engine(config, admin: bool = False, database: Optional[str] = None, **kwargs) -> Engine:
    """Create an engine for the configured database.

    Extra keyword arguments go to ``sqlalchemy.create_engine``.
    """
    url = build_url(config.database, admin=admin, database=database)
    if is_sqlite(url):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, echo=config.database.echo, **kwargs)


def check_connection(engine: Engine) -> bool:
    """Run ``SELECT 1``; returns False and logs when the database is unreachable."""
    try:
        with engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1
    except SQLAlchemyError as e:
        logger.error("Database connection failed (%s): %s",
                     engine.url.render_as_string(hide_password=True), e)
        return False


def provision_database(config) -> None:
    """Create database, application role, schema and grants.

    Runs as the admin user. Every step checks first, so repeated runs are
    safe. SQLite needs no provisioning beyond the schema itself.
    """
    db = config.database
    target_url = build_url(db)

    if is_sqlite(target_url):
        logger.info("SQLite database, creating schema only")
        engine = get_engine(config)
        try:
            init_schema(engine)
        finally:
            engine.dispose()
        return

    admin_engine = get_engine(config, admin=True, database="postgres", isolation_level="AUTOCOMMIT")
    quote = admin_engine.dialect.identifier_preparer.quote
    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": db.name}
            ).scalar()
            if exists:
                logger.info("Database %s already exists", db.name)
            else:
                conn.execute(text(f"CREATE DATABASE {quote(db.name)}"))
                logger.info("Created database %s", db.name)

            role = conn.execute(
                text("SELECT 1 FROM pg_roles WHERE rolname = :name"), {"name": db.user}
            ).scalar()
            if role:
                logger.info("Role %s already exists", db.user)
            else:
                # psycopg2 interpolates the password client side
                conn.execute(
                    text(f"CREATE ROLE {quote(db.user)} LOGIN PASSWORD :password"),
                    {"password": _secret(db.password)},
                )
                logger.info("Created role %s", db.user)

            conn.execute(text(f"GRANT ALL PRIVILEGES ON DATABASE {quote(db.name)} TO {quote(db.user)}"))
    finally:
        admin_engine.dispose()

    target_engine = get_engine(config, admin=True)
    try:
        init_schema(target_engine)
        with target_engine.begin() as conn:
            conn.execute(text(f"GRANT ALL PRIVILEGES ON TABLE spectra TO {quote(db.user)}"))
    finally:
        target_engine.dispose()

    logger.info("Database %s provisioned for %s", db.name, db.user)
