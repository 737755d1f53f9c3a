import pytest
from sqlalchemy import inspect

from bulletcluster.database import (
    build_url,
    check_connection,
    get_engine,
    is_sqlite,
    provision_database,
)

pytestmark = [pytest.mark.unit, pytest.mark.database]


def test_build_url_from_parts(make_config):
    config = make_config(db_host="db.example", db_port=6543, db_user="alice", db_password="s3cret")
    url = build_url(config.database)

    assert url.drivername == "postgresql+psycopg2"
    assert url.host == "db.example"
    assert url.port == 6543
    assert url.username == "alice"
    assert url.password == "s3cret"
    assert url.database == "spectral_analysis"


def test_build_url_admin(make_config):
    config = make_config(db_admin_user="postgres", db_admin_password="root")
    url = build_url(config.database, admin=True, database="postgres")

    assert url.username == "postgres"
    assert url.password == "root"
    assert url.database == "postgres"


def test_database_url_overrides_parts(make_config):
    config = make_config(db_host="ignored", database_url="sqlite:///spectra.db")
    url = build_url(config.database)
    assert is_sqlite(url)
    assert url.database == "spectra.db"


def test_admin_on_postgres_url_swaps_credentials(make_config):
    config = make_config(
        database_url="postgresql+psycopg2://app:pw@dbhost:5432/spectral_analysis",
        db_admin_user="root",
        db_admin_password="rootpw",
    )
    url = build_url(config.database, admin=True, database="postgres")
    assert (url.username, url.password, url.host, url.database) == ("root", "rootpw", "dbhost", "postgres")


def test_is_sqlite():
    assert is_sqlite("sqlite:///x.db")
    assert is_sqlite("sqlite://")
    assert not is_sqlite("postgresql+psycopg2://u:p@h/db")


def test_check_connection_sqlite(runtime_config):
    engine = get_engine(runtime_config())
    try:
        assert check_connection(engine) is True
    finally:
        engine.dispose()


def test_check_connection_failure_returns_false(tmp_path, make_config):
    missing_dir = tmp_path / "no" / "such" / "dir"
    engine = get_engine(make_config(database_url=f"sqlite:///{missing_dir / 'x.db'}"))
    try:
        assert check_connection(engine) is False
    finally:
        engine.dispose()


def test_provision_sqlite_creates_schema(runtime_config):
    config = runtime_config()
    provision_database(config)
    provision_database(config)

    engine = get_engine(config)
    try:
        assert inspect(engine).has_table("spectra")
    finally:
        engine.dispose()
