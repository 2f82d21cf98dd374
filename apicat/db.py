"""Database connections for the catalog.

A DSN is any SQLAlchemy URL (``sqlite:///catalog.db``,
``mysql+pymysql://host/db``, ``postgresql://host/db``) or a bare file path,
which selects SQLite. Every connection handed out has been brought up to the
latest schema version.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Connection, Engine, create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from apicat.config import default_dsn
from apicat.errors import ConnectionFailure
from apicat.schema import CATALOG_SCHEMA
from apicat.versioning import SchemaSpec, ensure_schema

logger = logging.getLogger(__name__)


def resolve_url(dsn: str | None = None, user: str | None = None, password: str | None = None) -> URL:
    """Turn a DSN plus optional credentials into a SQLAlchemy URL."""

    raw = (dsn or default_dsn()).strip()
    if "://" not in raw:
        raw = f"sqlite:///{Path(raw).expanduser().resolve().as_posix()}"
    try:
        url = make_url(raw)
    except ArgumentError as exc:
        raise ConnectionFailure(f"Invalid DSN {raw!r}: {exc}", details={"dsn": raw}) from exc

    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        path = Path(url.database).expanduser()
        url = url.set(database=str(path))
    if user is not None:
        url = url.set(username=user)
    if password is not None:
        url = url.set(password=password)
    return url


def display_dsn(url: URL) -> str:
    return url.render_as_string(hide_password=True)


def _use_transactional_ddl(engine: Engine) -> None:
    """Make pysqlite run DDL inside the transaction SQLAlchemy begins.

    The sqlite3 module otherwise commits around ``ALTER``/``CREATE``/``DROP``;
    with this each schema upgrade step commits or rolls back as one unit.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, conn_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_catalog_engine(url: URL) -> Engine:
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    try:
        engine = create_engine(url, future=True)
    except (ArgumentError, SQLAlchemyError, ImportError) as exc:
        # ImportError: the DBAPI driver named by the URL is not installed.
        raise ConnectionFailure(
            f"Can't create engine for {display_dsn(url)}: {exc}",
            details={"dsn": display_dsn(url)},
        ) from exc
    if url.get_backend_name() == "sqlite":
        _use_transactional_ddl(engine)
    return engine


@contextmanager
def connect(
    dsn: str | None = None,
    user: str | None = None,
    password: str | None = None,
    *,
    spec: SchemaSpec = CATALOG_SCHEMA,
) -> Iterator[Connection]:
    """Open a connection with the catalog schema ensured, closing it afterwards."""

    url = resolve_url(dsn, user, password)
    engine = create_catalog_engine(url)
    try:
        try:
            conn = engine.connect()
        except SQLAlchemyError as exc:
            raise ConnectionFailure(
                f"Can't connect to {display_dsn(url)}: {exc}",
                details={"dsn": display_dsn(url)},
            ) from exc
        with conn:
            version = ensure_schema(conn, spec)
            logger.debug("Connected to %s (schema v%d)", display_dsn(url), version)
            yield conn
    finally:
        engine.dispose()
