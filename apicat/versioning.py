"""Schema versioning for the catalog database.

A :class:`SchemaSpec` is plain data: the DDL for a fresh install at the latest
version plus one list of statements per upgrade step. :func:`ensure_schema`
walks a database up that ladder, recording the reached version after every
step in the ``meta`` table so an interrupted upgrade resumes where it stopped.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sqlalchemy import Connection, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from apicat.errors import MigrationError, SchemaTooNew

logger = logging.getLogger(__name__)

META_TABLE = "meta"
VERSION_KEY = "schema_version"

_CREATE_META = (
    f"CREATE TABLE IF NOT EXISTS {META_TABLE} "
    "(name VARCHAR(64) NOT NULL PRIMARY KEY, value VARCHAR(255))"
)


@dataclass(frozen=True)
class SchemaSpec:
    """Declarative description of every schema version."""

    latest: int
    install: Sequence[str]
    upgrades: Mapping[int, Sequence[str]] = field(default_factory=dict)
    # Full install scripts for historical versions, used to build old databases.
    history: Mapping[int, Sequence[str]] = field(default_factory=dict)

    def validate(self) -> None:
        if self.latest < 1:
            raise MigrationError(f"Invalid latest schema version {self.latest}", version=self.latest)
        missing = [v for v in range(2, self.latest + 1) if v not in self.upgrades]
        if missing:
            raise MigrationError(
                f"Schema spec has no upgrade step for version(s) {missing}",
                version=missing[0],
            )

    def install_script(self, version: int) -> Sequence[str]:
        if version == self.latest:
            return self.install
        try:
            return self.history[version]
        except KeyError:
            raise MigrationError(f"No install script for schema version {version}", version=version) from None


def get_schema_version(conn: Connection) -> int | None:
    """Return the recorded schema version, or None when nothing is recorded."""

    if not inspect(conn).has_table(META_TABLE):
        return None
    value = conn.execute(
        text(f"SELECT value FROM {META_TABLE} WHERE name = :name"),
        {"name": VERSION_KEY},
    ).scalar_one_or_none()
    if value is None:
        return None
    return int(value)


def _set_schema_version(conn: Connection, version: int, *, exists: bool) -> None:
    if exists:
        conn.execute(
            text(f"UPDATE {META_TABLE} SET value = :value WHERE name = :name"),
            {"name": VERSION_KEY, "value": str(version)},
        )
    else:
        conn.execute(
            text(f"INSERT INTO {META_TABLE} (name, value) VALUES (:name, :value)"),
            {"name": VERSION_KEY, "value": str(version)},
        )


def _run_statements(conn: Connection, statements: Sequence[str], *, version: int) -> None:
    for statement in statements:
        logger.debug("Schema v%d: %s", version, statement)
        try:
            conn.execute(text(statement))
        except SQLAlchemyError as exc:
            conn.rollback()
            raise MigrationError(
                f"Failed to apply schema version {version}: {exc}",
                version=version,
                details={"statement": statement},
            ) from exc


def install_schema(conn: Connection, spec: SchemaSpec, version: int | None = None) -> int:
    """Install the schema at ``version`` (latest by default) on an empty database."""

    target = spec.latest if version is None else version
    statements = spec.install_script(target)
    logger.debug("Installing schema version %d", target)
    conn.execute(text(_CREATE_META))
    _run_statements(conn, statements, version=target)
    _set_schema_version(conn, target, exists=False)
    conn.commit()
    return target


def ensure_schema(conn: Connection, spec: SchemaSpec) -> int:
    """Create or upgrade the database schema to ``spec.latest``.

    Returns the version the database is at afterwards. Raises
    :class:`SchemaTooNew` when the stored version is ahead of ``spec``.
    """

    spec.validate()
    current = get_schema_version(conn)
    # The inspector query may have opened a transaction.
    conn.commit()

    if current is None:
        return install_schema(conn, spec)

    if current > spec.latest:
        raise SchemaTooNew(current, spec.latest)

    if current == spec.latest:
        return current

    if current < 1:
        raise MigrationError(f"Invalid stored schema version {current}", version=current)

    logger.info("Upgrading database schema from version %d to %d", current, spec.latest)
    for version in range(current + 1, spec.latest + 1):
        _run_statements(conn, spec.upgrades[version], version=version)
        _set_schema_version(conn, version, exists=True)
        conn.commit()
        current = version
    return current
