"""Catalog table layout and its migration ladder."""

from __future__ import annotations

from apicat.versioning import SchemaSpec

LATEST_VERSION = 5

_PACKAGE_V5 = (
    "CREATE TABLE IF NOT EXISTS package ("
    "name VARCHAR(255) NOT NULL PRIMARY KEY, summary TEXT, metadata TEXT, "
    "dist TEXT, extra TEXT, mtime INT)"
)
_FUNCTION_V5 = (
    "CREATE TABLE IF NOT EXISTS function ("
    "package VARCHAR(255) NOT NULL, name VARCHAR(255) NOT NULL, summary TEXT, metadata TEXT, "
    "dist TEXT, extra TEXT, mtime INT, UNIQUE(package, name))"
)

_PACKAGE_V2 = (
    "CREATE TABLE IF NOT EXISTS package ("
    "name VARCHAR(255) NOT NULL PRIMARY KEY, summary TEXT, metadata TEXT, mtime INT)"
)
_FUNCTION_V2 = (
    "CREATE TABLE IF NOT EXISTS function ("
    "package VARCHAR(255) NOT NULL, name VARCHAR(255) NOT NULL, summary TEXT, metadata TEXT, "
    "UNIQUE(package, name))"
)

_UPGRADE_TO_V3 = (
    "ALTER TABLE package ADD COLUMN dist TEXT",
    "ALTER TABLE package ADD COLUMN extra TEXT",
    "ALTER TABLE function ADD COLUMN extra TEXT",
)

CATALOG_SCHEMA = SchemaSpec(
    latest=LATEST_VERSION,
    install=(_PACKAGE_V5, _FUNCTION_V5),
    upgrades={
        # "module" became "package". Renaming columns is painful in SQLite and
        # nothing before v2 was released, so drop and rebuild.
        2: (
            "DROP TABLE module",
            _PACKAGE_V2,
            "DROP TABLE function",
            _FUNCTION_V2,
        ),
        3: _UPGRADE_TO_V3,
        4: ("ALTER TABLE function ADD COLUMN dist TEXT",),
        5: ("ALTER TABLE function ADD COLUMN mtime INT",),
    },
    history={
        1: (
            "CREATE TABLE IF NOT EXISTS module ("
            "name VARCHAR(255) NOT NULL PRIMARY KEY, summary TEXT, metadata TEXT, mtime INT)",
            "CREATE TABLE IF NOT EXISTS function ("
            "module VARCHAR(255) NOT NULL, name VARCHAR(255) NOT NULL, summary TEXT, metadata TEXT, "
            "UNIQUE(module, name))",
        ),
        2: (_PACKAGE_V2, _FUNCTION_V2),
        3: (_PACKAGE_V2, _FUNCTION_V2, *_UPGRADE_TO_V3),
        4: (
            "CREATE TABLE IF NOT EXISTS package ("
            "name VARCHAR(255) NOT NULL PRIMARY KEY, summary TEXT, metadata TEXT, "
            "dist TEXT, extra TEXT, mtime INT)",
            "CREATE TABLE IF NOT EXISTS function ("
            "package VARCHAR(255) NOT NULL, name VARCHAR(255) NOT NULL, summary TEXT, metadata TEXT, "
            "dist TEXT, extra TEXT, UNIQUE(package, name))",
        ),
    },
)
