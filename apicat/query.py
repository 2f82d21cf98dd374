"""Read-only listings and statistics over the catalog.

Substring filters are case-sensitive and applied in Python so they behave
the same on every backend (SQLite's LIKE ignores ASCII case).
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from sqlalchemy import Connection, text

from apicat import metadata
from apicat.selectors import SEPARATOR

PACKAGE_FIELDS = ("name", "summary", "dist", "extra", "mtime")
FUNCTION_FIELDS = ("package", "name", "summary", "dist", "extra", "mtime")
ARGUMENT_FIELDS = ("package", "function", "name", "summary", "schema_type", "req", "pos", "greedy")


def _matches(query: str | None, *values: Any) -> bool:
    if not query:
        return True
    return any(value is not None and query in str(value) for value in values)


def _function_rows(conn: Connection, package: str | None = None, function: str | None = None) -> list[Any]:
    wheres = []
    binds: dict[str, Any] = {}
    if package is not None:
        wheres.append("package = :package")
        binds["package"] = package
    if function is not None:
        wheres.append("name = :name")
        binds["name"] = function
    sql = "SELECT package, name, summary, metadata, dist, extra, mtime FROM function"
    if wheres:
        sql += " WHERE " + " AND ".join(wheres)
    sql += " ORDER BY package, name"
    return list(conn.execute(text(sql), binds).mappings())


def list_packages(conn: Connection, query: str | None = None, *, detail: bool = False) -> list[Any]:
    rows = conn.execute(
        text("SELECT name, summary, dist, extra, mtime FROM package ORDER BY name")
    ).mappings()
    selected = [row for row in rows if _matches(query, row["name"], row["dist"], row["extra"])]
    if detail:
        return [{key: row[key] for key in PACKAGE_FIELDS} for row in selected]
    return [row["name"] for row in selected]


def list_functions(
    conn: Connection,
    query: str | None = None,
    *,
    package: str | None = None,
    detail: bool = False,
) -> list[Any]:
    selected = [
        row
        for row in _function_rows(conn, package)
        if _matches(query, row["package"], row["name"], row["dist"], row["extra"])
    ]
    if detail:
        return [{key: row[key] for key in FUNCTION_FIELDS} for row in selected]
    return [f"{row['package']}{SEPARATOR}{row['name']}" for row in selected]


def list_arguments(
    conn: Connection,
    query: str | None = None,
    *,
    package: str | None = None,
    function: str | None = None,
    type: str | None = None,
    detail: bool = False,
) -> list[Any]:
    results: list[Any] = []
    for row in _function_rows(conn, package, function):
        for arg in metadata.project_arguments(metadata.decode(row["metadata"])):
            if type is not None and arg["schema_type"] != type:
                continue
            if not _matches(query, arg["name"]):
                continue
            if detail:
                record = {"package": row["package"], "function": row["name"], **arg}
                results.append({key: record[key] for key in ARGUMENT_FIELDS})
            else:
                results.append(f"{row['package']}{SEPARATOR}{row['name']}{SEPARATOR}{arg['name']}")
    return results


def function_stats(conn: Connection) -> list[dict[str, Any]]:
    return [
        {
            "package": row["package"],
            "name": row["name"],
            "num_args": len(metadata.project_arguments(metadata.decode(row["metadata"]))),
        }
        for row in _function_rows(conn)
    ]


def argument_stats(conn: Connection) -> list[dict[str, Any]]:
    """Number of distinct functions declaring each argument name."""

    counts: Counter[str] = Counter()
    for row in _function_rows(conn):
        names = {arg["name"] for arg in metadata.project_arguments(metadata.decode(row["metadata"]))}
        counts.update(names)
    return [{"name": name, "num_functions": counts[name]} for name in sorted(counts)]


def stats(conn: Connection, dsn: str) -> dict[str, Any]:
    num_packages = conn.execute(text("SELECT COUNT(*) FROM package")).scalar_one()
    num_functions = conn.execute(text("SELECT COUNT(*) FROM function")).scalar_one()
    num_arguments = sum(entry["num_args"] for entry in function_stats(conn))
    return {
        "num_packages": num_packages,
        "num_functions": num_functions,
        "num_arguments": num_arguments,
        "avg_num_args": round(num_arguments / num_functions, 2) if num_functions else 0,
        "dsn": dsn,
    }
