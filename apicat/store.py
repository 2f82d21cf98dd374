"""Persistence for packages and functions.

No foreign key ties ``function.package`` to ``package.name``; callers delete a
package's functions before the package itself. Every mutation is committed on
its own.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Connection, RowMapping, text

from apicat import metadata
from apicat.errors import NotFound
from apicat.selectors import SEPARATOR

logger = logging.getLogger(__name__)

PACKAGE_COLUMNS = ("name", "summary", "metadata", "dist", "extra", "mtime")
FUNCTION_COLUMNS = ("package", "name", "summary", "metadata", "dist", "extra", "mtime")


class CatalogStore:
    """CRUD over the ``package`` and ``function`` tables."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def _write(self, sql: str, params: Mapping[str, Any]) -> int:
        result = self.conn.execute(text(sql), dict(params))
        self.conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def get_package(self, name: str) -> RowMapping | None:
        return self.conn.execute(
            text("SELECT name, summary, metadata, dist, extra, mtime FROM package WHERE name = :name"),
            {"name": name},
        ).mappings().first()

    def package_names(self) -> list[str]:
        return list(self.conn.execute(text("SELECT name FROM package ORDER BY name")).scalars())

    def upsert_package(
        self,
        name: str,
        *,
        summary: str | None = None,
        meta: Mapping[str, Any] | None = None,
        dist: str | None = None,
        extra: str | None = None,
        mtime: int | None = None,
    ) -> None:
        params = {
            "name": name,
            "summary": summary,
            "metadata": metadata.encode(meta),
            "dist": dist,
            "extra": extra,
            "mtime": mtime,
        }
        if self.get_package(name) is None:
            logger.debug("Inserting package %s", name)
            self._write(
                "INSERT INTO package (name, summary, metadata, dist, extra, mtime) "
                "VALUES (:name, :summary, :metadata, :dist, :extra, :mtime)",
                params,
            )
        else:
            logger.debug("Updating package %s", name)
            self._write(
                "UPDATE package SET summary = :summary, metadata = :metadata, dist = :dist, "
                "extra = :extra, mtime = :mtime WHERE name = :name",
                params,
            )

    def delete_package(self, name: str) -> int:
        """Delete the package row only; see :meth:`delete_functions`."""
        return self._write("DELETE FROM package WHERE name = :name", {"name": name})

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def get_function(self, package: str, name: str) -> RowMapping | None:
        return self.conn.execute(
            text(
                "SELECT package, name, summary, metadata, dist, extra, mtime FROM function "
                "WHERE package = :package AND name = :name"
            ),
            {"package": package, "name": name},
        ).mappings().first()

    def function_names(self, package: str) -> list[str]:
        return list(
            self.conn.execute(
                text("SELECT name FROM function WHERE package = :package ORDER BY name"),
                {"package": package},
            ).scalars()
        )

    def upsert_function(
        self,
        package: str,
        name: str,
        *,
        summary: str | None = None,
        meta: Mapping[str, Any] | None = None,
        dist: str | None = None,
        extra: str | None = None,
        mtime: int | None = None,
    ) -> None:
        params = {
            "package": package,
            "name": name,
            "summary": summary,
            "metadata": metadata.encode(meta),
            "dist": dist,
            "extra": extra,
            "mtime": mtime,
        }
        if self.get_function(package, name) is None:
            self._write(
                "INSERT INTO function (package, name, summary, metadata, dist, extra, mtime) "
                "VALUES (:package, :name, :summary, :metadata, :dist, :extra, :mtime)",
                params,
            )
        else:
            self._write(
                "UPDATE function SET summary = :summary, metadata = :metadata, dist = :dist, "
                "extra = :extra, mtime = :mtime WHERE package = :package AND name = :name",
                params,
            )

    def delete_function(self, package: str, name: str) -> int:
        return self._write(
            "DELETE FROM function WHERE package = :package AND name = :name",
            {"package": package, "name": name},
        )

    def delete_functions(self, package: str) -> int:
        return self._write("DELETE FROM function WHERE package = :package", {"package": package})

    def purge_package(self, name: str) -> None:
        """Delete a package's function rows, then the package row."""
        self.delete_functions(name)
        self.delete_package(name)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_metadata(self, name: str) -> dict[str, Any]:
        """Metadata of ``Pkg::func`` or, failing that, of the package ``name``."""

        if SEPARATOR in name:
            package, _, function = name.rpartition(SEPARATOR)
            row = self.get_function(package, function)
            if row is not None:
                return metadata.decode(row["metadata"]) or {}

        row = self.get_package(name)
        if row is None:
            raise NotFound(f"No package or function named {name!r}", details={"name": name})
        return metadata.decode(row["metadata"]) or {}
