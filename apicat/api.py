"""Public operations of apicat.

Each operation opens a connection (bringing the schema up to date), does its
work, and returns a :class:`~apicat.result.CatalogResult`. Failures never
raise out of these functions; a non-200 status is the error signal.

Connection keywords accepted by every operation: ``dsn``, ``user`` and
``password``. Unset values come from :class:`~apicat.config.CatalogConfig`.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable, Mapping, Sequence
from functools import wraps
from typing import Any

from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError

from apicat import metadata as metadata_utils
from apicat import query as catalog_query
from apicat.config import CatalogConfig
from apicat.db import connect, display_dsn
from apicat.errors import CatalogError, InputError, InternalError, NotFound
from apicat.providers.base import MetadataProvider, ModuleLoader
from apicat.providers.python import PythonLoader, PythonProvider
from apicat.result import CatalogResult
from apicat.store import CatalogStore
from apicat.sync import ProgressCallback, Synchronizer

logger = logging.getLogger(__name__)


def _operation(func: Callable[..., Any]) -> Callable[..., CatalogResult[Any]]:
    """Run ``func(conn, ...)`` on a fresh connection and wrap the outcome."""

    @wraps(func)
    def _wrapped(
        *args: Any,
        dsn: str | None = None,
        user: str | None = None,
        password: str | None = None,
        **kwargs: Any,
    ) -> CatalogResult[Any]:
        config = CatalogConfig()
        try:
            with connect(
                dsn or config.dsn,
                user if user is not None else config.user,
                password if password is not None else config.password,
            ) as conn:
                payload = func(conn, *args, **kwargs)
        except CatalogError as exc:
            logger.debug("%s failed: %s", func.__name__, exc.message)
            return CatalogResult.from_error(exc)
        except SQLAlchemyError as exc:
            logger.debug("%s failed", func.__name__, exc_info=True)
            return CatalogResult.from_error(InternalError(f"Database error: {exc}"))
        return CatalogResult.success(payload)

    return _wrapped


@_operation
def update_from_modules(
    conn: Connection,
    module_or_package: Sequence[str],
    *,
    exclude: Sequence[str] = (),
    force: bool = False,
    delete: bool = True,
    dry_run: bool = False,
    library: Sequence[str] = (),
    use: Sequence[str] = (),
    provider: MetadataProvider | None = None,
    loader: ModuleLoader | None = None,
    progress: ProgressCallback | None = None,
) -> dict[str, Any]:
    """Update the catalog from code units named by selectors."""

    if not module_or_package:
        raise InputError("At least one module or package selector is required", code="E1102")
    loader = loader or PythonLoader()
    for path in library:
        if path not in sys.path:
            sys.path.insert(0, path)
    for name in use:
        loader.load(name)

    synchronizer = Synchronizer(
        CatalogStore(conn),
        provider or PythonProvider(),
        loader,
        progress=progress,
    )
    report = synchronizer.run(
        module_or_package,
        exclude=exclude,
        force=force,
        delete=delete,
        dry_run=dry_run,
    )
    return report.as_payload()


@_operation
def update(
    conn: Connection,
    package: str,
    metadata: Mapping[str, Any],
    *,
    function: str | None = None,
    dist: str | None = None,
    extra: str | None = None,
) -> None:
    """Add or update the metadata of one package or function."""

    if not isinstance(metadata, Mapping):
        raise InputError("Metadata must be a mapping", code="E1103")
    store = CatalogStore(conn)
    now = int(time.time())

    if function is None:
        store.upsert_package(
            package,
            summary=metadata.get("summary"),
            meta=metadata,
            dist=dist,
            extra=extra,
            mtime=now,
        )
        return None

    try:
        meta = metadata_utils.normalize_function_metadata(metadata)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Invalid function metadata: {exc}", code="E1104") from exc
    if store.get_package(package) is None:
        store.upsert_package(package, dist=dist, mtime=now)
    store.upsert_function(
        package,
        function,
        summary=meta.get("summary"),
        meta=meta,
        dist=dist,
        extra=extra,
        mtime=now,
    )
    return None


@_operation
def delete(conn: Connection, package: str, *, function: str | None = None) -> None:
    """Delete one function, or a package together with its functions."""

    store = CatalogStore(conn)
    if function is not None:
        if not store.delete_function(package, function):
            raise NotFound(f"No function {function!r} in package {package!r}")
        return None
    if store.get_package(package) is None:
        raise NotFound(f"No package named {package!r}")
    store.purge_package(package)
    return None


@_operation
def packages(conn: Connection, query: str | None = None, *, detail: bool = False) -> list[Any]:
    """List packages."""
    return catalog_query.list_packages(conn, query, detail=detail)


@_operation
def functions(
    conn: Connection,
    query: str | None = None,
    *,
    package: str | None = None,
    detail: bool = False,
) -> list[Any]:
    """List functions."""
    return catalog_query.list_functions(conn, query, package=package, detail=detail)


@_operation
def arguments(
    conn: Connection,
    query: str | None = None,
    *,
    package: str | None = None,
    function: str | None = None,
    type: str | None = None,
    detail: bool = False,
) -> list[Any]:
    """List function arguments."""
    return catalog_query.list_arguments(
        conn,
        query,
        package=package,
        function=function,
        type=type,
        detail=detail,
    )


@_operation
def stats(conn: Connection) -> dict[str, Any]:
    """Show some statistics."""
    return catalog_query.stats(conn, display_dsn(conn.engine.url))


@_operation
def function_stats(conn: Connection) -> list[dict[str, Any]]:
    """Show per-function statistics."""
    return catalog_query.function_stats(conn)


@_operation
def argument_stats(conn: Connection) -> list[dict[str, Any]]:
    """Show argument-name statistics."""
    return catalog_query.argument_stats(conn)


@_operation
def meta(conn: Connection, name: str) -> dict[str, Any]:
    """Get the metadata of a function (``Pkg::func``) or a package."""
    return CatalogStore(conn).get_metadata(name)
