"""apicat: a catalog of package and function metadata backed by SQL."""

from __future__ import annotations

from apicat.errors import (
    CatalogError,
    ConnectionFailure,
    FetchFailure,
    InputError,
    InternalError,
    LoadFailure,
    MigrationError,
    NotFound,
    SchemaTooNew,
)
from apicat.result import CatalogResult, ErrorInfo

__version__ = "0.5.0"
__all__ = [
    "CatalogError",
    "CatalogResult",
    "ConnectionFailure",
    "ErrorInfo",
    "FetchFailure",
    "InputError",
    "InternalError",
    "LoadFailure",
    "MigrationError",
    "NotFound",
    "SchemaTooNew",
    "__version__",
]
