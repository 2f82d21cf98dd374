"""apicat error hierarchy and structured error models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel

from apicat.exit_codes import ExitCode, Status


def _default_exit_code(category: ErrorCategory) -> ExitCode:
    mapping = {
        ErrorCategory.INPUT: ExitCode.INVALID_INPUT,
        ErrorCategory.STATE: ExitCode.STATE_ERROR,
        ErrorCategory.RUNTIME: ExitCode.RUNTIME_UNAVAILABLE,
        ErrorCategory.INTERNAL: ExitCode.INTERNAL_ERROR,
    }
    return mapping[category]


class ErrorCategory(str, Enum):
    INPUT = "input"
    STATE = "state"
    RUNTIME = "runtime"
    INTERNAL = "internal"


class Suggestion(BaseModel):
    action: str
    fix: str
    example: str | None = None


class CatalogError(Exception):
    """Base error for every failure an apicat operation can report."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory = ErrorCategory.RUNTIME,
        status: Status | int = Status.ERROR,
        suggestion: Suggestion | None = None,
        details: dict[str, Any] | None = None,
        exit_code: ExitCode | int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.status = int(status)
        self.suggestion = suggestion
        self.details = details or {}
        resolved_exit_code = exit_code if exit_code is not None else _default_exit_code(category)
        self.exit_code = int(resolved_exit_code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "category": self.category.value,
            "status": self.status,
            "suggestion": self.suggestion.model_dump() if self.suggestion else None,
            "details": self.details,
        }


class InputError(CatalogError):
    """E1xxx: Input validation failures."""

    def __init__(
        self,
        message: str,
        code: str = "E1000",
        suggestion: Suggestion | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            category=ErrorCategory.INPUT,
            status=Status.BAD_REQUEST,
            suggestion=suggestion,
            details=details,
        )


class NotFound(CatalogError):
    """E3404: A lookup by name matched nothing. Recoverable."""

    def __init__(
        self,
        message: str,
        code: str = "E3404",
        suggestion: Suggestion | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            category=ErrorCategory.STATE,
            status=Status.NOT_FOUND,
            suggestion=suggestion,
            details=details,
            exit_code=ExitCode.NOT_FOUND,
        )


class SchemaTooNew(CatalogError):
    """E3501: The database was written by a newer apicat."""

    def __init__(self, stored_version: int, latest_version: int) -> None:
        super().__init__(
            f"Database schema version {stored_version} is newer than the latest "
            f"version this apicat knows about ({latest_version})",
            "E3501",
            category=ErrorCategory.STATE,
            suggestion=Suggestion(
                action="upgrade apicat",
                fix="Install a newer apicat release, or point --dsn at another database.",
            ),
            details={"stored_version": stored_version, "latest_version": latest_version},
        )
        self.stored_version = stored_version
        self.latest_version = latest_version


class MigrationError(CatalogError):
    """E3502: A schema upgrade step could not be applied."""

    def __init__(self, message: str, *, version: int, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            "E3502",
            category=ErrorCategory.STATE,
            details={"version": version, **(details or {})},
        )
        self.version = version


class ConnectionFailure(CatalogError):
    """E4001: The database could not be opened or reached."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            "E4001",
            category=ErrorCategory.RUNTIME,
            suggestion=Suggestion(
                action="check dsn",
                fix="Verify the --dsn value, credentials, and that the database server is reachable.",
                example="apicat stats --dsn sqlite:///catalog.db",
            ),
            details=details,
        )


class LoadFailure(CatalogError):
    """E4101: A selector could not be resolved to loadable code."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(
            f"Can't load {name}: {reason}",
            "E4101",
            category=ErrorCategory.RUNTIME,
            suggestion=Suggestion(
                action="fix import path",
                fix="Make the module importable (see --library) or exclude it with --exclude.",
            ),
            details={"name": name},
        )
        self.name = name


class FetchFailure(CatalogError):
    """E4201: The metadata provider returned a non-success status."""

    def __init__(self, locator: str, status: int, reason: str) -> None:
        super().__init__(
            f"Can't fetch metadata for {locator}: {status} - {reason}",
            "E4201",
            category=ErrorCategory.RUNTIME,
            details={"locator": locator, "provider_status": status},
        )
        self.locator = locator
        self.provider_status = status


class InternalError(CatalogError):
    """E5000: Uncaught exceptions or database failures."""

    def __init__(
        self,
        message: str,
        code: str = "E5000",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            category=ErrorCategory.INTERNAL,
            details=details,
            exit_code=ExitCode.INTERNAL_ERROR,
        )
