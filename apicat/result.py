"""Typed result types for the apicat Python API.

``CatalogResult`` is the ``(status, message, payload)`` envelope every public
operation returns. ``ErrorInfo`` is the Python-side representation of a
structured error, convertible back to a ``CatalogError`` via
``to_exception()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import Any, Generic, TypeVar

from apicat.errors import CatalogError, ErrorCategory, InputError, NotFound, Suggestion
from apicat.exit_codes import ExitCode, Status

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorInfo:
    """Structured error attached to a failed result."""

    code: str
    category: str
    message: str
    status: int = int(Status.ERROR)
    suggestion: dict[str, Any] | None = None
    details: dict[str, Any] = dc_field(default_factory=dict)
    exit_code: int = int(ExitCode.INTERNAL_ERROR)

    def to_exception(self) -> CatalogError:
        """Convert back to a ``CatalogError`` (``NotFound``/``InputError`` where they apply)."""
        suggestion_obj: Suggestion | None = None
        if self.suggestion is not None:
            suggestion_obj = Suggestion(**self.suggestion)

        details = self.details if self.details else None
        if self.status == Status.NOT_FOUND:
            return NotFound(self.message, code=self.code, suggestion=suggestion_obj, details=details)
        if self.status == Status.BAD_REQUEST:
            return InputError(self.message, code=self.code, suggestion=suggestion_obj, details=details)
        return CatalogError(
            self.message,
            self.code,
            category=ErrorCategory(self.category),
            status=self.status,
            suggestion=suggestion_obj,
            details=details,
            exit_code=self.exit_code,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category,
            "message": self.message,
            "status": self.status,
            "suggestion": self.suggestion,
            "details": self.details,
        }

    @classmethod
    def from_error(cls, err: CatalogError) -> ErrorInfo:
        return cls(
            code=err.code,
            category=err.category.value,
            message=err.message,
            status=err.status,
            suggestion=err.suggestion.model_dump() if err.suggestion is not None else None,
            details=err.details,
            exit_code=err.exit_code,
        )


@dataclass(frozen=True)
class CatalogResult(Generic[T]):
    """Structured result from an apicat operation.

    Example::

        result = api.packages(query="json")
        if result.ok:
            for name in result.payload:
                print(name)

        # Or, raise on error:
        names = result.unwrap()
    """

    status: int
    message: str = "OK"
    payload: T | None = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.status == Status.OK

    def unwrap(self) -> T:
        """Return the payload, or raise the corresponding ``CatalogError``."""
        if not self.ok:
            if self.error is not None:
                raise self.error.to_exception()
            raise CatalogError(self.message, "E5000", category=ErrorCategory.INTERNAL, status=self.status)
        return self.payload  # type: ignore[return-value]

    @classmethod
    def success(cls, payload: T, message: str = "OK") -> CatalogResult[T]:
        return cls(status=int(Status.OK), message=message, payload=payload)

    @classmethod
    def from_error(cls, err: CatalogError) -> CatalogResult[Any]:
        return cls(status=err.status, message=err.message, error=ErrorInfo.from_error(err))
