"""Interfaces to the collaborators synchronization depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderResponse:
    """Status, message and payload returned by a metadata provider."""

    status: int
    message: str = "OK"
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.status == 200

    @classmethod
    def success(cls, payload: Any) -> ProviderResponse:
        return cls(200, "OK", payload)

    @classmethod
    def not_found(cls, message: str) -> ProviderResponse:
        return cls(404, message)


class MetadataProvider(ABC):
    """Source of package and function metadata."""

    @abstractmethod
    def describe(self, package: str, function: str | None = None) -> ProviderResponse:
        """Return the metadata of a package, or of one of its functions."""

    @abstractmethod
    def enumerate(self, package: str) -> ProviderResponse:
        """Return the names of the functions a package exposes."""


class ModuleLoader(ABC):
    """Makes code units available to a :class:`MetadataProvider`."""

    @abstractmethod
    def load(self, name: str) -> None:
        """Load ``name``; raises :class:`~apicat.errors.LoadFailure`."""

    @abstractmethod
    def list_modules(self, prefix: str) -> list[str]:
        """Every loadable unit under ``prefix``, recursively."""

    @abstractmethod
    def list_subpackages(self, prefix: str) -> list[str]:
        """Already-loaded packages under ``prefix``, recursively, without loading."""

    @abstractmethod
    def source_mtime(self, name: str) -> int | None:
        """Modification time of the unit's source, or None when it can't be located."""
