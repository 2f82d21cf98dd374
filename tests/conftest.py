"""Shared test fixtures for apicat tests."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import pytest
from sqlalchemy import Connection
from typer.testing import CliRunner

from apicat.db import connect
from apicat.errors import LoadFailure
from apicat.providers.base import MetadataProvider, ModuleLoader, ProviderResponse
from apicat.store import CatalogStore
from apicat.sync import Synchronizer


@dataclass
class FakeUnit:
    meta: dict[str, Any]
    functions: dict[str, dict[str, Any]] = field(default_factory=dict)
    mtime: int | None = 100
    loadable: bool = True


class FakeCodebase:
    """In-memory stand-in for importable code."""

    def __init__(self) -> None:
        self.units: dict[str, FakeUnit] = {}
        self.loaded: set[str] = set()
        self.describe_calls: list[tuple[str, str | None]] = []

    def add(
        self,
        name: str,
        *,
        summary: str | None = None,
        functions: dict[str, dict[str, Any]] | None = None,
        mtime: int | None = 100,
        meta: dict[str, Any] | None = None,
        loadable: bool = True,
    ) -> FakeUnit:
        unit = FakeUnit(
            meta={"v": 1.1, "summary": summary, **(meta or {})},
            functions=dict(functions or {}),
            mtime=mtime,
            loadable=loadable,
        )
        self.units[name] = unit
        return unit

    def remove(self, name: str) -> None:
        self.units.pop(name, None)
        self.loaded.discard(name)


class FakeLoader(ModuleLoader):
    def __init__(self, codebase: FakeCodebase) -> None:
        self.codebase = codebase

    def load(self, name: str) -> None:
        unit = self.codebase.units.get(name)
        if unit is None or not unit.loadable:
            raise LoadFailure(name, f"No module named {name!r}")
        self.codebase.loaded.add(name)

    def list_modules(self, prefix: str) -> list[str]:
        return sorted(name for name in self.codebase.units if name.startswith(prefix + "::"))

    def list_subpackages(self, prefix: str) -> list[str]:
        return sorted(name for name in self.codebase.loaded if name.startswith(prefix + "::"))

    def source_mtime(self, name: str) -> int | None:
        unit = self.codebase.units.get(name)
        return unit.mtime if unit is not None else None


class FakeProvider(MetadataProvider):
    def __init__(self, codebase: FakeCodebase) -> None:
        self.codebase = codebase

    def describe(self, package: str, function: str | None = None) -> ProviderResponse:
        self.codebase.describe_calls.append((package, function))
        unit = self.codebase.units.get(package)
        if unit is None:
            return ProviderResponse.not_found(f"Package {package} not found")
        if function is None:
            return ProviderResponse.success(copy.deepcopy(unit.meta))
        if function not in unit.functions:
            return ProviderResponse.not_found(f"No function {function} in {package}")
        return ProviderResponse.success(copy.deepcopy(unit.functions[function]))

    def enumerate(self, package: str) -> ProviderResponse:
        unit = self.codebase.units.get(package)
        if unit is None:
            return ProviderResponse.not_found(f"Package {package} not found")
        return ProviderResponse.success(list(unit.functions))


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch) -> None:
    """Keep user config, env vars and the home catalog out of every test."""
    for key in ("APICAT_DSN", "APICAT_USER", "APICAT_PASSWORD", "APICAT_OUTPUT", "APICAT_NO_COLOR",
                "APICAT_LOG_LEVEL", "NO_COLOR"):
        monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)


@pytest.fixture
def runner() -> CliRunner:
    """Provide a CLI test runner."""
    return CliRunner()


@pytest.fixture
def dsn(tmp_path) -> str:
    return f"sqlite:///{(tmp_path / 'catalog.db').as_posix()}"


@pytest.fixture
def conn(dsn: str) -> Iterator[Connection]:
    with connect(dsn) as connection:
        yield connection


@pytest.fixture
def store(conn: Connection) -> CatalogStore:
    return CatalogStore(conn)


@pytest.fixture
def codebase() -> FakeCodebase:
    return FakeCodebase()


@pytest.fixture
def loader(codebase: FakeCodebase) -> FakeLoader:
    return FakeLoader(codebase)


@pytest.fixture
def provider(codebase: FakeCodebase) -> FakeProvider:
    return FakeProvider(codebase)


@pytest.fixture
def synchronizer(store: CatalogStore, provider: FakeProvider, loader: FakeLoader) -> Synchronizer:
    return Synchronizer(store, provider, loader)
