"""Metadata provider and loader for Python modules.

Catalog names use ``::`` where Python uses ``.``: the package ``json::decoder``
is the module ``json.decoder``. Modules and functions can adjust what gets
recorded through an ``__apicat_meta__`` mapping, e.g.
``__apicat_meta__ = {"x.no_index": True}`` keeps a module out of the catalog
and ``{"args": {"token": {"x.no_index": True}}}`` on a function hides one
argument.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import importlib.util
import inspect
import logging
import os
import pkgutil
import sys
import types
import typing
from collections.abc import Mapping
from types import ModuleType
from typing import Any

from apicat import metadata
from apicat.errors import LoadFailure
from apicat.providers.base import MetadataProvider, ModuleLoader, ProviderResponse
from apicat.selectors import SEPARATOR

logger = logging.getLogger(__name__)

OVERRIDE_ATTR = "__apicat_meta__"

_SCHEMA_BY_TYPE: dict[Any, str] = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    list: "array",
    tuple: "array",
    set: "array",
    frozenset: "array",
    dict: "hash",
    bytes: "buf",
}
_SCHEMA_BY_NAME = {tp.__name__: schema for tp, schema in _SCHEMA_BY_TYPE.items()}


def to_module_name(name: str) -> str:
    return name.replace(SEPARATOR, ".")


def to_catalog_name(module_name: str) -> str:
    return module_name.replace(".", SEPARATOR)


def _split_doc(doc: str | None) -> tuple[str | None, str | None]:
    if not doc:
        return None, None
    summary, _, rest = doc.strip().partition("\n")
    return summary.strip() or None, rest.strip() or None


def _annotation_schema(annotation: Any) -> str:
    if annotation is inspect.Parameter.empty or annotation is None:
        return "any"
    if isinstance(annotation, str):
        base = annotation.split("|")[0].split("[")[0].strip()
        return _SCHEMA_BY_NAME.get(base, "any")

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        return _annotation_schema(members[0]) if len(members) == 1 else "any"
    return _SCHEMA_BY_TYPE.get(origin or annotation, "any")


def _type_hints(func: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError, AttributeError):
        # Unresolvable forward references: fall back to the raw annotations.
        return {}


class PythonLoader(ModuleLoader):
    """Imports modules and walks packages with importlib/pkgutil."""

    def load(self, name: str) -> None:
        module_name = to_module_name(name)
        logger.debug("Loading module %s ...", module_name)
        try:
            importlib.import_module(module_name)
        except Exception as exc:  # importing runs arbitrary module code
            raise LoadFailure(name, f"{type(exc).__name__}: {exc}") from exc

    def list_modules(self, prefix: str) -> list[str]:
        self.load(prefix)
        package_name = to_module_name(prefix)
        path = getattr(sys.modules[package_name], "__path__", None)
        if path is None:
            return []

        def _onerror(failed: str) -> None:
            raise LoadFailure(to_catalog_name(failed), "import failed while listing modules")

        logger.debug("Listing all modules under %s ...", package_name)
        try:
            found = {
                info.name
                for info in pkgutil.walk_packages(path, prefix=package_name + ".", onerror=_onerror)
            }
        except LoadFailure:
            raise
        except Exception as exc:
            raise LoadFailure(prefix, f"{type(exc).__name__}: {exc}") from exc
        return sorted(to_catalog_name(module_name) for module_name in found)

    def list_subpackages(self, prefix: str) -> list[str]:
        package_name = to_module_name(prefix) + "."
        return sorted(
            to_catalog_name(module_name)
            for module_name, module in list(sys.modules.items())
            if module is not None and module_name.startswith(package_name)
        )

    def source_mtime(self, name: str) -> int | None:
        module_name = to_module_name(name)
        module = sys.modules.get(module_name)
        path = getattr(module, "__file__", None) if module is not None else None
        if path is None:
            try:
                spec = importlib.util.find_spec(module_name)
            except (ImportError, ValueError):
                spec = None
            if spec is not None and spec.has_location:
                path = spec.origin
        if not path or not os.path.isfile(path):
            return None
        return int(os.stat(path).st_mtime)


class PythonProvider(MetadataProvider):
    """Describes loaded Python modules and their public functions."""

    def __init__(self) -> None:
        self._distributions: Mapping[str, list[str]] | None = None

    def _module(self, package: str) -> ModuleType | None:
        return sys.modules.get(to_module_name(package))

    def _dist_of(self, module_name: str) -> str | None:
        if self._distributions is None:
            self._distributions = importlib.metadata.packages_distributions()
        dists = self._distributions.get(module_name.partition(".")[0]) or []
        return dists[0] if dists else None

    def describe(self, package: str, function: str | None = None) -> ProviderResponse:
        module = self._module(package)
        if module is None:
            return ProviderResponse.not_found(f"Package {package} is not loaded")
        if function is None:
            return ProviderResponse.success(self._package_meta(module))

        func = getattr(module, function, None)
        if func is None or not callable(func):
            return ProviderResponse.not_found(f"No function {function} in {package}")
        meta = self._function_meta(func)
        dist = self._dist_of(module.__name__)
        if dist:
            meta.setdefault(metadata.DIST_KEY, dist)
        return ProviderResponse.success(meta)

    def enumerate(self, package: str) -> ProviderResponse:
        module = self._module(package)
        if module is None:
            return ProviderResponse.not_found(f"Package {package} is not loaded")
        public = getattr(module, "__all__", None)
        names = [
            name
            for name, obj in inspect.getmembers(module, inspect.isfunction)
            if obj.__module__ == module.__name__
            and not name.startswith("_")
            and (public is None or name in public)
        ]
        return ProviderResponse.success(names)

    def _package_meta(self, module: ModuleType) -> dict[str, Any]:
        summary, description = _split_doc(inspect.getdoc(module))
        meta: dict[str, Any] = {
            "v": metadata.METADATA_VERSION,
            "summary": summary,
            "description": description,
        }
        version = getattr(module, "__version__", None)
        if version is not None:
            meta["entity_v"] = str(version)
        dist = self._dist_of(module.__name__)
        if dist:
            meta[metadata.DIST_KEY] = dist
        meta.update(getattr(module, OVERRIDE_ATTR, None) or {})
        return metadata.clean(meta)

    def _function_meta(self, func: Any) -> dict[str, Any]:
        summary, description = _split_doc(inspect.getdoc(func))
        args: dict[str, dict[str, Any]] = {}
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            signature = None

        if signature is not None:
            hints = _type_hints(func)
            pos = 0
            for param in signature.parameters.values():
                if param.kind is param.VAR_KEYWORD:
                    continue
                spec: dict[str, Any] = {
                    "schema": _annotation_schema(hints.get(param.name, param.annotation)),
                    "req": param.default is param.empty and param.kind is not param.VAR_POSITIONAL,
                }
                if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
                    spec["pos"] = pos
                    pos += 1
                elif param.kind is param.VAR_POSITIONAL:
                    spec["pos"] = pos
                    spec["greedy"] = True
                    spec["schema"] = ["array", {"of": spec["schema"]}]
                if param.default is not param.empty:
                    spec["default"] = param.default
                args[param.name] = spec

        meta: dict[str, Any] = {
            "v": metadata.METADATA_VERSION,
            "summary": summary,
            "description": description,
            "args": args,
        }
        for key, value in (getattr(func, OVERRIDE_ATTR, None) or {}).items():
            if key == "args" and isinstance(value, Mapping):
                for arg_name, override in value.items():
                    args.setdefault(arg_name, {}).update(override)
            else:
                meta[key] = value
        return metadata.clean(meta)
