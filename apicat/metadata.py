"""Helpers for the metadata structures produced by providers.

The store treats metadata as an opaque JSON blob. Only the well-known keys
below are looked at: the ``x.no_index`` exclude marker (on a package, a
function, or a single argument), ``x.dist`` (originating distribution), and
the function ``args`` mapping that argument listings are derived from.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

EXCLUDE_KEY = "x.no_index"
DIST_KEY = "x.dist"
METADATA_VERSION = 1.1

_TYPE_ALIASES = {
    "str": "str",
    "string": "str",
    "int": "int",
    "integer": "int",
    "float": "float",
    "num": "float",
    "number": "float",
    "bool": "bool",
    "boolean": "bool",
    "array": "array",
    "list": "array",
    "tuple": "array",
    "hash": "hash",
    "dict": "hash",
    "object": "hash",
    "buf": "buf",
    "bytes": "buf",
    "any": "any",
}


def clean(value: Any) -> Any:
    """Return a JSON-safe copy of ``value``."""

    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Mapping):
        return {str(key): clean(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [clean(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((clean(item) for item in value), key=str)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, type) or callable(value):
        module = getattr(value, "__module__", None)
        qualname = getattr(value, "__qualname__", None) or repr(value)
        return f"{module}.{qualname}" if module else qualname
    return str(value)


def encode(meta: Mapping[str, Any] | None) -> str | None:
    if meta is None:
        return None
    return json.dumps(clean(meta), sort_keys=True, separators=(",", ":"))


def decode(blob: str | bytes | None) -> dict[str, Any] | None:
    if blob is None or blob == "":
        return None
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8")
    return json.loads(blob)


def is_excluded(meta: Mapping[str, Any] | None) -> bool:
    return bool(meta) and bool(meta.get(EXCLUDE_KEY))


def strip_excluded_args(meta: dict[str, Any]) -> dict[str, Any]:
    """Drop argument entries carrying the exclude marker, in place."""

    args = meta.get("args")
    if isinstance(args, dict):
        for name in [name for name, spec in args.items() if isinstance(spec, Mapping) and is_excluded(spec)]:
            del args[name]
    return meta


def normalize_function_metadata(meta: Mapping[str, Any]) -> dict[str, Any]:
    """Fill in the fields every stored function metadata carries."""

    normalized = dict(clean(meta))
    normalized.setdefault("v", METADATA_VERSION)
    args = normalized.get("args") or {}
    if not isinstance(args, Mapping):
        raise ValueError("Function metadata 'args' must be a mapping of argument name to spec")

    normalized_args: dict[str, Any] = {}
    for name, spec in args.items():
        spec = dict(spec or {})
        spec["req"] = bool(spec.get("req", False))
        if "greedy" in spec:
            spec["greedy"] = bool(spec["greedy"])
        normalized_args[str(name)] = spec
    normalized["args"] = normalized_args
    return normalized


def schema_type(schema: Any) -> str:
    """Base scalar type of an argument schema.

    Accepts short schemas (``"str*"``), array form (``["array*", {"of": "str"}]``)
    and JSON-schema-like mappings (``{"type": "integer"}``).
    """

    if isinstance(schema, (list, tuple)) and schema:
        schema = schema[0]
    if isinstance(schema, Mapping):
        schema = schema.get("type")
    if not isinstance(schema, str) or not schema:
        return "any"
    base = schema.strip().rstrip("*").lower()
    return _TYPE_ALIASES.get(base, base or "any")


def project_arguments(meta: Mapping[str, Any] | None) -> list[dict[str, Any]]:
    """Argument records of a function's metadata, sorted by argument name."""

    args = (meta or {}).get("args") or {}
    if not isinstance(args, Mapping):
        return []

    records = []
    for name in sorted(args):
        spec = args[name] if isinstance(args[name], Mapping) else {}
        records.append(
            {
                "name": name,
                "summary": spec.get("summary"),
                "schema": spec.get("schema"),
                "schema_type": schema_type(spec.get("schema")),
                "req": bool(spec.get("req", False)),
                "pos": spec.get("pos"),
                "greedy": bool(spec.get("greedy", False)),
            }
        )
    return records
