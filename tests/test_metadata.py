"""Tests for metadata helpers."""

from __future__ import annotations

import pytest

from apicat import metadata


def test_clean_makes_values_json_safe() -> None:
    cleaned = metadata.clean(
        {
            1: (1, 2),
            "set": {"b", "a"},
            "type": int,
            "nan": float("nan"),
            "raw": b"bytes",
        }
    )
    assert cleaned == {
        "1": [1, 2],
        "set": ["a", "b"],
        "type": "builtins.int",
        "nan": "nan",
        "raw": "bytes",
    }


def test_encode_is_compact_and_sorted() -> None:
    assert metadata.encode({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
    assert metadata.encode(None) is None
    assert metadata.decode(metadata.encode({"a": 1})) == {"a": 1}
    assert metadata.decode("") is None
    assert metadata.decode(b'{"a":1}') == {"a": 1}


def test_is_excluded() -> None:
    assert metadata.is_excluded({"x.no_index": True})
    assert metadata.is_excluded({"x.no_index": 1})
    assert not metadata.is_excluded({"x.no_index": False})
    assert not metadata.is_excluded({})
    assert not metadata.is_excluded(None)


def test_strip_excluded_args_in_place() -> None:
    meta = {"args": {"keep": {"schema": "str"}, "drop": {"x.no_index": True}, "bare": None}}
    assert metadata.strip_excluded_args(meta) is meta
    assert set(meta["args"]) == {"keep", "bare"}


class TestNormalizeFunctionMetadata:

    def test_fills_defaults(self) -> None:
        normalized = metadata.normalize_function_metadata({"summary": "Do it"})
        assert normalized == {"summary": "Do it", "v": 1.1, "args": {}}

    def test_coerces_argument_flags(self) -> None:
        normalized = metadata.normalize_function_metadata(
            {"v": 1.1, "args": {"a": {"req": 1, "pos": 0}, "b": {"greedy": "yes"}, "c": None}}
        )
        assert normalized["args"] == {
            "a": {"req": True, "pos": 0},
            "b": {"req": False, "greedy": True},
            "c": {"req": False},
        }

    def test_rejects_non_mapping_args(self) -> None:
        with pytest.raises(ValueError):
            metadata.normalize_function_metadata({"args": ["a", "b"]})


@pytest.mark.parametrize(
    ("schema", "expected"),
    [
        ("str*", "str"),
        ("int", "int"),
        ("integer", "int"),
        (["array*", {"of": "str"}], "array"),
        ({"type": "object"}, "hash"),
        ({"type": "number"}, "float"),
        ("bool", "bool"),
        ("date", "date"),
        (None, "any"),
        ("", "any"),
        ({}, "any"),
    ],
)
def test_schema_type(schema, expected: str) -> None:
    assert metadata.schema_type(schema) == expected


def test_project_arguments_sorted_by_name() -> None:
    records = metadata.project_arguments(
        {
            "args": {
                "name": {"schema": "str*", "req": True, "pos": 0, "summary": "Who"},
                "count": {"schema": "int"},
            }
        }
    )
    assert records == [
        {"name": "count", "summary": None, "schema": "int", "schema_type": "int", "req": False, "pos": None, "greedy": False},
        {"name": "name", "summary": "Who", "schema": "str*", "schema_type": "str", "req": True, "pos": 0, "greedy": False},
    ]


def test_project_arguments_tolerates_missing_args() -> None:
    assert metadata.project_arguments(None) == []
    assert metadata.project_arguments({"args": "nonsense"}) == []
