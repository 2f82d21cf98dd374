"""Tests for listings and statistics."""

from __future__ import annotations

import pytest

from apicat import query


@pytest.fixture
def catalog(store):
    store.upsert_package("Text::Wrap", summary="Wrap text", dist="text-dist", mtime=1)
    store.upsert_package("Text::Tabs", summary="Tabs", extra="legacy", mtime=1)
    store.upsert_package("Data::Dump", summary="Dump data", dist="Data-Dump", mtime=1)
    store.upsert_function(
        "Text::Wrap",
        "wrap",
        summary="Wrap lines",
        meta={
            "args": {
                "name": {"schema": "str*", "req": True, "pos": 0},
                "count": {"schema": "int", "req": False},
            }
        },
        dist="text-dist",
    )
    store.upsert_function(
        "Text::Wrap",
        "fill",
        meta={"args": {"name": {"schema": ["str*", {}]}, "items": {"schema": ["array*", {"of": "str"}], "greedy": True}}},
    )
    store.upsert_function("Data::Dump", "dump", meta={"args": {"value": {"schema": {"type": "object"}}}})
    store.upsert_function("Data::Dump", "noargs")
    return store


class TestListPackages:

    def test_names_are_sorted(self, conn, catalog) -> None:
        assert query.list_packages(conn) == ["Data::Dump", "Text::Tabs", "Text::Wrap"]

    def test_query_matches_name_dist_and_extra(self, conn, catalog) -> None:
        assert query.list_packages(conn, "Text") == ["Text::Tabs", "Text::Wrap"]
        assert query.list_packages(conn, "text-") == ["Text::Wrap"]
        assert query.list_packages(conn, "legacy") == ["Text::Tabs"]

    def test_query_is_case_sensitive(self, conn, catalog) -> None:
        assert query.list_packages(conn, "text::") == []

    def test_detail_rows(self, conn, catalog) -> None:
        rows = query.list_packages(conn, "Wrap", detail=True)
        assert rows == [
            {"name": "Text::Wrap", "summary": "Wrap text", "dist": "text-dist", "extra": None, "mtime": 1},
        ]


class TestListFunctions:

    def test_all_functions_ordered_by_package_then_name(self, conn, catalog) -> None:
        assert query.list_functions(conn) == [
            "Data::Dump::dump",
            "Data::Dump::noargs",
            "Text::Wrap::fill",
            "Text::Wrap::wrap",
        ]

    def test_package_filter_is_exact(self, conn, catalog) -> None:
        assert query.list_functions(conn, package="Text::Wrap") == ["Text::Wrap::fill", "Text::Wrap::wrap"]
        assert query.list_functions(conn, package="Text") == []

    def test_query_and_detail(self, conn, catalog) -> None:
        rows = query.list_functions(conn, "text-dist", detail=True)
        assert [(row["package"], row["name"]) for row in rows] == [("Text::Wrap", "wrap")]
        assert set(rows[0]) == set(query.FUNCTION_FIELDS)


class TestListArguments:

    def test_projection_sorted_by_name(self, conn, catalog) -> None:
        rows = query.list_arguments(conn, package="Text::Wrap", function="wrap", detail=True)
        assert [row["name"] for row in rows] == ["count", "name"]
        count, name = rows
        assert count["schema_type"] == "int"
        assert count["req"] is False
        assert name["schema_type"] == "str"
        assert name["req"] is True
        assert name["pos"] == 0
        assert set(name) == set(query.ARGUMENT_FIELDS)

    def test_plain_listing(self, conn, catalog) -> None:
        assert query.list_arguments(conn) == [
            "Data::Dump::dump::value",
            "Text::Wrap::fill::items",
            "Text::Wrap::fill::name",
            "Text::Wrap::wrap::count",
            "Text::Wrap::wrap::name",
        ]

    def test_type_filter(self, conn, catalog) -> None:
        assert query.list_arguments(conn, type="str") == ["Text::Wrap::fill::name", "Text::Wrap::wrap::name"]
        assert query.list_arguments(conn, type="array") == ["Text::Wrap::fill::items"]
        assert query.list_arguments(conn, type="hash") == ["Data::Dump::dump::value"]

    def test_query_matches_argument_name(self, conn, catalog) -> None:
        assert query.list_arguments(conn, "coun") == ["Text::Wrap::wrap::count"]

    def test_greedy_flag(self, conn, catalog) -> None:
        rows = query.list_arguments(conn, "items", detail=True)
        assert rows[0]["greedy"] is True


class TestStats:

    def test_function_stats(self, conn, catalog) -> None:
        assert query.function_stats(conn) == [
            {"package": "Data::Dump", "name": "dump", "num_args": 1},
            {"package": "Data::Dump", "name": "noargs", "num_args": 0},
            {"package": "Text::Wrap", "name": "fill", "num_args": 2},
            {"package": "Text::Wrap", "name": "wrap", "num_args": 2},
        ]

    def test_argument_stats(self, conn, catalog) -> None:
        assert query.argument_stats(conn) == [
            {"name": "count", "num_functions": 1},
            {"name": "items", "num_functions": 1},
            {"name": "name", "num_functions": 2},
            {"name": "value", "num_functions": 1},
        ]

    def test_stats(self, conn, catalog) -> None:
        assert query.stats(conn, "sqlite:///x.db") == {
            "num_packages": 3,
            "num_functions": 4,
            "num_arguments": 5,
            "avg_num_args": 1.25,
            "dsn": "sqlite:///x.db",
        }

    def test_stats_on_empty_catalog(self, conn) -> None:
        result = query.stats(conn, "sqlite://")
        assert result["num_functions"] == 0
        assert result["avg_num_args"] == 0
