"""Output mode resolution and rendering of operation results."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping
from enum import Enum
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from apicat.envelope import Envelope, EnvelopeMeta
from apicat.result import CatalogResult


class OutputMode(str, Enum):
    AUTO = "auto"
    JSON = "json"
    TEXT = "text"


def is_tty() -> bool:
    """Return True if stdout is an interactive terminal.

    This wrapper exists to make TTY behavior testable.
    """

    try:
        return bool(sys.stdout.isatty())
    except (AttributeError, ValueError):
        return False


def parse_output_mode(value: str) -> OutputMode:
    normalized = value.strip().lower()
    for mode in OutputMode:
        if normalized == mode.value:
            return mode
    raise click.BadParameter(f"Invalid output mode: {value!r}")


def resolve_output_mode(explicit: OutputMode | None = None, configured: str | None = None) -> OutputMode:
    """Resolve output mode for the current invocation.

    Precedence:
    1) explicit CLI flag
    2) APICAT_OUTPUT env var / [tool.apicat] output
    3) auto-detection (TTY -> TEXT, non-TTY -> JSON)
    """

    mode = explicit
    if mode is None or mode is OutputMode.AUTO:
        env = os.getenv("APICAT_OUTPUT") or configured
        mode = parse_output_mode(env) if env else OutputMode.AUTO
    if mode is OutputMode.AUTO:
        mode = OutputMode.TEXT if is_tty() else OutputMode.JSON
    return mode


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)


def build_envelope(
    result: CatalogResult[Any],
    *,
    tool: str,
    version: str,
    duration_ms: int,
    dry_run: bool = False,
) -> Envelope:
    return Envelope(
        status=result.status,
        message=result.message,
        result=result.payload,
        error=result.error.to_dict() if result.error is not None else None,
        meta=EnvelopeMeta(tool=tool, version=version, duration_ms=duration_ms, dry_run=dry_run),
    )


def _render_rows(rows: list[Mapping[str, Any]], *, no_color: bool) -> None:
    columns = list(rows[0].keys())
    if no_color:
        click.echo("\t".join(columns))
        for row in rows:
            click.echo("\t".join("" if row.get(c) is None else str(row.get(c)) for c in columns))
        return
    table = Table(*columns)
    for row in rows:
        table.add_row(*("" if row.get(c) is None else escape(str(row.get(c))) for c in columns))
    Console().print(table)


def render_text(payload: Any, *, no_color: bool = False) -> None:
    if payload is None:
        return
    if isinstance(payload, list):
        if payload and all(isinstance(item, Mapping) for item in payload):
            _render_rows(payload, no_color=no_color)
        else:
            for item in payload:
                click.echo(item)
        return
    if isinstance(payload, Mapping):
        for key, value in payload.items():
            shown = _json_dumps(value) if isinstance(value, (list, dict)) else value
            click.echo(f"{key}: {shown}")
        return
    click.echo(payload)


def emit(
    result: CatalogResult[Any],
    *,
    mode: OutputMode,
    tool: str,
    version: str,
    duration_ms: int,
    dry_run: bool = False,
    no_color: bool = False,
) -> None:
    """Write ``result`` to stdout (errors in text mode go to stderr)."""

    if mode is OutputMode.JSON:
        envelope = build_envelope(result, tool=tool, version=version, duration_ms=duration_ms, dry_run=dry_run)
        click.echo(_json_dumps(envelope.model_dump()))
        return

    if result.ok:
        render_text(result.payload, no_color=no_color)
        return

    suggestion = (result.error.suggestion or {}).get("fix") if result.error is not None else None
    if no_color:
        click.echo(f"Error: {result.message}", err=True)
        if suggestion:
            click.echo(f"Suggestion: {suggestion}", err=True)
        return
    console = Console(stderr=True)
    console.print(f"[bold red]Error:[/bold red] {escape(result.message)}", markup=True, highlight=False)
    if suggestion:
        console.print(f"[bold blue]Suggestion:[/bold blue] {escape(suggestion)}", markup=True, highlight=False)
