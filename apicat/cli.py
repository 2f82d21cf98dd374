"""Command-line interface for apicat."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import typer
from rich.console import Console
from rich.progress import Progress

from apicat import __version__, api
from apicat.config import CatalogConfig
from apicat.context import CliContext
from apicat.errors import InputError, Suggestion
from apicat.output import OutputMode, emit, resolve_output_mode
from apicat.result import CatalogResult
from apicat.sync import ProgressCallback

app = typer.Typer(
    name="apicat",
    no_args_is_help=True,
    help="Manage a catalog of package and function metadata.",
)


def _configure_logging(verbose: int, config: CatalogConfig) -> None:
    if verbose >= 2:
        level: int | str = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = str(config.get("log_level") or "WARNING").upper()
    # stdout carries results; keep diagnostics on stderr.
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def _obj(ctx: typer.Context) -> CliContext:
    obj = ctx.find_root().obj
    if isinstance(obj, CliContext):
        return obj
    return CliContext()


def _finish(ctx: typer.Context, result: CatalogResult[Any], start: float, *, dry_run: bool = False) -> None:
    obj = _obj(ctx)
    command = ctx.command.name or "apicat"
    if not (obj.quiet and result.ok):
        emit(
            result,
            mode=obj.output,
            tool=f"apicat.{command}",
            version=__version__,
            duration_ms=int((time.perf_counter() - start) * 1000),
            dry_run=dry_run,
            no_color=obj.no_color,
        )
    if not result.ok:
        exit_code = result.error.exit_code if result.error is not None else 1
        raise typer.Exit(code=exit_code)


@contextmanager
def _progress_reporter(enabled: bool) -> Iterator[ProgressCallback | None]:
    if not enabled:
        yield None
        return
    with Progress(console=Console(stderr=True), transient=True) as progress:
        task = progress.add_task("Synchronizing", total=None)

        def _update(pos: float, target: int, message: str) -> None:
            progress.update(task, completed=pos, total=target or None, description=message)

        yield _update


def _complete_package(ctx: typer.Context, incomplete: str) -> list[str]:
    root = ctx.find_root().params
    result = api.packages(incomplete or None, dsn=root.get("dsn"), user=root.get("user"), password=root.get("password"))
    if not result.ok:
        return []
    return [name for name in result.payload or [] if name.startswith(incomplete)]


def _complete_function(ctx: typer.Context, incomplete: str) -> list[str]:
    root = ctx.find_root().params
    result = api.functions(
        package=ctx.params.get("package"),
        dsn=root.get("dsn"),
        user=root.get("user"),
        password=root.get("password"),
    )
    if not result.ok:
        return []
    names = [entry.rpartition("::")[2] for entry in result.payload or []]
    return sorted({name for name in names if name.startswith(incomplete)})


@app.callback()
def _main(
    ctx: typer.Context,
    dsn: Optional[str] = typer.Option(
        None,
        "--dsn",
        help="Database DSN: SQLAlchemy URL or SQLite file path. Tested with SQLite and MySQL.",
    ),
    user: Optional[str] = typer.Option(None, "--user", help="Database user"),
    password: Optional[str] = typer.Option(None, "--password", help="Database password"),
    output: Optional[OutputMode] = typer.Option(
        None,
        "--output",
        "-o",
        case_sensitive=False,
        help="Output mode: auto|json|text",
    ),
    json_output: bool = typer.Option(False, "--json", help="Alias for --output json"),
    text_output: bool = typer.Option(False, "--text", help="Alias for --output text"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Log more (repeat for debug)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print nothing on success"),
) -> None:
    """Manage a catalog of package and function metadata."""
    config = CatalogConfig()
    _configure_logging(verbose, config)

    explicit = output
    if json_output:
        explicit = OutputMode.JSON
    elif text_output:
        explicit = OutputMode.TEXT

    ctx.obj = CliContext(
        dsn=dsn or config.dsn,
        user=user if user is not None else config.user,
        password=password if password is not None else config.password,
        output=resolve_output_mode(explicit, config.get("output")),
        no_color=no_color or bool(config.get("no_color")) or bool(os.getenv("NO_COLOR")),
        verbose=verbose,
        quiet=quiet,
    )


@app.command("update-from-modules")
def update_from_modules(
    ctx: typer.Context,
    module_or_package: list[str] = typer.Argument(
        ...,
        help="Module (Foo::Bar), module prefix (Foo::), package (+Foo::Bar) or package prefix (+Foo::)",
    ),
    exclude: list[str] = typer.Option([], "--exclude", "-x", help="Package name or prefix (Foo::) to exclude"),
    library: list[str] = typer.Option([], "--library", "-I", help="Prepend a directory to the import path"),
    use: list[str] = typer.Option([], "--use", "-M", help="Import a module before scanning"),
    force: bool = typer.Option(
        False,
        "--force-update",
        "--force",
        help="Update even packages whose source hasn't changed since the last update",
    ),
    delete: bool = typer.Option(
        True,
        "--delete/--no-delete",
        help="Delete packages in scope that no longer exist",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would change without writing"),
) -> None:
    """Update the catalog from Python modules."""
    start = time.perf_counter()
    obj = _obj(ctx)
    show_progress = not obj.quiet and Console(stderr=True).is_terminal
    with _progress_reporter(show_progress) as progress:
        result = api.update_from_modules(
            module_or_package,
            exclude=exclude,
            force=force,
            delete=delete,
            dry_run=dry_run,
            library=library,
            use=use,
            progress=progress,
            **obj.connection_kwargs(),
        )
    _finish(ctx, result, start, dry_run=dry_run)


@app.command("update")
def update(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name", autocompletion=_complete_package),
    metadata: str = typer.Option(..., "--metadata", help="Metadata as a JSON object"),
    function: Optional[str] = typer.Option(None, "--function", "-f", help="Function name"),
    dist: Optional[str] = typer.Option(None, "--dist", help="Originating distribution"),
    extra: Optional[str] = typer.Option(None, "--extra", help="Free-form annotation"),
) -> None:
    """Add/update a package or function metadata."""
    start = time.perf_counter()
    try:
        parsed = json.loads(metadata)
    except json.JSONDecodeError as exc:
        parsed = None
        result: CatalogResult[Any] = CatalogResult.from_error(
            InputError(
                f"--metadata is not valid JSON: {exc}",
                code="E1105",
                suggestion=Suggestion(
                    action="fix metadata",
                    fix="Pass a JSON object.",
                    example='apicat update Foo --metadata \'{"summary": "Foo things"}\'',
                ),
            )
        )
    if parsed is not None:
        result = api.update(
            package,
            parsed,
            function=function,
            dist=dist,
            extra=extra,
            **_obj(ctx).connection_kwargs(),
        )
    _finish(ctx, result, start)


@app.command("delete")
def delete(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name", autocompletion=_complete_package),
    function: Optional[str] = typer.Option(
        None,
        "--function",
        "-f",
        help="Function name",
        autocompletion=_complete_function,
    ),
) -> None:
    """Delete a package or function metadata."""
    start = time.perf_counter()
    result = api.delete(package, function=function, **_obj(ctx).connection_kwargs())
    _finish(ctx, result, start)


@app.command("packages")
def packages(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Substring of name, dist or extra"),
    detail: bool = typer.Option(False, "--detail", "-l", help="Show full rows"),
) -> None:
    """List packages."""
    start = time.perf_counter()
    result = api.packages(query, detail=detail, **_obj(ctx).connection_kwargs())
    _finish(ctx, result, start)


@app.command("functions")
def functions(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Substring of package, name, dist or extra"),
    package: Optional[str] = typer.Option(
        None,
        "--package",
        "-p",
        help="Only functions of this package",
        autocompletion=_complete_package,
    ),
    detail: bool = typer.Option(False, "--detail", "-l", help="Show full rows"),
) -> None:
    """List functions."""
    start = time.perf_counter()
    result = api.functions(query, package=package, detail=detail, **_obj(ctx).connection_kwargs())
    _finish(ctx, result, start)


@app.command("arguments")
def arguments(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Substring of the argument name"),
    package: Optional[str] = typer.Option(
        None,
        "--package",
        "-p",
        help="Only arguments of functions in this package",
        autocompletion=_complete_package,
    ),
    function: Optional[str] = typer.Option(
        None,
        "--function",
        "-f",
        help="Only arguments of this function",
        autocompletion=_complete_function,
    ),
    type_: Optional[str] = typer.Option(None, "--type", "-t", help="Only arguments of this type (str, int, ...)"),
    detail: bool = typer.Option(False, "--detail", "-l", help="Show full rows"),
) -> None:
    """List function arguments."""
    start = time.perf_counter()
    result = api.arguments(
        query,
        package=package,
        function=function,
        type=type_,
        detail=detail,
        **_obj(ctx).connection_kwargs(),
    )
    _finish(ctx, result, start)


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show some statistics."""
    start = time.perf_counter()
    _finish(ctx, api.stats(**_obj(ctx).connection_kwargs()), start)


@app.command("function-stats")
def function_stats(ctx: typer.Context) -> None:
    """Show number of arguments of every function."""
    start = time.perf_counter()
    _finish(ctx, api.function_stats(**_obj(ctx).connection_kwargs()), start)


@app.command("argument-stats")
def argument_stats(ctx: typer.Context) -> None:
    """Show how many functions declare each argument name."""
    start = time.perf_counter()
    _finish(ctx, api.argument_stats(**_obj(ctx).connection_kwargs()), start)


@app.command("meta")
def meta(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Function (Foo::Bar::func) or package (Foo::Bar)", autocompletion=_complete_package),
) -> None:
    """Get package or function metadata."""
    start = time.perf_counter()
    _finish(ctx, api.meta(name, **_obj(ctx).connection_kwargs()), start)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
