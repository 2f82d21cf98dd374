"""Context object for apicat command execution."""

from __future__ import annotations

from dataclasses import dataclass

from apicat.output import OutputMode


@dataclass(frozen=True)
class CliContext:
    """Global options, accessible via click.Context.obj."""

    dsn: str | None = None
    user: str | None = None
    password: str | None = None
    output: OutputMode = OutputMode.JSON
    no_color: bool = False
    verbose: int = 0
    quiet: bool = False

    def connection_kwargs(self) -> dict[str, str | None]:
        return {"dsn": self.dsn, "user": self.user, "password": self.password}
