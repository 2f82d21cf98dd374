"""JSON envelope models for apicat structured output."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class EnvelopeMeta(BaseModel):
    tool: str
    version: str
    duration_ms: int = Field(ge=0)
    dry_run: bool = False


class Envelope(BaseModel):
    status: int
    message: str
    result: Any | None = None
    error: dict[str, Any] | None = None
    meta: EnvelopeMeta
