"""Central status and exit-code taxonomy for apicat."""

from __future__ import annotations

from enum import IntEnum


class Status(IntEnum):
    """Envelope status codes returned by every public operation."""

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    ERROR = 500


class ExitCode(IntEnum):
    """CLI exit codes used across apicat."""

    SUCCESS = 0
    INVALID_INPUT = 2
    STATE_ERROR = 10
    NOT_FOUND = 20
    RUNTIME_UNAVAILABLE = 40
    INTERNAL_ERROR = 70
