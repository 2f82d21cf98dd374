"""Configuration precedence system for apicat."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

try:
    import tomllib  # type: ignore[import-not-found]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef]

logger = logging.getLogger(__name__)

ENV_PREFIX = "APICAT_"


def default_dsn() -> str:
    """SQLite catalog under the invoking user's home directory."""

    return f"sqlite:///{(Path.home() / '.apicat' / 'catalog.db').as_posix()}"


class CatalogConfig:
    """Resolves configuration through the precedence chain.

    defaults < ``[tool.apicat]`` in ./pyproject.toml < ``APICAT_*`` env vars.
    Explicit CLI options are applied by the caller on top of this.
    """

    def __init__(self, project_file: str | Path = "pyproject.toml") -> None:
        self.project_file = Path(project_file)
        self._config: dict[str, Any] = {}
        self._load_defaults()
        self._load_project_config()
        self._load_env_vars()

    def _load_defaults(self) -> None:
        self._config = {
            "dsn": default_dsn(),
            "user": None,
            "password": None,
            "output": "auto",
            "no_color": False,
            "log_level": "WARNING",
        }

    def _load_project_config(self) -> None:
        """Load from pyproject.toml [tool.apicat]"""
        if not self.project_file.is_file():
            return
        try:
            with open(self.project_file, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Ignoring unreadable %s: %s", self.project_file, exc)
            return
        self._config.update(data.get("tool", {}).get("apicat", {}))

    def _load_env_vars(self) -> None:
        """Load from APICAT_* environment variables."""
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_key = key[len(ENV_PREFIX):].lower()
                # Only flags are coerced; a password of "1" stays a string.
                if not isinstance(self._config.get(config_key), bool):
                    self._config[config_key] = value
                elif value.lower() in ("true", "1", "yes"):
                    self._config[config_key] = True
                elif value.lower() in ("false", "0", "no"):
                    self._config[config_key] = False
                else:
                    self._config[config_key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    @property
    def dsn(self) -> str:
        return str(self._config["dsn"])

    @property
    def user(self) -> str | None:
        return self._config.get("user")

    @property
    def password(self) -> str | None:
        return self._config.get("password")
