"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from crudforge.errors import ConfigurationError

ENV_PREFIX = "CRUDFORGE_"


def _env(name: str) -> str | None:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value else None


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got '{value}'") from None
    if number < 0:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must not be negative, got {number}")
    return number


def _env_flag(name: str) -> bool:
    return (_env(name) or "").lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings.

    Every value can be overridden through a ``CRUDFORGE_*`` environment
    variable, see ``from_env``.
    """

    metadata_path: Path
    db_path: str
    services_path: Path | None = None
    store_id: str = "default"
    max_header_depth: int = 2
    route_prefix: str = "/crud"
    secret_key: str = "dev-secret-key-change-in-production"
    disable_auth: bool = False
    default_access_level: int = 0

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> Settings:
        """Create settings from environment variables.

        Resolution of paths:
        1. CRUDFORGE_METADATA_PATH / CRUDFORGE_DB_PATH if set
        2. Default: {base_path}/metadata and {base_path}/data/crudforge.db

        Raises:
            ConfigurationError: If a numeric variable is not a non-negative integer.
        """
        base = base_path or Path.cwd()

        metadata_path = _env("METADATA_PATH")
        services_path = _env("SERVICES_PATH")
        prefix = _env("ROUTE_PREFIX")

        return cls(
            metadata_path=Path(metadata_path) if metadata_path else base / "metadata",
            db_path=_env("DB_PATH") or str(base / "data" / "crudforge.db"),
            services_path=Path(services_path) if services_path else None,
            store_id=_env("STORE_ID") or "default",
            max_header_depth=_env_int("MAX_HEADER_DEPTH", 2),
            route_prefix="" if prefix == "/" else (prefix or "/crud").rstrip("/"),
            secret_key=_env("SECRET_KEY") or "dev-secret-key-change-in-production",
            disable_auth=_env_flag("DISABLE_AUTH"),
            default_access_level=_env_int("DEFAULT_ACCESS_LEVEL", 0),
        )

    @property
    def is_memory_db(self) -> bool:
        return self.db_path == ":memory:"
