# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Environment-backed settings for TinyDB services."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from .options import DEFAULT_ID_FIELD, Paginate
from .service import ConfigurationError

DEFAULT_PATH = "db-data/tinydb.json"

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def _parse_bool(key: str, value: str | None, default: bool) -> bool:
    if not value:
        return default
    if value.lower() in _TRUE_VALUES:
        return True
    if value.lower() in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _parse_int(key: str, value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _parse_list(value: str | None) -> tuple[str, ...]:
    return tuple(item.strip() for item in (value or "").split(",") if item.strip())


@dataclass(frozen=True)
class TinyDBSettings:
    """Settings for a service built from the environment.

    Attributes:
        path: JSON file backing the database (TINYDB_PATH)
        table: Table name, None for TinyDB's default table (TINYDB_TABLE)
        in_memory: Use MemoryStorage instead of a file (TINYDB_IN_MEMORY)
        id_field: Identifier field name (TINYDB_ID_FIELD)
        events: Custom event names, comma separated (TINYDB_EVENTS)
        paginate: Built from TINYDB_PAGINATE_DEFAULT and TINYDB_PAGINATE_MAX,
                  None when neither is set
    """
    path: str = DEFAULT_PATH
    table: str | None = None
    in_memory: bool = False
    id_field: str = DEFAULT_ID_FIELD
    events: tuple[str, ...] = ()
    paginate: Paginate | None = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TinyDBSettings":
        """Read settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            ConfigurationError: If a boolean or integer variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        paginate = None
        paginate_default = _parse_int("TINYDB_PAGINATE_DEFAULT", env.get("TINYDB_PAGINATE_DEFAULT"))
        paginate_max = _parse_int("TINYDB_PAGINATE_MAX", env.get("TINYDB_PAGINATE_MAX"))
        if paginate_default is not None or paginate_max is not None:
            paginate = Paginate(default=paginate_default, max=paginate_max)

        return cls(
            path=env.get("TINYDB_PATH") or DEFAULT_PATH,
            table=env.get("TINYDB_TABLE") or None,
            in_memory=_parse_bool("TINYDB_IN_MEMORY", env.get("TINYDB_IN_MEMORY"), False),
            id_field=env.get("TINYDB_ID_FIELD") or DEFAULT_ID_FIELD,
            events=_parse_list(env.get("TINYDB_EVENTS")),
            paginate=paginate,
        )
