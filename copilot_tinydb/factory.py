# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Factory functions for creating TinyDB services."""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from .config import DEFAULT_PATH, TinyDBSettings
from .options import ServiceOptions
from .tinydb_service import TinyDBService

logger = logging.getLogger(__name__)


def open_database(path: str | None = None, in_memory: bool = False) -> TinyDB:
    """Open a TinyDB database.

    Args:
        path: JSON file backing the database; parent directories are created
        in_memory: Use MemoryStorage instead of a file

    Returns:
        TinyDB database. The caller closes it, or hands it to a service that does.
    """
    if in_memory:
        logger.debug("TinyDBService: opening in-memory database")
        return TinyDB(storage=MemoryStorage)

    logger.debug("TinyDBService: opening database %s", path or DEFAULT_PATH)
    return TinyDB(path or DEFAULT_PATH, create_dirs=True)


def create_service(options: ServiceOptions | Mapping[str, Any] | None) -> TinyDBService:
    """Create a service from options.

    Args:
        options: ServiceOptions or a mapping with ``store``, ``id``, ``events``
                 and ``paginate`` keys

    Raises:
        ConfigurationError: If options or the store handle are missing
    """
    return TinyDBService(options)


def create_service_from_env(environ: Optional[Mapping[str, str]] = None) -> TinyDBService:
    """Create a service configured from environment variables.

    The service owns the database it opens and closes it in ``close()``.

    Args:
        environ: Mapping to read instead of os.environ

    Returns:
        Configured TinyDBService

    Raises:
        ConfigurationError: If a variable cannot be parsed
    """
    settings = TinyDBSettings.from_env(environ)
    db = open_database(settings.path, in_memory=settings.in_memory)

    options = ServiceOptions(
        store=db.table(settings.table or TinyDB.default_table_name),
        id=settings.id_field,
        events=settings.events,
        paginate=settings.paginate,
    )
    return TinyDBService(options, database=db)
