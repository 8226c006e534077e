# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Copilot-for-Consensus TinyDB Service Adapter.

Exposes a TinyDB table as an asynchronous CRUD service with
find, get, create, update, patch and remove operations.
"""

__version__ = "0.1.0"

from .config import TinyDBSettings
from .factory import create_service, create_service_from_env, open_database
from .models import Page
from .options import Paginate, ServiceOptions
from .query import FilteredQuery, build_condition, filter_query
from .service import (
    BadRequestError,
    ConfigurationError,
    NotFoundError,
    Service,
    ServiceError,
    StorageError,
)
from .tinydb_service import TinyDBService

__all__ = [
    # Version
    "__version__",
    # Services
    "Service",
    "TinyDBService",
    "create_service",
    "create_service_from_env",
    "open_database",
    # Configuration
    "TinyDBSettings",
    "Paginate",
    "ServiceOptions",
    # Queries and results
    "FilteredQuery",
    "Page",
    "build_condition",
    "filter_query",
    # Exceptions
    "ServiceError",
    "ConfigurationError",
    "BadRequestError",
    "NotFoundError",
    "StorageError",
]
