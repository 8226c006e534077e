# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Abstract CRUD service interface and service errors."""

from abc import ABC, abstractmethod
from typing import Any


class ServiceError(Exception):
    """Base exception for service errors."""

    code = 500
    name = "GeneralError"


class ConfigurationError(ServiceError):
    """Exception raised when a service is constructed with invalid options."""

    name = "ConfigurationError"


class BadRequestError(ServiceError):
    """Exception raised when call arguments cannot be applied."""

    code = 400
    name = "BadRequest"


class NotFoundError(ServiceError):
    """Exception raised when no record matches the given identifier."""

    code = 404
    name = "NotFound"

    def __init__(self, record_id: Any, message: str | None = None):
        self.id = record_id
        super().__init__(message or f"No record found for id '{record_id}'")


class StorageError(ServiceError):
    """Exception raised when the underlying store reports a failure."""

    name = "GeneralError"


class Service(ABC):
    """Abstract base class for CRUD service backends.

    Every method is a coroutine. ``params`` is the per-call parameter mapping;
    ``params["query"]`` carries the query specification.
    """

    @abstractmethod
    async def find(self, params: dict[str, Any] | None = None) -> Any:
        """Return a page of records matching ``params["query"]``."""
        pass

    @abstractmethod
    async def get(self, id: Any, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Return the record with the given identifier.

        Raises:
            NotFoundError: If no record has that identifier
        """
        pass

    @abstractmethod
    async def create(
        self, data: dict[str, Any] | list[dict[str, Any]], params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Insert one record or a list of records.

        Returns:
            The inserted record(s), in the same shape as ``data``
        """
        pass

    @abstractmethod
    async def update(
        self, id: Any, data: dict[str, Any], params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Replace the record with the given identifier.

        Raises:
            NotFoundError: If the record does not exist
        """
        pass

    @abstractmethod
    async def patch(
        self, id: Any, data: dict[str, Any], params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Merge ``data`` into one record, or into every matching record when ``id`` is None."""
        pass

    @abstractmethod
    async def remove(
        self, id: Any, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Delete one record, or every matching record when ``id`` is None.

        Returns:
            The removed record(s) as they were before deletion
        """
        pass
