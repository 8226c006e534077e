# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Service configuration models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .service import ConfigurationError

DEFAULT_ID_FIELD = "_id"


@dataclass(frozen=True)
class Paginate:
    """Pagination defaults.

    Attributes:
        default: Limit applied when a query has no ``$limit``
        max: Upper bound for any requested ``$limit``
    """
    default: int | None = None
    max: int | None = None

    @classmethod
    def from_value(cls, value: Any) -> "Paginate | None":
        """Build pagination settings from a ``Paginate``, a mapping, or None."""
        if value is None or isinstance(value, Paginate):
            return value
        if isinstance(value, Mapping):
            return cls(default=value.get("default"), max=value.get("max"))
        raise ConfigurationError(f"Invalid paginate option: {value!r}")

    def effective_limit(self, requested: int | None) -> int | None:
        """Resolve the limit to apply for a query.

        Args:
            requested: ``$limit`` from the query, or None

        Returns:
            Limit to apply, or None for no limit
        """
        limit = self.default if requested is None else requested
        if self.max is not None and (limit is None or limit > self.max):
            limit = self.max
        return limit


@dataclass(frozen=True)
class ServiceOptions:
    """Immutable options a service is created with.

    Attributes:
        store: TinyDB ``Table`` (or ``TinyDB`` instance) holding the records
        id: Name of the identifier field
        events: Custom event names the service publishes
        paginate: Pagination defaults, or None to return all matches
    """
    store: Any
    id: str = DEFAULT_ID_FIELD
    events: tuple[str, ...] = field(default_factory=tuple)
    paginate: Paginate | None = None

    def __post_init__(self):
        if self.store is None:
            raise ConfigurationError("TinyDB datastore `Model` needs to be provided")
        if not self.id or not isinstance(self.id, str):
            raise ConfigurationError(f"Invalid id field: {self.id!r}")
        object.__setattr__(self, "events", tuple(self.events or ()))
        object.__setattr__(self, "paginate", Paginate.from_value(self.paginate))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> "ServiceOptions":
        """Create options from a plain mapping.

        Accepts ``store`` or the legacy ``Model`` key for the store handle.

        Raises:
            ConfigurationError: If options or the store handle are missing
        """
        if options is None:
            raise ConfigurationError("TinyDB options have to be provided")

        store = options.get("store", options.get("Model"))
        if store is None:
            raise ConfigurationError("TinyDB datastore `Model` needs to be provided")

        return cls(
            store=store,
            id=options.get("id") or DEFAULT_ID_FIELD,
            events=tuple(options.get("events") or ()),
            paginate=options.get("paginate"),
        )
