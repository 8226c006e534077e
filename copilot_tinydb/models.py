# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Result models returned by services."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Page:
    """A paginated ``find`` result.

    Attributes:
        total: Number of records matching the query, ignoring pagination
        limit: Effective limit applied to ``data``
        skip: Number of matching records skipped before ``data``
        data: Returned records
    """
    total: int
    limit: int
    skip: int
    data: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the page as a plain dictionary."""
        return {
            "total": self.total,
            "limit": self.limit,
            "skip": self.skip,
            "data": list(self.data),
        }
