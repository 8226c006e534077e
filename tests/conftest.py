# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Shared fixtures for TinyDB service tests."""

import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from copilot_tinydb import TinyDBService


@pytest.fixture
def memory_db():
    """Create an in-memory TinyDB database."""
    db = TinyDB(storage=MemoryStorage)
    yield db
    db.close()


@pytest.fixture
def people_table(memory_db):
    """Return an empty table for people records."""
    return memory_db.table("people")


@pytest.fixture(params=["_id", "customid"])
def service(request, people_table):
    """Create a service for the default and a custom identifier field."""
    svc = TinyDBService({"store": people_table, "id": request.param, "events": ["testing"]})
    yield svc
    svc.close()
