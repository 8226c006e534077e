# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for the service factory functions."""

from unittest.mock import patch

import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from copilot_tinydb import (
    ConfigurationError,
    Paginate,
    TinyDBService,
    create_service,
    create_service_from_env,
    open_database,
)


class TestOpenDatabase:
    """Tests for open_database."""

    def test_in_memory(self):
        """Test opening an in-memory database."""
        db = open_database(in_memory=True)

        assert isinstance(db, TinyDB)
        assert isinstance(db.storage, MemoryStorage)
        assert db.table("people").name == "people"
        db.close()

    def test_file_creates_directories(self, tmp_path):
        """Test that parent directories of the database file are created."""
        path = tmp_path / "nested" / "dir" / "db.json"

        db = open_database(path=str(path))

        assert path.exists()
        assert isinstance(db, TinyDB)
        db.close()


class TestCreateService:
    """Tests for create_service."""

    def test_create_service(self):
        """Test creating a service from a mapping."""
        db = open_database(in_memory=True)
        service = create_service({"store": db.table("people"), "id": "customid"})

        assert isinstance(service, TinyDBService)
        assert service.id == "customid"
        assert service.database is None
        service.close()
        db.close()

    def test_create_service_without_options(self):
        """Test that missing options fail."""
        with pytest.raises(ConfigurationError, match="options have to be provided"):
            create_service(None)


class TestCreateServiceFromEnv:
    """Tests for create_service_from_env."""

    def test_defaults_in_memory(self):
        """Test defaults with an in-memory database."""
        service = create_service_from_env({"TINYDB_IN_MEMORY": "true"})

        assert service.id == "_id"
        assert service.events == ()
        assert service.paginate is None
        assert service.store.name == TinyDB.default_table_name
        service.close()

    def test_all_settings(self, tmp_path):
        """Test reading every setting from the environment."""
        path = tmp_path / "data" / "people.json"
        service = create_service_from_env({
            "TINYDB_PATH": str(path),
            "TINYDB_TABLE": "people",
            "TINYDB_ID_FIELD": "customid",
            "TINYDB_EVENTS": "testing, archived",
            "TINYDB_PAGINATE_DEFAULT": "10",
            "TINYDB_PAGINATE_MAX": "50",
        })

        assert path.exists()
        assert service.store.name == "people"
        assert service.id == "customid"
        assert service.events == ("testing", "archived")
        assert service.paginate == Paginate(default=10, max=50)
        service.close()

    def test_paginate_max_only(self):
        """Test that setting only the max limit enables pagination."""
        service = create_service_from_env({
            "TINYDB_IN_MEMORY": "1",
            "TINYDB_PAGINATE_MAX": "25",
        })

        assert service.paginate == Paginate(default=None, max=25)
        service.close()

    def test_invalid_setting(self):
        """Test that a malformed variable fails before anything is opened."""
        with patch("copilot_tinydb.factory.open_database") as opener:
            with pytest.raises(ConfigurationError, match="TINYDB_PAGINATE_MAX"):
                create_service_from_env({"TINYDB_IN_MEMORY": "1", "TINYDB_PAGINATE_MAX": "lots"})

        opener.assert_not_called()

    @pytest.mark.asyncio
    async def test_service_is_usable(self):
        """Test a round trip through a service built from the environment."""
        service = create_service_from_env({"TINYDB_IN_MEMORY": "yes", "TINYDB_TABLE": "people"})

        created = await service.create({"name": "Alice"})

        assert await service.get(created["_id"]) == created
        service.close()

    def test_close_releases_database_file(self, tmp_path):
        """Test that closing the service closes the JSON file it opened."""
        service = create_service_from_env({"TINYDB_PATH": str(tmp_path / "db.json")})
        handle = service.database.storage._handle

        assert not handle.closed
        service.close()

        assert handle.closed

    def test_close_closes_in_memory_database(self):
        """Test that closing the service closes an in-memory database too."""
        service = create_service_from_env({"TINYDB_IN_MEMORY": "true"})

        with patch.object(service.database, "close", wraps=service.database.close) as close:
            service.close()

        close.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_data_flushed_after_close(self, tmp_path):
        """Test that records written before close are readable from a new database."""
        path = tmp_path / "db.json"
        service = create_service_from_env({"TINYDB_PATH": str(path), "TINYDB_TABLE": "people"})
        await service.create({"_id": "a", "name": "Alice"})
        service.close()

        reopened = TinyDB(path)
        assert reopened.table("people").all() == [{"_id": "a", "name": "Alice"}]
        reopened.close()
