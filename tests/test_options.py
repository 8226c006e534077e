# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for service options and result models."""

import dataclasses

import pytest

from copilot_tinydb import ConfigurationError, Page, Paginate, ServiceOptions


class TestServiceOptions:
    """Tests for ServiceOptions."""

    def test_from_mapping_none(self):
        """Test that missing options are a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            ServiceOptions.from_mapping(None)

        assert str(exc_info.value) == "TinyDB options have to be provided"

    def test_from_mapping_without_store(self):
        """Test that a missing store is a distinct configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            ServiceOptions.from_mapping({"id": "customid"})

        assert str(exc_info.value) == "TinyDB datastore `Model` needs to be provided"

    def test_from_mapping(self):
        """Test building options from a mapping."""
        store = object()
        options = ServiceOptions.from_mapping({
            "store": store,
            "id": "customid",
            "events": ["testing", "archived"],
            "paginate": {"default": 10, "max": 50},
        })

        assert options.store is store
        assert options.id == "customid"
        assert options.events == ("testing", "archived")
        assert options.paginate == Paginate(default=10, max=50)

    def test_empty_id_falls_back_to_default(self):
        """Test that an empty id option uses the default field."""
        options = ServiceOptions.from_mapping({"store": object(), "id": ""})

        assert options.id == "_id"

    def test_invalid_id(self):
        """Test that a non-string id field is rejected."""
        with pytest.raises(ConfigurationError):
            ServiceOptions(store=object(), id=5)

    def test_invalid_paginate(self):
        """Test that paginate must be a mapping or Paginate."""
        with pytest.raises(ConfigurationError, match="paginate"):
            ServiceOptions(store=object(), paginate=10)

    def test_immutable(self):
        """Test that options cannot be changed after construction."""
        options = ServiceOptions(store=object())

        with pytest.raises(dataclasses.FrozenInstanceError):
            options.id = "other"


class TestPaginate:
    """Tests for Paginate."""

    def test_default_applies_without_limit(self):
        assert Paginate(default=10).effective_limit(None) == 10

    def test_requested_limit_wins_over_default(self):
        assert Paginate(default=10).effective_limit(3) == 3

    def test_max_caps_requested_limit(self):
        assert Paginate(default=10, max=20).effective_limit(100) == 20

    def test_max_applies_without_default(self):
        assert Paginate(max=20).effective_limit(None) == 20

    def test_no_limit(self):
        assert Paginate().effective_limit(None) is None

    def test_from_value(self):
        """Test the accepted paginate forms."""
        paginate = Paginate(default=1)

        assert Paginate.from_value(None) is None
        assert Paginate.from_value(paginate) is paginate
        assert Paginate.from_value({"max": 5}) == Paginate(default=None, max=5)


class TestPage:
    """Tests for Page."""

    def test_to_dict(self):
        """Test the plain dictionary shape."""
        page = Page(total=2, limit=10, skip=0, data=[{"_id": "1"}, {"_id": "2"}])

        assert page.to_dict() == {
            "total": 2,
            "limit": 10,
            "skip": 0,
            "data": [{"_id": "1"}, {"_id": "2"}],
        }
