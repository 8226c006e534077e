#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Example usage of the TinyDBService.

This script demonstrates the CRUD operations, query translation,
pagination and the upsert option against an in-memory TinyDB table.
"""

import asyncio

from copilot_tinydb import NotFoundError, TinyDBService, open_database


async def main():
    """Demonstrate TinyDB service functionality."""

    print("=" * 60)
    print("TinyDBService Examples")
    print("=" * 60)
    print()

    db = open_database(in_memory=True)
    service = TinyDBService(
        {"store": db.table("people"), "paginate": {"default": 10, "max": 50}},
        database=db,
    )

    # Example 1: create records
    print("Example 1: Create")
    print("-" * 60)
    people = await service.create([
        {"name": "Alice", "age": 30},
        {"name": "Bob", "age": 25},
        {"name": "Charlie", "age": 35},
    ])
    for person in people:
        print(f"✓ Created {person['name']} with id {person['_id']}")
    print()

    # Example 2: find with sorting and pagination
    print("Example 2: Find")
    print("-" * 60)
    page = await service.find({"query": {"age": {"$gte": 25}, "$sort": {"age": 1}, "$limit": 2}})
    print(f"✓ {page.total} matches, showing {len(page.data)} (limit={page.limit}, skip={page.skip})")
    for person in page.data:
        print(f"  - {person['name']} ({person['age']})")
    print()

    # Example 3: update, patch and upsert
    print("Example 3: Update")
    print("-" * 60)
    alice_id = people[0]["_id"]
    await service.patch(alice_id, {"age": 31})
    print(f"✓ Patched Alice: {await service.get(alice_id)}")
    upserted = await service.update("dana", {"name": "Dana", "age": 28}, {"tinydb": {"upsert": True}})
    print(f"✓ Upserted: {upserted}")
    print()

    # Example 4: remove
    print("Example 4: Remove")
    print("-" * 60)
    removed = await service.remove(alice_id)
    print(f"✓ Removed: {removed}")
    try:
        await service.get(alice_id)
    except NotFoundError as e:
        print(f"✓ Get after remove failed as expected: {e}")
    print()

    service.close()


if __name__ == "__main__":
    asyncio.run(main())
