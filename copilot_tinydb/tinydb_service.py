# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""TinyDB-backed CRUD service implementation."""

import asyncio
import copy
import functools
import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from bson import ObjectId
from tinydb import Query, TinyDB
from tinydb.queries import QueryInstance

from .models import Page
from .options import ServiceOptions
from .query import build_condition, filter_query, select_fields, sort_records
from .service import BadRequestError, NotFoundError, Service, ServiceError, StorageError

logger = logging.getLogger(__name__)

# Key of the adapter-specific options in call params, e.g. {"tinydb": {"upsert": True}}
PARAMS_KEY = "tinydb"


def _replace_fields(fields: dict[str, Any]) -> Callable[[dict[str, Any]], None]:
    def transform(doc: dict[str, Any]) -> None:
        doc.clear()
        doc.update(copy.deepcopy(fields))
    return transform


def _merge_fields(fields: dict[str, Any]) -> Callable[[dict[str, Any]], None]:
    def transform(doc: dict[str, Any]) -> None:
        doc.update(copy.deepcopy(fields))
    return transform


class TinyDBService(Service):
    """CRUD service over a TinyDB table.

    TinyDB calls are blocking, so each operation runs its store work on a
    single worker thread and the public coroutines await the result. The worker
    also serializes writes issued through one service instance.

    Records are matched by the configured identifier field (``_id`` by
    default), not by TinyDB's internal document ids. Without a ``$sort`` the
    order of ``find`` results is whatever TinyDB yields and callers must not
    rely on it.
    """

    def __init__(
        self,
        options: ServiceOptions | Mapping[str, Any] | None = None,
        database: TinyDB | None = None,
    ):
        """Initialize the service.

        Args:
            options: ServiceOptions or a mapping with ``store`` (required),
                     ``id``, ``events`` and ``paginate`` keys
            database: Database the service takes ownership of and closes in
                      ``close()``; None leaves closing the store to the caller

        Raises:
            ConfigurationError: If options or the store handle are missing
        """
        if not isinstance(options, ServiceOptions):
            options = ServiceOptions.from_mapping(options)

        self.options = options
        self.store = options.store
        self.id = options.id
        self.events = options.events
        self.paginate = options.paginate
        self.database = database
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tinydb-service")

    def close(self) -> None:
        """Stop the worker thread and close the owned database, if any."""
        self._executor.shutdown(wait=True)
        if self.database is not None:
            self.database.close()
        logger.debug("TinyDBService: closed")

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run blocking store work on the worker and await its result.

        Raises:
            ServiceError: Raised by ``func`` itself, unchanged
            StorageError: For any other failure reported by the store
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, functools.partial(func, *args))
        except ServiceError:
            raise
        except Exception as e:
            raise StorageError(str(e)) from e

    def _to_record(self, doc: Mapping[str, Any]) -> dict[str, Any]:
        # TinyDB hands out cached documents, never return them directly
        return copy.deepcopy(dict(doc))

    def _id_condition(self, id: Any, filters: Mapping[str, Any]) -> QueryInstance:
        return (Query()[self.id] == id) & build_condition(filters)

    # Store work, executed on the worker thread

    def _count_and_search(self, condition: QueryInstance) -> tuple[int, list[dict[str, Any]]]:
        total = self.store.count(condition)
        return total, [self._to_record(doc) for doc in self.store.search(condition)]

    def _first(self, condition: QueryInstance) -> dict[str, Any] | None:
        doc = self.store.get(condition)
        return None if doc is None else self._to_record(doc)

    def _insert(self, records: list[dict[str, Any]]) -> None:
        seen: list[Any] = []
        for record in records:
            record_id = record[self.id]
            if record_id in seen or self.store.contains(Query()[self.id] == record_id):
                raise StorageError(
                    f"Can't insert key {record_id}, it violates the unique constraint"
                )
            seen.append(record_id)
        self.store.insert_multiple(records)

    def _replace(self, id: Any, condition: QueryInstance, record: dict[str, Any], upsert: bool) -> None:
        if self.store.contains(condition):
            self.store.update(_replace_fields(record), condition)
            return

        # Existence check and insert are two store calls. Another writer on the
        # same file can slip in between; calls through this service cannot.
        if upsert and not self.store.contains(Query()[self.id] == id):
            self.store.insert(record)
            logger.debug("TinyDBService: upserted record %s", id)
            return

        raise NotFoundError(id)

    def _merge(self, condition: QueryInstance, changes: dict[str, Any]) -> list[dict[str, Any]]:
        doc_ids = self.store.update(_merge_fields(changes), condition)
        return [self._to_record(self.store.get(doc_id=doc_id)) for doc_id in doc_ids]

    def _delete(self, condition: QueryInstance) -> list[dict[str, Any]]:
        docs = self.store.search(condition)
        records = [self._to_record(doc) for doc in docs]
        if docs:
            self.store.remove(doc_ids=[doc.doc_id for doc in docs])
        return records

    # Service operations

    async def _find(self, params: dict[str, Any] | None = None) -> Page:
        params = params or {}
        filtered = filter_query(params.get("query"))
        condition = build_condition(filtered.filters)

        limit = filtered.limit
        if self.paginate is not None:
            limit = self.paginate.effective_limit(limit)

        total, records = await self._run(self._count_and_search, condition)

        if filtered.sort:
            records = sort_records(records, filtered.sort)
        end = None if limit is None else filtered.skip + limit
        data = [select_fields(record, filtered.select, self.id) for record in records[filtered.skip:end]]

        logger.debug("TinyDBService: find returned %d of %d records", len(data), total)
        return Page(
            total=total,
            limit=total if limit is None else limit,
            skip=filtered.skip,
            data=data,
        )

    async def find(self, params: dict[str, Any] | None = None) -> Page:
        """Find records matching ``params["query"]``.

        Args:
            params: Call params; ``query`` may hold filters and the special
                    keys ``$sort``, ``$limit``, ``$skip`` and ``$select``

        Returns:
            Page with the total match count and the requested window. When no
            limit applies, ``limit`` equals ``total``.

        Raises:
            BadRequestError: If a special key has a malformed value
            StorageError: If the store fails
        """
        return await self._find(params)

    async def _get(self, id: Any, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        filtered = filter_query(params.get("query"))
        record = await self._run(self._first, self._id_condition(id, filtered.filters))

        if record is None:
            logger.debug("TinyDBService: record %s not found", id)
            raise NotFoundError(id)
        return select_fields(record, filtered.select, self.id)

    async def get(self, id: Any, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Retrieve a record by its identifier.

        Raises:
            NotFoundError: If no record has the identifier
            StorageError: If the store fails
        """
        return await self._get(id, params)

    def _payload(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, Mapping):
            raise BadRequestError(f"Record must be a mapping, got {type(data).__name__}")
        return copy.deepcopy(dict(data))

    def _prepare(self, data: Any) -> dict[str, Any]:
        record = self._payload(data)
        if record.get(self.id) is None:
            record[self.id] = str(ObjectId())
        return record

    async def create(
        self, data: dict[str, Any] | list[dict[str, Any]], params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Insert a record or a list of records.

        Records without an identifier get a generated one. A batch is checked
        for identifier conflicts before anything is written.

        Returns:
            Inserted record(s) in the same single-vs-list shape as ``data``

        Raises:
            BadRequestError: If a record is not a mapping
            StorageError: If an identifier is already taken or the store fails
        """
        params = params or {}
        select = filter_query(params.get("query")).select
        is_batch = isinstance(data, list)
        records = [self._prepare(item) for item in (data if is_batch else [data])]

        await self._run(self._insert, records)
        logger.debug("TinyDBService: created %d record(s)", len(records))

        created = [select_fields(copy.deepcopy(record), select, self.id) for record in records]
        return created if is_batch else created[0]

    async def update(
        self, id: Any, data: dict[str, Any], params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Replace all fields of a record except its identifier.

        ``params["tinydb"]["upsert"]`` inserts a new record with the given
        identifier when none exists.

        Raises:
            BadRequestError: If ``id`` is None
            NotFoundError: If the record does not exist and upsert is off
            StorageError: If the store fails
        """
        if id is None:
            raise BadRequestError("Not replacing multiple records. Did you mean `patch`?")

        params = params or {}
        filtered = filter_query(params.get("query"))
        upsert = bool((params.get(PARAMS_KEY) or {}).get("upsert", False))

        record = {key: value for key, value in self._payload(data).items() if key != self.id}
        record[self.id] = id

        await self._run(self._replace, id, self._id_condition(id, filtered.filters), record, upsert)
        logger.debug("TinyDBService: updated record %s", id)
        return select_fields(copy.deepcopy(record), filtered.select, self.id)

    async def patch(
        self, id: Any, data: dict[str, Any], params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Merge fields into one record, or into all matching records when ``id`` is None.

        Raises:
            NotFoundError: If ``id`` is given and the record does not exist
            StorageError: If the store fails
        """
        params = params or {}
        filtered = filter_query(params.get("query"))
        changes = {key: value for key, value in self._payload(data).items() if key != self.id}

        if id is None:
            condition = build_condition(filtered.filters)
        else:
            condition = self._id_condition(id, filtered.filters)

        records = await self._run(self._merge, condition, changes)
        if id is not None and not records:
            raise NotFoundError(id)

        logger.debug("TinyDBService: patched %d record(s)", len(records))
        records = [select_fields(record, filtered.select, self.id) for record in records]
        return records if id is None else records[0]

    async def remove(
        self, id: Any, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Delete a record, or all matching records when ``id`` is None.

        Returns:
            The removed record(s) as they were before deletion

        Raises:
            NotFoundError: If ``id`` is given and the record does not exist
            StorageError: If the store fails
        """
        params = params or {}
        filtered = filter_query(params.get("query"))

        if id is None:
            condition = build_condition(filtered.filters)
        else:
            condition = self._id_condition(id, filtered.filters)

        records = await self._run(self._delete, condition)
        if id is not None and not records:
            raise NotFoundError(id)

        logger.debug("TinyDBService: removed %d record(s)", len(records))
        records = [select_fields(record, filtered.select, self.id) for record in records]
        return records if id is None else records[0]
