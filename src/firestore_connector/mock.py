"""In-memory Firestore client for testing.

This client is useful for:
- Unit testing the connector without a Firestore emulator
- Asserting on exactly which reads and batch commits an operation made
- Injecting store failures at a chosen point of a multi-step operation

It mirrors the async surface of ``google.cloud.firestore.AsyncClient`` that
the connector uses. Update field paths are treated as top-level keys.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from google.api_core.exceptions import InvalidArgument, NotFound

from firestore_connector.config import MAX_BATCH_WRITES
from firestore_connector.query import DOCUMENT_ID_FIELD

_MISSING = object()


@dataclass
class _PendingFailure:
    error: Exception
    skip: int


def _check_update(field_updates: dict[str, Any]) -> None:
    if not field_updates:
        raise ValueError("Cannot update with an empty document.")


class MockDocumentSnapshot:
    """Point-in-time copy of a document."""

    def __init__(self, reference: MockDocumentReference, data: dict[str, Any] | None) -> None:
        self.reference = reference
        self._data = copy.deepcopy(data)

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)


class MockDocumentReference:
    """Reference to a single document in a mock collection."""

    def __init__(self, client: MockFirestoreClient, collection: str, document_id: str) -> None:
        self._client = client
        self._collection = collection
        self.id = document_id

    @property
    def path(self) -> str:
        return f"{self._collection}/{self.id}"

    def _store(self) -> dict[str, dict[str, Any]]:
        return self._client._collections.setdefault(self._collection, {})

    async def get(self) -> MockDocumentSnapshot:
        self._client._before("get")
        self._client.reads += 1
        return MockDocumentSnapshot(self, self._store().get(self.id))

    async def set(self, document_data: dict[str, Any], merge: bool = False) -> datetime:
        self._client._before("set")
        self._apply_set(document_data, merge)
        self._client.writes.append(("set", self.path))
        return datetime.now(UTC)

    async def update(self, field_updates: dict[str, Any]) -> datetime:
        _check_update(field_updates)
        self._client._before("update")
        if self.id not in self._store():
            raise NotFound(f"No document to update: {self.path}")
        self._apply_update(field_updates)
        self._client.writes.append(("update", self.path))
        return datetime.now(UTC)

    async def delete(self) -> datetime:
        self._client._before("delete")
        self._store().pop(self.id, None)
        self._client.writes.append(("delete", self.path))
        return datetime.now(UTC)

    def _apply_set(self, document_data: dict[str, Any], merge: bool) -> None:
        store = self._store()
        if merge and self.id in store:
            store[self.id].update(copy.deepcopy(document_data))
        else:
            store[self.id] = copy.deepcopy(document_data)

    def _apply_update(self, field_updates: dict[str, Any]) -> None:
        self._store()[self.id].update(copy.deepcopy(field_updates))


class MockQuery:
    """Immutable query over one mock collection."""

    def __init__(
        self,
        client: MockFirestoreClient,
        collection: str,
        filters: tuple[tuple[str, Any], ...] = (),
        orders: tuple[tuple[str, str], ...] = (),
        limit: int | None = None,
    ) -> None:
        self._client = client
        self._collection = collection
        self._filters = filters
        self._orders = orders
        self._limit = limit

    def _copy(self, **changes: Any) -> MockQuery:
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
        }
        state.update(changes)
        return MockQuery(self._client, self._collection, **state)

    def where(
        self,
        field_path: str | None = None,
        op_string: str | None = None,
        value: Any = None,
        *,
        filter: Any = None,
    ) -> MockQuery:
        """Add an equality clause, given positionally or as a FieldFilter."""
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        if op_string != "==":
            raise ValueError(f"MockQuery only supports '==' filters, got {op_string!r}")
        return self._copy(filters=self._filters + ((field_path, value),))

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> MockQuery:
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count: int) -> MockQuery:
        return self._copy(limit=count)

    async def get(self) -> list[MockDocumentSnapshot]:
        self._client._before("get")
        self._client.reads += 1

        store = self._client._collections.get(self._collection, {})
        rows = sorted(store.items())
        rows = [
            (doc_id, data)
            for doc_id, data in rows
            if all(data.get(field, _MISSING) == value for field, value in self._filters)
        ]

        # Documents without an ordered field drop out, as in Firestore.
        for field, _ in self._orders:
            if field != DOCUMENT_ID_FIELD:
                rows = [(doc_id, data) for doc_id, data in rows if field in data]
        for field, direction in reversed(self._orders):
            rows.sort(
                key=lambda row, f=field: row[0] if f == DOCUMENT_ID_FIELD else row[1][f],
                reverse=direction == "DESCENDING",
            )

        if self._limit is not None:
            rows = rows[: self._limit]

        return [
            MockDocumentSnapshot(
                MockDocumentReference(self._client, self._collection, doc_id), data
            )
            for doc_id, data in rows
        ]


class MockCollectionReference(MockQuery):
    """Named collection; also the unfiltered query over it."""

    def __init__(self, client: MockFirestoreClient, name: str) -> None:
        super().__init__(client, name)

    @property
    def id(self) -> str:
        return self._collection

    def document(self, document_id: str | None = None) -> MockDocumentReference:
        return MockDocumentReference(
            self._client, self._collection, document_id or uuid.uuid4().hex[:20]
        )

    async def add(
        self,
        document_data: dict[str, Any],
        document_id: str | None = None,
    ) -> tuple[datetime, MockDocumentReference]:
        reference = self.document(document_id)
        await reference.set(document_data)
        return datetime.now(UTC), reference


class MockWriteBatch:
    """Collects writes and applies them all-or-nothing on commit."""

    def __init__(self, client: MockFirestoreClient) -> None:
        self._client = client
        self._writes: list[tuple[str, MockDocumentReference, Any]] = []

    def __len__(self) -> int:
        return len(self._writes)

    def set(
        self,
        reference: MockDocumentReference,
        document_data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        self._writes.append(("set", reference, (document_data, merge)))

    def update(self, reference: MockDocumentReference, field_updates: dict[str, Any]) -> None:
        _check_update(field_updates)
        self._writes.append(("update", reference, field_updates))

    def delete(self, reference: MockDocumentReference) -> None:
        self._writes.append(("delete", reference, None))

    async def commit(self) -> list[datetime]:
        self._client._before("commit")
        if len(self._writes) > MAX_BATCH_WRITES:
            raise InvalidArgument(f"maximum {MAX_BATCH_WRITES} writes allowed per request")

        # Validate first so a failing batch leaves the store untouched.
        for operation, reference, _ in self._writes:
            if operation == "update" and reference.id not in reference._store():
                raise NotFound(f"No document to update: {reference.path}")

        for operation, reference, payload in self._writes:
            if operation == "set":
                reference._apply_set(*payload)
            elif operation == "update":
                reference._apply_update(payload)
            else:
                reference._store().pop(reference.id, None)

        committed = [(operation, reference.path) for operation, reference, _ in self._writes]
        self._client.committed_batches.append(committed)
        self._client.writes.extend(committed)
        self._writes = []
        now = datetime.now(UTC)
        return [now for _ in committed]


class MockFirestoreClient:
    """In-memory stand-in for ``google.cloud.firestore.AsyncClient``.

    Attributes:
        project: Project id reported to ``ping``.
        reads: Number of document and query reads served.
        writes: Log of applied writes as ``(operation, path)``.
        committed_batches: Writes of each committed batch, in commit order.
    """

    def __init__(self, project: str | None = "mock-project") -> None:
        """Initialize an empty store.

        Args:
            project: Project id; pass None to simulate an unconfigured client.
        """
        self.project = project
        self.reads = 0
        self.writes: list[tuple[str, str]] = []
        self.committed_batches: list[list[tuple[str, str]]] = []
        self.closed = False
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._failures: dict[str, _PendingFailure] = {}

    def collection(self, collection_id: str) -> MockCollectionReference:
        return MockCollectionReference(self, collection_id)

    def batch(self) -> MockWriteBatch:
        return MockWriteBatch(self)

    def close(self) -> None:
        self.closed = True

    def seed(self, collection: str, documents: dict[str, dict[str, Any]]) -> None:
        """Insert documents directly, bypassing read/write accounting."""
        store = self._collections.setdefault(collection, {})
        for document_id, data in documents.items():
            store[document_id] = copy.deepcopy(data)

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """Return a copy of a collection's contents keyed by document id."""
        return copy.deepcopy(self._collections.get(collection, {}))

    def fail_next(self, operation: str, error: Exception, skip: int = 0) -> None:
        """Make an upcoming operation raise ``error`` once.

        Args:
            operation: One of "get", "set", "update", "delete", "commit".
            error: Exception to raise.
            skip: Number of matching operations to let through first.
        """
        self._failures[operation] = _PendingFailure(error=error, skip=skip)

    def _before(self, operation: str) -> None:
        pending = self._failures.get(operation)
        if pending is None:
            return
        if pending.skip > 0:
            pending.skip -= 1
            return
        del self._failures[operation]
        raise pending.error
