"""Tests for paginated bulk deletion."""

import math
from unittest.mock import AsyncMock, patch

import pytest
from google.api_core.exceptions import Aborted, DeadlineExceeded

from firestore_connector.batch import delete_collection, delete_query_batch
from firestore_connector.errors import InvalidConfigError
from firestore_connector.mock import MockFirestoreClient
from firestore_connector.query import build_query
from firestore_connector.types import Filter


def _client_with(n: int) -> MockFirestoreClient:
    client = MockFirestoreClient()
    client.seed(
        "events",
        {f"e{i:04d}": {"seq": i, "kind": "even" if i % 2 == 0 else "odd"} for i in range(n)},
    )
    return client


class TestDeleteCollection:
    """Tests for delete_collection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [0, 3, 10, 57])
    async def test_removes_every_document(self, n: int):
        """The collection ends empty whatever its size relative to the page."""
        client = _client_with(n)

        deleted = await delete_collection(client, "events", batch_size=10)

        assert deleted == n
        assert client.documents("events") == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [3, 10, 57])
    async def test_one_commit_per_page(self, n: int):
        """Each non-empty page is one batch of at most batch_size deletes."""
        client = _client_with(n)

        await delete_collection(client, "events", batch_size=10)

        assert len(client.committed_batches) == math.ceil(n / 10)
        assert all(0 < len(batch) <= 10 for batch in client.committed_batches)
        assert all(op == "delete" for batch in client.committed_batches for op, _ in batch)

    @pytest.mark.asyncio
    async def test_pages_follow_document_id_order(self):
        """Pages are taken in document id order."""
        client = _client_with(25)

        await delete_collection(client, "events", batch_size=10)

        first_page = [path for _, path in client.committed_batches[0]]
        assert first_page == [f"events/e{i:04d}" for i in range(10)]

    @pytest.mark.asyncio
    async def test_empty_collection_makes_no_writes(self):
        """Sweeping an empty collection is one read and nothing else."""
        client = MockFirestoreClient()

        deleted = await delete_collection(client, "events")

        assert deleted == 0
        assert client.reads == 1
        assert client.committed_batches == []

    @pytest.mark.asyncio
    async def test_repeat_sweep_is_trivial(self):
        """A second sweep over the emptied collection succeeds with no writes."""
        client = _client_with(12)
        await delete_collection(client, "events", batch_size=5)
        commits = len(client.committed_batches)

        assert await delete_collection(client, "events", batch_size=5) == 0
        assert len(client.committed_batches) == commits

    @pytest.mark.asyncio
    async def test_yields_between_pages(self):
        """Control returns to the event loop after every committed page."""
        client = _client_with(25)

        with patch("firestore_connector.batch.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await delete_collection(client, "events", batch_size=10)

        assert sleep.await_count == 3
        sleep.assert_awaited_with(0)

    @pytest.mark.asyncio
    async def test_sweeps_far_beyond_recursion_limit(self):
        """Page count is not bounded by stack depth."""
        client = _client_with(1500)

        deleted = await delete_collection(client, "events", batch_size=1)

        assert deleted == 1500
        assert len(client.committed_batches) == 1500


class TestDeleteQueryBatchFailures:
    """Tests for sweeps that fail part-way."""

    @pytest.mark.asyncio
    async def test_commit_failure_aborts_and_keeps_committed_pages(self):
        """A failed commit stops the sweep; earlier pages stay deleted."""
        client = _client_with(50)
        error = Aborted("contention")
        client.fail_next("commit", error, skip=2)

        with pytest.raises(Aborted) as exc_info:
            await delete_collection(client, "events", batch_size=10)

        assert exc_info.value is error
        assert len(client.committed_batches) == 2
        assert len(client.documents("events")) == 30

    @pytest.mark.asyncio
    async def test_read_failure_aborts(self):
        """A failed page read stops the sweep with the store's error."""
        client = _client_with(30)
        client.fail_next("get", DeadlineExceeded("slow"), skip=1)

        with pytest.raises(DeadlineExceeded):
            await delete_collection(client, "events", batch_size=10)

        assert len(client.documents("events")) == 20

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch_size", [0, -1, 501])
    async def test_batch_size_out_of_range(self, batch_size: int):
        """Page sizes outside 1..500 are rejected before any read."""
        client = _client_with(5)

        with pytest.raises(InvalidConfigError) as exc_info:
            await delete_collection(client, "events", batch_size=batch_size)

        assert exc_info.value.details == {"field": "batch_size"}
        assert client.reads == 0


class TestDeleteQueryBatch:
    """Tests for sweeping a pre-built query."""

    @pytest.mark.asyncio
    async def test_deletes_only_matches(self):
        """Only documents matched by the query are deleted."""
        client = _client_with(20)
        query = build_query(client.collection("events"), Filter(where={"kind": "odd"}))

        deleted = await delete_query_batch(client, query, batch_size=3)

        assert deleted == 10
        remaining = client.documents("events")
        assert len(remaining) == 10
        assert all(doc["kind"] == "even" for doc in remaining.values())
