"""Paginated bulk deletion.

A sweep deletes one bounded page per atomic write batch and yields to the
event loop between pages, so neither the batch size nor the stack grows with
the collection. Pages already committed stay deleted if a later page fails.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from firestore_connector.config import DEFAULT_BATCH_SIZE, validate_batch_size
from firestore_connector.query import DOCUMENT_ID_FIELD

logger = structlog.get_logger()


async def delete_query_batch(client: Any, query: Any, batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    """Delete every document matched by ``query``, one page at a time.

    Args:
        client: Firestore client used to create write batches.
        query: Query whose matches are deleted. It should be ordered by a
            stable key; deleted documents never reappear in later pages.
        batch_size: Documents fetched and deleted per page.

    Returns:
        Number of documents deleted.

    Raises:
        InvalidConfigError: If batch_size is outside the store's batch limit.
    """
    validate_batch_size(batch_size)
    page_query = query.limit(batch_size)
    pages = 0
    deleted = 0

    while True:
        try:
            snapshots = await page_query.get()
            if not snapshots:
                break

            batch = client.batch()
            for snapshot in snapshots:
                batch.delete(snapshot.reference)
            await batch.commit()
        except Exception:
            logger.warning(
                "batch_delete_aborted",
                pages_committed=pages,
                documents_deleted=deleted,
            )
            raise

        pages += 1
        deleted += len(snapshots)
        logger.debug("batch_page_deleted", page=pages, size=len(snapshots))

        await asyncio.sleep(0)

    return deleted


async def delete_collection(
    client: Any,
    collection_name: str,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Delete every document in a collection.

    Returns:
        Number of documents deleted. An empty collection costs one read and
        no writes.
    """
    query = client.collection(collection_name).order_by(DOCUMENT_ID_FIELD)
    deleted = await delete_query_batch(client, query, batch_size)
    logger.info("collection_sweep_completed", collection=collection_name, deleted=deleted)
    return deleted
