"""Existence checks for point mutations.

The check and the write that follows it are separate round trips. A
concurrent delete between them is possible: ``update`` then fails with the
store's own not-found error, while ``set`` recreates the document.
"""

from __future__ import annotations

from typing import Any

import structlog

from firestore_connector.errors import DocumentNotFoundError

logger = structlog.get_logger()


async def document_exists(collection: Any, document_id: str) -> bool:
    """Read a document by id and report whether it exists.

    Errors from the store propagate unchanged.
    """
    snapshot = await collection.document(document_id).get()
    return bool(snapshot.exists)


async def ensure_exists(collection: Any, document_id: str) -> Any:
    """Return the document reference, or raise if the document is missing.

    Args:
        collection: Firestore collection reference.
        document_id: Identity of the document about to be mutated.

    Returns:
        The document reference to write through.

    Raises:
        DocumentNotFoundError: If no document has this id.
    """
    if not await document_exists(collection, document_id):
        logger.warning("document_not_found", collection=collection.id, document_id=document_id)
        raise DocumentNotFoundError(collection=collection.id, document_id=document_id)
    return collection.document(document_id)
