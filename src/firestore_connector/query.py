"""Translate abstract filters into Firestore queries."""

from __future__ import annotations

from typing import Any

from google.cloud.firestore_v1.base_query import FieldFilter

from firestore_connector.types import Filter

# Range operators the filter syntax reserves. They are skipped, not translated:
# only equality clauses reach the store.
RESERVED_OPERATORS = frozenset({"eq", "lt", "lte", "bt", "bte"})

# Firestore's sentinel field path for the document id.
DOCUMENT_ID_FIELD = "__name__"


def build_query(collection: Any, filter: Filter) -> Any:
    """Compose equality and ordering clauses onto a collection reference.

    The query is returned unexecuted. Filters with an ``id`` in ``where`` must
    be served by a point lookup instead; this function does not special-case
    them.

    Args:
        collection: Firestore collection reference (or any composable query).
        filter: Normalized filter.

    Returns:
        A query with one ``field == value`` clause per non-reserved ``where``
        key, ordered ascending by ``filter.order_by`` when set.
    """
    query = collection
    for field, value in filter.where.items():
        if field in RESERVED_OPERATORS:
            continue
        query = query.where(filter=FieldFilter(field, "==", value))

    if filter.order_by:
        query = query.order_by(filter.order_by)

    return query


def first_clause_query(collection: Any, where: dict[str, Any]) -> Any:
    """Query on the first ``where`` pair only, as ``count`` does."""
    field, value = next(iter(where.items()))
    return collection.where(filter=FieldFilter(field, "==", value))
