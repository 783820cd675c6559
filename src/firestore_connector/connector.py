"""Firestore connector implementation.

This module provides the connector a model-persistence framework calls to
find, create, update and delete documents in Cloud Firestore collections.
"""

from __future__ import annotations

import inspect
import time
from typing import Any

import structlog
from google.cloud import firestore
from google.oauth2 import service_account

from firestore_connector.base import BaseConnector, FilterLike
from firestore_connector.batch import delete_collection
from firestore_connector.config import (
    DEFAULT_BATCH_SIZE,
    MAX_BATCH_WRITES,
    FirestoreConfig,
    validate_batch_size,
)
from firestore_connector.errors import (
    AdapterError,
    AuthenticationFailedError,
    ConnectionFailedError,
    InvalidConfigError,
)
from firestore_connector.guard import document_exists, ensure_exists
from firestore_connector.query import build_query, first_clause_query
from firestore_connector.types import ID_FIELD, ConnectionTestResult, Document, Filter

logger = structlog.get_logger()


def _batch_size_from(config: dict[str, Any]) -> int:
    value = config.get("batch_size")
    if value is None:
        return DEFAULT_BATCH_SIZE
    try:
        batch_size = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(
            message=f"batch_size must be an integer, got {value!r}",
            field="batch_size",
        ) from e
    return validate_batch_size(batch_size)


class FirestoreConnector(BaseConnector):
    """Cloud Firestore connector.

    Point writes and deletes (``replace_by_id``, ``update_attributes``,
    ``destroy_by_id``) are guarded by an existence read. ``destroy_all``
    without an id sweeps the collection in atomic pages.
    """

    def __init__(self, config: dict[str, Any], client: Any = None) -> None:
        """Initialize Firestore connector.

        Args:
            config: Configuration dictionary with:
                - project_id: Google Cloud project ID
                - client_email: Service account email
                - private_key: Service account private key
                - database_name: Optional Firestore database name
                - batch_size: Optional page size for collection sweeps
            client: Optional pre-built client. When given, ``connect`` uses it
                instead of building one from credentials and ``disconnect``
                leaves it open.
        """
        super().__init__(config)
        self._injected_client = client
        self._client: Any = None
        self._batch_size = DEFAULT_BATCH_SIZE

    @property
    def client(self) -> Any:
        """The underlying Firestore client, None while disconnected."""
        return self._client

    @property
    def batch_size(self) -> int:
        """Page size used by collection sweeps."""
        return self._batch_size

    async def connect(self) -> None:
        """Establish connection to Firestore."""
        if self._injected_client is not None:
            self._batch_size = _batch_size_from(self._config)
            self._client = self._injected_client
            self._connected = True
            logger.info("firestore_connected", project=getattr(self._client, "project", None))
            return

        settings = FirestoreConfig.from_dict(self._config)

        try:
            credentials = service_account.Credentials.from_service_account_info(
                settings.service_account_info()
            )
        except (ValueError, KeyError) as e:
            raise AuthenticationFailedError(
                message="Invalid Firestore service account credentials",
                details={"error": str(e)},
            ) from e

        try:
            self._client = firestore.AsyncClient(
                project=settings.project_id,
                credentials=credentials,
                database=settings.database_name,
            )
        except Exception as e:
            raise ConnectionFailedError(
                message=f"Failed to connect to Firestore: {str(e)}",
                details={"error": str(e)},
            ) from e

        self._batch_size = settings.batch_size
        self._connected = True
        logger.info(
            "firestore_connected",
            project=settings.project_id,
            database=settings.database_name,
        )

    async def disconnect(self) -> None:
        """Close the Firestore client if this connector created it."""
        if self._client is not None and self._injected_client is None:
            result = self._client.close()
            if inspect.isawaitable(result):
                await result
        self._client = None
        self._connected = False
        logger.info("firestore_disconnected")

    async def test_connection(self) -> ConnectionTestResult:
        """Test Firestore connectivity."""
        start_time = time.time()
        try:
            if not self._connected:
                await self.connect()

            await self.ping()

            latency_ms = int((time.time() - start_time) * 1000)
            return ConnectionTestResult(
                success=True,
                latency_ms=latency_ms,
                server_version="Cloud Firestore",
                message="Connection successful",
            )
        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            return ConnectionTestResult(
                success=False,
                latency_ms=latency_ms,
                message=str(e),
                error_code=e.code.value if isinstance(e, AdapterError) else "CONNECTION_FAILED",
            )

    def _require_client(self) -> Any:
        if not self._connected or self._client is None:
            raise ConnectionFailedError(message="Not connected to Firestore")
        return self._client

    def _collection(self, model: str) -> Any:
        return self._require_client().collection(model)

    @staticmethod
    def _to_document(snapshot: Any) -> Document:
        document = snapshot.to_dict() or {}
        document[ID_FIELD] = snapshot.id
        return document

    @staticmethod
    def _strip_id(data: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in data.items() if key != ID_FIELD}

    def query(self, model: str, filter: FilterLike) -> Any:
        """Build, without running, the query for ``filter`` on a model."""
        return build_query(self._collection(model), Filter.coerce(filter))

    async def all(self, model: str, filter: FilterLike = None) -> list[Document]:
        """Find documents matching a filter.

        A truthy ``where.id`` is served by a point read: one document, or an
        empty list when it does not exist. Otherwise the filter is translated
        to a query, or the whole collection is read when the filter is empty.
        """
        filter = Filter.coerce(filter)
        collection = self._collection(model)

        document_id = filter.document_id
        if document_id:
            snapshot = await collection.document(str(document_id)).get()
            if not snapshot.exists:
                return []
            return [self._to_document(snapshot)]

        query = collection if filter.is_empty else build_query(collection, filter)
        snapshots = await query.get()
        return [self._to_document(snapshot) for snapshot in snapshots]

    async def create(self, model: str, data: dict[str, Any]) -> str:
        """Insert a document under a store-generated id."""
        _, reference = await self._collection(model).add(self._strip_id(data))
        logger.debug("document_created", collection=model, document_id=reference.id)
        return reference.id

    async def _matching_references(
        self,
        collection: Any,
        filter: Filter,
        limit: int | None = None,
    ) -> list[Any]:
        document_id = filter.document_id
        if document_id:
            snapshot = await collection.document(str(document_id)).get()
            return [snapshot.reference] if snapshot.exists else []

        query = build_query(collection, filter)
        if limit is not None:
            query = query.limit(limit)
        return [snapshot.reference for snapshot in await query.get()]

    async def _apply_updates(self, references: list[Any], data: dict[str, Any]) -> int:
        client = self._require_client()
        payload = self._strip_id(data)
        if not payload:
            return 0
        for start in range(0, len(references), MAX_BATCH_WRITES):
            batch = client.batch()
            for reference in references[start : start + MAX_BATCH_WRITES]:
                batch.update(reference, payload)
            await batch.commit()
        return len(references)

    async def update(self, model: str, filter: FilterLike, data: dict[str, Any]) -> int:
        """Partially update the first document matching ``filter``.

        Returns:
            Number of documents updated, 0 or 1.
        """
        references = await self._matching_references(
            self._collection(model), Filter.coerce(filter), limit=1
        )
        updated = await self._apply_updates(references, data)
        logger.debug("documents_updated", collection=model, count=updated)
        return updated

    async def update_all(self, model: str, filter: FilterLike, data: dict[str, Any]) -> int:
        """Partially update every document matching ``filter``."""
        references = await self._matching_references(self._collection(model), Filter.coerce(filter))
        updated = await self._apply_updates(references, data)
        logger.debug("documents_updated", collection=model, count=updated)
        return updated

    async def replace_by_id(self, model: str, id: str, data: dict[str, Any]) -> None:
        """Merge ``data`` into an existing document.

        Fields absent from ``data`` are kept: this is a partial update despite
        the name. Use ``update_attributes`` for a full overwrite.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        reference = await ensure_exists(self._collection(model), str(id))
        payload = self._strip_id(data)
        if not payload:
            return
        await reference.update(payload)
        logger.debug("document_replaced", collection=model, document_id=id)

    async def update_attributes(self, model: str, id: str, data: dict[str, Any]) -> None:
        """Overwrite an existing document; fields absent from ``data`` are dropped.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        reference = await ensure_exists(self._collection(model), str(id))
        await reference.set(self._strip_id(data))
        logger.debug("document_overwritten", collection=model, document_id=id)

    async def destroy_by_id(self, model: str, id: str) -> None:
        """Delete an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        reference = await ensure_exists(self._collection(model), str(id))
        await reference.delete()
        logger.debug("document_deleted", collection=model, document_id=id)

    async def destroy_all(self, model: str, where: dict[str, Any] | None = None) -> int:
        """Delete the document named by ``where.id``, or every document.

        Without an id, keys in ``where`` do not narrow the sweep: the whole
        collection is deleted.

        Returns:
            Number of documents deleted.

        Raises:
            DocumentNotFoundError: If ``where.id`` names a missing document.
        """
        where = where or {}
        document_id = where.get(ID_FIELD)
        if document_id:
            await self.destroy_by_id(model, document_id)
            return 1

        if where:
            logger.warning("destroy_all_ignores_where", collection=model, keys=sorted(where))
        return await delete_collection(self._require_client(), model, self._batch_size)

    async def exists(self, model: str, id: str) -> bool:
        """Check whether a document exists."""
        return await document_exists(self._collection(model), str(id))

    async def count(self, model: str, where: dict[str, Any] | None = None) -> int:
        """Count documents in a collection.

        Only the first key/value pair of ``where`` is applied; further pairs
        are not taken into account.
        """
        collection = self._collection(model)
        query = first_clause_query(collection, where) if where else collection
        snapshots = await query.get()
        return len(snapshots)

    async def ping(self) -> None:
        """Check the client reports a project.

        Raises:
            ConnectionFailedError: If not connected or no project is set.
        """
        client = self._require_client()
        if not getattr(client, "project", None):
            raise ConnectionFailedError(message="Ping Error")
