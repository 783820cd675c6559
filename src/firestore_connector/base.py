"""Base connector interface.

This module defines the abstract base class a document-store connector
implements: the persistence operations a model framework calls, plus
connection management.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Self

from firestore_connector.types import ConnectionTestResult, Document, Filter

FilterLike = Filter | dict[str, Any] | None


class BaseConnector(ABC):
    """Abstract base class for document-store connectors.

    Every operation takes the model name first; a model maps 1:1 onto a
    collection. All operations are coroutines that either return a result
    or raise.

    Attributes:
        config: Configuration dictionary for the connector.
    """

    def __init__(self, config: dict[str, Any]) -> None:
        """Initialize the connector with configuration.

        Args:
            config: Configuration dictionary specific to the connector type.
        """
        self._config = config
        self._connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the store.

        Raises:
            ConnectionFailedError: If connection cannot be established.
            AuthenticationFailedError: If credentials are invalid.
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    @abstractmethod
    async def test_connection(self) -> ConnectionTestResult:
        """Test connectivity to the store.

        Returns:
            ConnectionTestResult with success status and details.
        """
        ...

    @abstractmethod
    async def all(self, model: str, filter: FilterLike = None) -> list[Document]:
        """Find documents matching a filter."""
        ...

    async def find(self, model: str, filter: FilterLike = None) -> list[Document]:
        """Alias of ``all``."""
        return await self.all(model, filter)

    @abstractmethod
    async def create(self, model: str, data: dict[str, Any]) -> str:
        """Insert a document and return its store-generated id."""
        ...

    @abstractmethod
    async def update(self, model: str, filter: FilterLike, data: dict[str, Any]) -> int:
        """Partially update at most one matching document."""
        ...

    @abstractmethod
    async def update_all(self, model: str, filter: FilterLike, data: dict[str, Any]) -> int:
        """Partially update every matching document."""
        ...

    @abstractmethod
    async def replace_by_id(self, model: str, id: str, data: dict[str, Any]) -> None:
        """Merge ``data`` into an existing document."""
        ...

    @abstractmethod
    async def update_attributes(self, model: str, id: str, data: dict[str, Any]) -> None:
        """Overwrite an existing document with ``data``."""
        ...

    @abstractmethod
    async def destroy_by_id(self, model: str, id: str) -> None:
        """Delete an existing document."""
        ...

    @abstractmethod
    async def destroy_all(self, model: str, where: dict[str, Any] | None = None) -> int:
        """Delete one document by ``where.id`` or sweep the whole collection."""
        ...

    @abstractmethod
    async def exists(self, model: str, id: str) -> bool:
        """Check whether a document exists."""
        ...

    @abstractmethod
    async def count(self, model: str, where: dict[str, Any] | None = None) -> int:
        """Count documents in a collection."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Check the store client is usable."""
        ...

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        """Check if connector is currently connected."""
        return self._connected
