"""Firestore connector for model-persistence frameworks.

This package maps a generic find/create/update/delete interface onto Cloud
Firestore collections: filter translation, existence-guarded point writes,
and paginated collection sweeps.
"""

from firestore_connector.base import BaseConnector
from firestore_connector.batch import delete_collection, delete_query_batch
from firestore_connector.config import FirestoreConfig
from firestore_connector.connector import FirestoreConnector
from firestore_connector.errors import (
    AdapterError,
    AuthenticationFailedError,
    ConnectionFailedError,
    DocumentNotFoundError,
    ErrorCode,
    InvalidConfigError,
    MissingRequiredFieldError,
)
from firestore_connector.query import RESERVED_OPERATORS, build_query
from firestore_connector.types import ConnectionTestResult, Document, Filter

__all__ = [
    # Connectors
    "BaseConnector",
    "FirestoreConnector",
    # Building blocks
    "build_query",
    "delete_collection",
    "delete_query_batch",
    "RESERVED_OPERATORS",
    # Types
    "ConnectionTestResult",
    "Document",
    "Filter",
    "FirestoreConfig",
    # Errors
    "AdapterError",
    "AuthenticationFailedError",
    "ConnectionFailedError",
    "DocumentNotFoundError",
    "ErrorCode",
    "InvalidConfigError",
    "MissingRequiredFieldError",
]
