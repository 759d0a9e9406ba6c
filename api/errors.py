"""
Exception types for the trail search backend.

The query builder, the document store and the HTTP layer all raise from
this small hierarchy so callers can catch ``TrailSearchError`` as a whole.
"""

from typing import Any


class TrailSearchError(Exception):
    """Base class for all trail search errors."""


class InvalidFilterError(TrailSearchError, ValueError):
    """
    A filter value was present but outside its valid domain.

    Raised by a strict ``TrailQueryBuilder``; a permissive builder records
    these on ``builder.rejected`` instead of raising.
    """

    def __init__(self, filter_name: str, value: Any, reason: str):
        self.filter_name = filter_name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for filter '{filter_name}': {reason}")


class DocumentStoreError(TrailSearchError):
    """Executing a statement against the document store failed."""


class DocumentNotFoundError(DocumentStoreError):
    """The requested document does not exist in its partition."""

    def __init__(self, collection: str, document_id: str, partition_key: str):
        self.collection = collection
        self.document_id = document_id
        self.partition_key = partition_key
        super().__init__(
            f"Document '{document_id}' not found in '{collection}' "
            f"(partition '{partition_key}')"
        )
