"""
Document store over PostgreSQL JSONB.

Each collection is a table holding one JSON document per row, keyed by
document id and partition key:

    CREATE TABLE trails (
        id TEXT NOT NULL,
        partition_key TEXT NOT NULL,
        doc JSONB NOT NULL,
        PRIMARY KEY (id, partition_key)
    )

The store offers create/read/update/delete by id and partition key, and
executes query descriptors rendered by ``PostgresJsonRenderer``.

Example Usage:
    engine = get_db_engine()
    store = DocumentStore(engine, "trails")
    store.create_collection()
    trail = store.create({"name": "Mist Trail", ...}, partition_key="Sierra Nevada")
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from api.errors import DocumentNotFoundError, DocumentStoreError
from api.predicates import PostgresJsonRenderer, QueryDescriptor

# Keys managed by the store; updates cannot overwrite them
PROTECTED_KEYS = ("id", "partitionKey", "createdAt")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore:
    """
    A named, partitioned collection of JSON documents.

    The store is stateless apart from its engine and is safe to share
    between requests; all state lives in the database.
    """

    def __init__(
        self,
        engine: Engine,
        collection: str,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the document store.

        Args:
            engine (Engine): SQLAlchemy engine for database connections
            collection (str): Collection (table) name; must be a valid identifier
            logger (Optional[logging.Logger]): Logger instance for operation tracking.
                                             If None, uses the module logger.

        Raises:
            ValueError: If the collection name is not a valid identifier
        """
        if not collection.isidentifier():
            raise ValueError(f"Invalid collection name: {collection!r}")

        self.engine = engine
        self.collection = collection
        self.logger = logger or logging.getLogger(__name__)
        self.renderer = PostgresJsonRenderer(collection)

    def _run(
        self,
        statement: str,
        params: dict[str, Any],
        operation: str,
        fetch: Callable[[Any], Any] = lambda result: None,
        write: bool = False,
    ) -> Any:
        """
        Execute a statement and return whatever ``fetch`` extracts from the result.

        Raises:
            DocumentStoreError: If the database rejects the statement
        """
        try:
            context = self.engine.begin() if write else self.engine.connect()
            with context as conn:
                result = conn.execute(text(statement), params)
                return fetch(result)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to {operation} in '{self.collection}': {e}")
            raise DocumentStoreError(f"Failed to {operation}: {e}") from e

    def create_collection(self) -> None:
        """Create the collection table if it does not exist."""
        self._run(
            f"""
            CREATE TABLE IF NOT EXISTS {self.collection} (
                id TEXT NOT NULL,
                partition_key TEXT NOT NULL,
                doc JSONB NOT NULL,
                PRIMARY KEY (id, partition_key)
            )
            """,
            {},
            "create collection",
            write=True,
        )
        self.logger.info(f"Collection ready: {self.collection}")

    def drop_collection(self) -> None:
        self._run(
            f"DROP TABLE IF EXISTS {self.collection} CASCADE",
            {},
            "drop collection",
            write=True,
        )
        self.logger.info(f"Dropped collection: {self.collection}")

    def create(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        """
        Insert a new document with a generated id and timestamps.

        Args:
            document (dict): Document body
            partition_key (str): Partition the document belongs to

        Returns:
            dict: The stored document including id, partitionKey, createdAt, updatedAt
        """
        now = _utcnow()
        stored = {
            **document,
            "id": str(uuid.uuid4()),
            "partitionKey": partition_key,
            "createdAt": now,
            "updatedAt": now,
        }
        self._run(
            f"INSERT INTO {self.collection} (id, partition_key, doc) "
            "VALUES (:id, :partition_key, CAST(:doc AS jsonb))",
            {
                "id": stored["id"],
                "partition_key": partition_key,
                "doc": json.dumps(stored, default=str),
            },
            "create document",
            write=True,
        )
        self.logger.debug(f"Created document {stored['id']} in {self.collection}")
        return stored

    def read(self, document_id: str, partition_key: str) -> dict[str, Any] | None:
        """Return the document, or None if it does not exist."""
        row = self._run(
            f"SELECT doc FROM {self.collection} "
            "WHERE id = :id AND partition_key = :partition_key",
            {"id": document_id, "partition_key": partition_key},
            "read document",
            fetch=lambda result: result.fetchone(),
        )
        return row.doc if row is not None else None

    def update(
        self, document_id: str, partition_key: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Shallow-merge ``updates`` into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        existing = self.read(document_id, partition_key)
        if existing is None:
            raise DocumentNotFoundError(self.collection, document_id, partition_key)

        merged = {**existing, **updates}
        for key in PROTECTED_KEYS:
            if key in existing:
                merged[key] = existing[key]
        merged["updatedAt"] = _utcnow()

        self._run(
            f"UPDATE {self.collection} SET doc = CAST(:doc AS jsonb) "
            "WHERE id = :id AND partition_key = :partition_key",
            {
                "id": document_id,
                "partition_key": partition_key,
                "doc": json.dumps(merged, default=str),
            },
            "update document",
            write=True,
        )
        return merged

    def delete(self, document_id: str, partition_key: str) -> None:
        """
        Delete a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        deleted = self._run(
            f"DELETE FROM {self.collection} "
            "WHERE id = :id AND partition_key = :partition_key",
            {"id": document_id, "partition_key": partition_key},
            "delete document",
            fetch=lambda result: result.rowcount,
            write=True,
        )
        if not deleted:
            raise DocumentNotFoundError(self.collection, document_id, partition_key)

    def query(self, descriptor: QueryDescriptor) -> list[dict[str, Any]]:
        """Execute a rendered data query and return the matching documents."""
        rows = self._run(
            descriptor.query_text,
            descriptor.params(),
            "execute query",
            fetch=lambda result: result.fetchall(),
        )
        return [row.doc for row in rows]

    def count(self, descriptor: QueryDescriptor) -> int:
        """Execute a rendered count query."""
        total = self._run(
            descriptor.query_text,
            descriptor.params(),
            "execute count query",
            fetch=lambda result: result.scalar(),
        )
        return int(total or 0)
