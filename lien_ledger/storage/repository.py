"""
Repository pattern for data access.

Document stores keep invoices, settlements and other records by id. The
calculation core never talks to a store; callers pass plain values in and
persist the results they get back.
"""

import json
import logging
import sqlite3
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol

from .db import DEFAULT_DB_PATH, get_connection
from .models import StoredDocument

logger = logging.getLogger(__name__)


class ConcurrencyError(Exception):
    """Raised when an update is based on a stale copy of a document."""
    def __init__(self, collection: str, document_id: str):
        super().__init__(
            f"Document {collection}/{document_id} was modified by another writer"
        )
        self.collection = collection
        self.document_id = document_id


class DocumentStore(Protocol):
    """Create/read/update/delete by id, stamping id and timestamps."""

    def create(
        self, collection: str, data: Dict[str, Any], document_id: Optional[str] = None
    ) -> StoredDocument: ...

    def get(self, collection: str, document_id: str) -> Optional[StoredDocument]: ...

    def list(self, collection: str) -> List[StoredDocument]: ...

    def update(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> Optional[StoredDocument]: ...

    def delete(self, collection: str, document_id: str) -> bool: ...


def _next_timestamp(previous: Optional[datetime] = None) -> datetime:
    """Current time, strictly after previous so updates are distinguishable."""
    now = datetime.now()
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def _detached(data: Dict[str, Any]) -> Dict[str, Any]:
    """JSON round-trip copy, so no caller shares nested values with a store."""
    return json.loads(json.dumps(data))


def _snapshot(document: StoredDocument) -> StoredDocument:
    return replace(document, data=_detached(document.data))


class InMemoryDocumentStore:
    """Document store backed by dictionaries, for tests and demos."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, StoredDocument]] = {}

    def create(
        self, collection: str, data: Dict[str, Any], document_id: Optional[str] = None
    ) -> StoredDocument:
        documents = self._collections.setdefault(collection, {})
        document_id = document_id or str(uuid.uuid4())
        if document_id in documents:
            raise ValueError(f"Document {collection}/{document_id} already exists")
        now = _next_timestamp()
        document = StoredDocument(
            id=document_id,
            collection=collection,
            data=_detached(data),
            created_at=now,
            updated_at=now,
        )
        documents[document_id] = document
        return _snapshot(document)

    def get(self, collection: str, document_id: str) -> Optional[StoredDocument]:
        document = self._collections.get(collection, {}).get(document_id)
        return _snapshot(document) if document is not None else None

    def list(self, collection: str) -> List[StoredDocument]:
        # dicts keep insertion order, which is creation order
        return [_snapshot(d) for d in self._collections.get(collection, {}).values()]

    def update(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> Optional[StoredDocument]:
        current = self.get(collection, document_id)
        if current is None:
            return None
        if expected_updated_at is not None and current.updated_at != expected_updated_at:
            raise ConcurrencyError(collection, document_id)
        merged = dict(current.data)
        merged.update(data)
        document = StoredDocument(
            id=current.id,
            collection=collection,
            data=_detached(merged),
            created_at=current.created_at,
            updated_at=_next_timestamp(current.updated_at),
        )
        self._collections[collection][document_id] = document
        return _snapshot(document)

    def delete(self, collection: str, document_id: str) -> bool:
        documents = self._collections.get(collection, {})
        if document_id in documents:
            del documents[document_id]
            return True
        return False


class SqliteDocumentStore:
    """Document store persisted in a single SQLite table.

    Each operation opens its own connection, so instances are cheap and
    safe to share between commands.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the store with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the document table if it doesn't exist."""
        initialize_schema(self.db_path)

    def create(
        self, collection: str, data: Dict[str, Any], document_id: Optional[str] = None
    ) -> StoredDocument:
        """Insert a new document.

        Args:
            collection: Collection name, e.g. "invoices"
            data: JSON-compatible document body
            document_id: Optional id; a random UUID is generated otherwise

        Returns:
            The stored document with its stamped id and timestamps

        Raises:
            ValueError: If the id already exists in the collection
        """
        document_id = document_id or str(uuid.uuid4())
        now = _next_timestamp()
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO document (collection, id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                collection,
                document_id,
                json.dumps(data),
                now.isoformat(),
                now.isoformat()
            ))
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise ValueError(f"Document {collection}/{document_id} already exists")
        finally:
            conn.close()
        logger.debug("Created %s/%s", collection, document_id)
        return StoredDocument(
            id=document_id,
            collection=collection,
            data=_detached(data),
            created_at=now,
            updated_at=now
        )

    def get(self, collection: str, document_id: str) -> Optional[StoredDocument]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT id, collection, data, created_at, updated_at
                FROM document
                WHERE collection = ? AND id = ?
            """, (collection, document_id))
            row = cursor.fetchone()
            return _row_to_document(row) if row else None
        finally:
            conn.close()

    def list(self, collection: str) -> List[StoredDocument]:
        """Get all documents of a collection in creation order."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT id, collection, data, created_at, updated_at
                FROM document
                WHERE collection = ?
                ORDER BY created_at, rowid
            """, (collection,))
            return [_row_to_document(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def update(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> Optional[StoredDocument]:
        """Merge fields into an existing document.

        Read and write happen in one transaction so the optimistic check
        cannot race with another writer.

        Args:
            collection: Collection name
            document_id: Id of the document to update
            data: Fields to merge into the stored body
            expected_updated_at: If given, the update only applies when the
                stored document still carries this timestamp

        Returns:
            The updated document, or None if it does not exist

        Raises:
            ConcurrencyError: If expected_updated_at is stale
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.execute("""
                SELECT id, collection, data, created_at, updated_at
                FROM document
                WHERE collection = ? AND id = ?
            """, (collection, document_id))
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return None

            current = _row_to_document(row)
            if expected_updated_at is not None and current.updated_at != expected_updated_at:
                raise ConcurrencyError(collection, document_id)

            merged = dict(current.data)
            merged.update(data)
            now = _next_timestamp(current.updated_at)
            conn.execute("""
                UPDATE document SET data = ?, updated_at = ?
                WHERE collection = ? AND id = ?
            """, (json.dumps(merged), now.isoformat(), collection, document_id))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.debug("Updated %s/%s", collection, document_id)
        return StoredDocument(
            id=current.id,
            collection=collection,
            data=_detached(merged),
            created_at=current.created_at,
            updated_at=now
        )

    def delete(self, collection: str, document_id: str) -> bool:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM document WHERE collection = ? AND id = ?",
                (collection, document_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if deleted:
            logger.debug("Deleted %s/%s", collection, document_id)
        return deleted


def _row_to_document(row) -> StoredDocument:
    return StoredDocument(
        id=row[0],
        collection=row[1],
        data=json.loads(row[2]),
        created_at=datetime.fromisoformat(row[3]),
        updated_at=datetime.fromisoformat(row[4])
    )


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the document table if it doesn't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS document (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (collection, id)
            )
        """)
        conn.commit()
    finally:
        conn.close()


def get_store(db_path: str = DEFAULT_DB_PATH) -> SqliteDocumentStore:
    """Get a SQLite-backed store for the given database path."""
    return SqliteDocumentStore(db_path)
