"""SQLite-backed shipment store for local runs and tests."""

import json
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from ..exceptions import StorageError
from .base import Document, Mutator, ShipmentStore


class SQLiteShipmentStore(ShipmentStore):
    """Keeps each shipment as a JSON document in one row.

    ``tracking_id``, ``status`` and ``created_at`` are copied into columns for
    lookups and ordering. The database must be a file: every operation opens
    its own connection.
    """

    def __init__(self, db_path: str = "shiptrack.db"):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Initialize the database with required tables."""
        with self.transaction() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS shipments (
                id TEXT PRIMARY KEY,
                tracking_id TEXT NOT NULL UNIQUE,
                status TEXT NOT NULL,
                created_at TEXT,
                updated_at TEXT,
                document TEXT NOT NULL
            )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_shipments_status ON shipments(status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_shipments_created_at ON shipments(created_at)")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get an autocommit connection; use ``transaction()`` for writes."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}", cause=e)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}", cause=e)
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block under ``BEGIN IMMEDIATE`` so writers are serialized."""
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        document = json.loads(row["document"])
        document["id"] = row["id"]
        return document

    @staticmethod
    def _body(document: Document) -> str:
        return json.dumps({k: v for k, v in document.items() if k != "id"})

    def add(self, document: Document) -> str:
        doc_id = uuid.uuid4().hex
        try:
            with self.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO shipments (id, tracking_id, status, created_at, updated_at, document)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        doc_id,
                        document["trackingID"],
                        document["status"],
                        document.get("createdAt"),
                        document.get("lastUpdated"),
                        self._body(document),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise StorageError(f"Tracking ID already exists: {document['trackingID']}", cause=e)
        return doc_id

    def get(self, doc_id: str) -> Optional[Document]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM shipments WHERE id = ?", (doc_id,)).fetchone()
            return self._row_to_document(row) if row else None

    def find_by_tracking_id(self, tracking_id: str) -> Optional[Document]:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM shipments WHERE tracking_id = ?", (tracking_id,)
            ).fetchone()
            return self._row_to_document(row) if row else None

    def list_all(self) -> List[Document]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM shipments ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
            return [self._row_to_document(row) for row in rows]

    def update(self, doc_id: str, mutator: Mutator) -> Optional[Document]:
        with self.transaction() as conn:
            row = conn.execute("SELECT * FROM shipments WHERE id = ?", (doc_id,)).fetchone()
            if row is None:
                return None

            document = mutator(self._row_to_document(row))
            conn.execute(
                """
                UPDATE shipments
                SET status = ?, updated_at = ?, document = ?
                WHERE id = ?
                """,
                (document["status"], document.get("lastUpdated"), self._body(document), doc_id),
            )

        document["id"] = doc_id
        return document

    def delete(self, doc_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM shipments WHERE id = ?", (doc_id,))
            return cursor.rowcount > 0

    def count_by_status(self):
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS count FROM shipments GROUP BY status"
            ).fetchall()
            return {row["status"]: row["count"] for row in rows}
