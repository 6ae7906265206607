"""Document store interface for shipments."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

Document = Dict[str, Any]
Mutator = Callable[[Document], Document]


class ShipmentStore(ABC):
    """Persists shipment documents keyed by an opaque document id.

    Documents handed out by the store carry their id under ``"id"``; the id
    is never written inside the stored body.
    """

    @abstractmethod
    def add(self, document: Document) -> str:
        """Insert a new document and return its id."""

    @abstractmethod
    def get(self, doc_id: str) -> Optional[Document]:
        """Fetch one document by id."""

    @abstractmethod
    def find_by_tracking_id(self, tracking_id: str) -> Optional[Document]:
        """Fetch the document whose ``trackingID`` matches."""

    @abstractmethod
    def list_all(self) -> List[Document]:
        """All documents, newest ``createdAt`` first."""

    @abstractmethod
    def update(self, doc_id: str, mutator: Mutator) -> Optional[Document]:
        """Atomically replace a document with ``mutator(current)``.

        The read and the write happen in one transaction, so concurrent
        updates cannot drop each other's history entries. Exceptions raised
        by ``mutator`` abort the transaction and propagate. Returns the new
        document, or None when ``doc_id`` does not exist.
        """

    @abstractmethod
    def delete(self, doc_id: str) -> bool:
        """Remove a document; False when it did not exist."""

    def count_by_status(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for document in self.list_all():
            status = document.get("status") or "unknown"
            counts[status] = counts.get(status, 0) + 1
        return counts

    def close(self) -> None:
        """Release client resources."""
