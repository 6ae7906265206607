"""Cloud Firestore shipment store."""

import logging
from typing import List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from ..config import StorageConfig
from ..exceptions import ConfigurationError, StorageError
from .base import Document, Mutator, ShipmentStore

logger = logging.getLogger(__name__)


class FirestoreShipmentStore(ShipmentStore):
    """Stores shipments as documents of one Firestore collection."""

    def __init__(self, client: firestore.Client, collection: str = "shipments"):
        self.client = client
        self.collection_name = collection

    @classmethod
    def from_config(cls, config: StorageConfig) -> "FirestoreShipmentStore":
        """Build a client from a service account file or default credentials."""
        try:
            if config.firestore_credentials_path:
                credentials = service_account.Credentials.from_service_account_file(
                    config.firestore_credentials_path
                )
                client = firestore.Client(
                    project=config.firestore_project_id or credentials.project_id,
                    credentials=credentials,
                )
            else:
                client = firestore.Client(project=config.firestore_project_id)
        except (OSError, ValueError, google_exceptions.GoogleAPIError) as e:
            raise ConfigurationError(f"Firestore initialization failed: {e}", cause=e)

        logger.info(f"Using Firestore project {client.project}, collection '{config.collection}'")
        return cls(client, config.collection)

    @property
    def collection(self):
        return self.client.collection(self.collection_name)

    @staticmethod
    def _snapshot_to_document(snapshot) -> Document:
        document = snapshot.to_dict() or {}
        document["id"] = snapshot.id
        return document

    def add(self, document: Document) -> str:
        body = {k: v for k, v in document.items() if k != "id"}
        try:
            _, ref = self.collection.add(body)
        except google_exceptions.GoogleAPIError as e:
            raise StorageError(f"Error saving shipment: {e}", cause=e)
        return ref.id

    def get(self, doc_id: str) -> Optional[Document]:
        try:
            snapshot = self.collection.document(doc_id).get()
        except google_exceptions.GoogleAPIError as e:
            raise StorageError(f"Error fetching shipment {doc_id}: {e}", cause=e)
        return self._snapshot_to_document(snapshot) if snapshot.exists else None

    def find_by_tracking_id(self, tracking_id: str) -> Optional[Document]:
        query = self.collection.where(filter=FieldFilter("trackingID", "==", tracking_id)).limit(1)
        try:
            for snapshot in query.stream():
                return self._snapshot_to_document(snapshot)
        except google_exceptions.GoogleAPIError as e:
            raise StorageError(f"Tracking lookup failed: {e}", cause=e)
        return None

    def list_all(self) -> List[Document]:
        query = self.collection.order_by("createdAt", direction=firestore.Query.DESCENDING)
        try:
            return [self._snapshot_to_document(snapshot) for snapshot in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            raise StorageError(f"Error fetching shipments: {e}", cause=e)

    def update(self, doc_id: str, mutator: Mutator) -> Optional[Document]:
        ref = self.collection.document(doc_id)

        @firestore.transactional
        def apply(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                return None
            document = mutator(self._snapshot_to_document(snapshot))
            transaction.set(ref, {k: v for k, v in document.items() if k != "id"})
            return document

        try:
            document = apply(self.client.transaction())
        except google_exceptions.GoogleAPIError as e:
            raise StorageError(f"Error updating shipment {doc_id}: {e}", cause=e)
        if document is not None:
            document["id"] = doc_id
        return document

    def delete(self, doc_id: str) -> bool:
        ref = self.collection.document(doc_id)
        try:
            if not ref.get().exists:
                return False
            ref.delete()
        except google_exceptions.GoogleAPIError as e:
            raise StorageError(f"Error deleting shipment {doc_id}: {e}", cause=e)
        return True

    def close(self) -> None:
        self.client.close()
