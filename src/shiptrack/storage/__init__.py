"""Shipment document stores."""

from ..config import Settings
from .base import Document, ShipmentStore
from .sqlite import SQLiteShipmentStore


def create_store(settings: Settings) -> ShipmentStore:
    """Build the store selected by ``settings.storage.backend``."""
    storage = settings.storage
    if storage.backend == "firestore":
        # Imported lazily: the Google client is heavy and only needed here
        from .firestore import FirestoreShipmentStore

        return FirestoreShipmentStore.from_config(storage)
    return SQLiteShipmentStore(storage.sqlite_path)


__all__ = ["Document", "ShipmentStore", "SQLiteShipmentStore", "create_store"]
