from typing import Optional

from depo_takip.config import Settings
from depo_takip.storage.base import WarehouseStore
from depo_takip.storage.dynamodb import DynamoDBStore
from depo_takip.storage.locks import ResourceLock
from depo_takip.storage.memory import InMemoryStore


def create_store(settings: Optional[Settings] = None) -> WarehouseStore:
    """Ayarlardaki DEPO_STORAGE değerine göre depo oluşturur."""
    settings = settings or Settings.from_env()
    if settings.storage_backend == "memory":
        return InMemoryStore()
    return DynamoDBStore(settings)


__all__ = [
    "DynamoDBStore",
    "InMemoryStore",
    "ResourceLock",
    "WarehouseStore",
    "create_store",
]
