from app.storage.base import StorageBackend, SubscriptionHandle
from app.storage.fallback import FallbackStorage
from app.storage.local import LocalStorage
from app.storage.provider import close_storage, get_storage
from app.storage.remote import RemoteStorage

__all__ = [
    "StorageBackend",
    "SubscriptionHandle",
    "LocalStorage",
    "RemoteStorage",
    "FallbackStorage",
    "get_storage",
    "close_storage",
]
