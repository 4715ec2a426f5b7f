"""mehtrics.offline

Durable FIFO of mutations waiting for the remote API.
"""

from .queue import OfflineQueue, QueueStatus, SyncResult, create_offline_queue
from .store import QueueDatabase, QueueStore, StoredItem

__all__ = [
    "OfflineQueue",
    "QueueDatabase",
    "QueueStatus",
    "QueueStore",
    "StoredItem",
    "SyncResult",
    "create_offline_queue",
]
