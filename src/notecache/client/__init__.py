"""Remote store clients."""

from notecache.client.config import ClientConfig
from notecache.client.http import HttpRemoteStoreClient
from notecache.client.memory import MemoryRemoteStoreClient, blob_sha
from notecache.client.protocol import RemoteStoreClient

__all__ = [
    "ClientConfig",
    "HttpRemoteStoreClient",
    "MemoryRemoteStoreClient",
    "RemoteStoreClient",
    "blob_sha",
]
