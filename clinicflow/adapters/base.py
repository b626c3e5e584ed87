"""Base adapter interface for blob store backends."""
from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Abstract get/set blob store holding serialized collections under fixed keys."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """
        Read the blob stored under a key.

        Args:
            key: Storage key (e.g. "workflow_rules")

        Returns:
            Raw bytes, or None if nothing is stored under the key
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """
        Replace the blob stored under a key.

        Args:
            key: Storage key
            value: Serialized payload
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the backend is healthy and accessible.

        Returns:
            True if backend is healthy, False otherwise
        """
        pass

    async def close(self) -> None:
        """Release backend connections. Backends without any keep the default."""
        pass
