"""In-memory blob store adapter."""
import structlog
from .base import BlobStore

log = structlog.get_logger()


class InMemoryBlobStore(BlobStore):
    """In-memory implementation of the blob store (lost on restart)."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        """Read blob from memory."""
        return self._blobs.get(key)

    async def set(self, key: str, value: bytes) -> None:
        """Write blob to memory."""
        self._blobs[key] = value
        log.debug("blob.stored", key=key, size=len(value), adapter="memory")

    async def health_check(self) -> bool:
        """In-memory adapter is always healthy."""
        return True
