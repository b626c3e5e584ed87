"""Redis blob store adapter."""
import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError
from .base import BlobStore
from ..config import get_settings

log = structlog.get_logger()
settings = get_settings()


class RedisBlobStore(BlobStore):
    """Redis implementation of the blob store.

    Each collection is a single Redis string value under a prefixed key,
    so state survives process restarts.
    """

    def __init__(self, redis_url: str | None = None, key_prefix: str | None = None):
        """
        Initialize Redis blob store.

        Args:
            redis_url: Redis connection URL (defaults to settings.REDIS_URL)
            key_prefix: Prefix for every key (defaults to settings.REDIS_KEY_PREFIX)
        """
        self.redis_url = redis_url or str(settings.REDIS_URL)
        self.key_prefix = settings.REDIS_KEY_PREFIX if key_prefix is None else key_prefix
        self._client: Redis | None = None

    def _get_client(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(
                self.redis_url,
                decode_responses=False,  # Blobs are bytes
                socket_connect_timeout=5,
                socket_timeout=5
            )
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> bytes | None:
        """
        Read a blob from Redis.

        Raises:
            RedisError: If Redis is unreachable
        """
        try:
            return await self._get_client().get(self._key(key))
        except RedisError as e:
            log.error("redis.get_failed", error=str(e), key=key)
            raise

    async def set(self, key: str, value: bytes) -> None:
        """
        Write a blob to Redis.

        Raises:
            RedisError: If unable to write to Redis
        """
        try:
            await self._get_client().set(self._key(key), value)
            log.debug("blob.stored", key=key, size=len(value), adapter="redis")
        except RedisError as e:
            log.error("redis.set_failed", error=str(e), key=key)
            raise

    async def health_check(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if Redis is accessible, False otherwise
        """
        try:
            client = self._get_client()
            return await client.ping()
        except Exception as e:
            log.warning("redis.health_check_failed", error=str(e))
            return False

    async def close(self):
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
