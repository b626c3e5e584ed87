"""Composition of the workflow engine from configured backends."""
from dataclasses import dataclass
import structlog
from ..adapters.base import BlobStore
from ..adapters.memory import InMemoryBlobStore
from ..adapters.redis_store import RedisBlobStore
from ..actions.alerts import AlertBus
from ..actions.effects import EffectStore
from ..actions.executor import ActionExecutor
from ..actions.rooms import RoomDirectory
from ..actions.scheduler import DelayedActionQueue
from ..config import Settings, get_settings
from ..rules.engine import WorkflowEngine
from ..rules.persistence import RuleStore
from ..rules.stats import StatsAggregator

log = structlog.get_logger()


@dataclass
class EngineHandle:
    """Everything the application wires around one engine instance."""
    engine: WorkflowEngine
    blob: BlobStore
    effects: EffectStore
    alerts: AlertBus
    queue: DelayedActionQueue


def build_engine(
    settings: Settings | None = None,
    blob: BlobStore | None = None,
    alerts: AlertBus | None = None,
    rooms: RoomDirectory | None = None,
    metrics=None,
) -> EngineHandle:
    """
    Build an engine and its collaborators.

    Args:
        settings: Configuration (defaults to get_settings())
        blob: Backend to use (defaults to the configured backend)
        alerts: Alert bus to publish on (a fresh one by default)
        rooms: Room directory (placeholder rooms by default)
        metrics: Optional Metrics instance
    """
    settings = settings or get_settings()
    if blob is None:
        blob = _create_default_store(settings)
    alerts = alerts or AlertBus()

    effects = EffectStore(blob)
    queue = DelayedActionQueue(blob, poll_interval=settings.SCHEDULER_POLL_SECONDS, metrics=metrics)
    executor = ActionExecutor(effects, alerts, queue, rooms=rooms, metrics=metrics)
    store = RuleStore(blob, max_executions=settings.EXECUTION_RETENTION)
    engine = WorkflowEngine(
        store,
        executor,
        stats=StatsAggregator(tz=settings.STATS_TIMEZONE),
        metrics=metrics,
    )
    return EngineHandle(engine=engine, blob=blob, effects=effects, alerts=alerts, queue=queue)


def _create_default_store(settings: Settings) -> BlobStore:
    """
    Create the blob store based on configuration.

    Returns:
        BlobStore instance based on STORE_BACKEND setting
    """
    if settings.STORE_BACKEND == "redis":
        if not settings.REDIS_URL:
            log.warning(
                "store.fallback",
                requested="redis",
                actual="memory",
                reason="REDIS_URL not configured"
            )
            return InMemoryBlobStore()

        log.info("store.selected", type="redis", url=str(settings.REDIS_URL))
        return RedisBlobStore(redis_url=str(settings.REDIS_URL), key_prefix=settings.REDIS_KEY_PREFIX)
    else:
        log.info("store.selected", type="memory")
        return InMemoryBlobStore()
