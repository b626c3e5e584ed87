"""Durable queue for delayed actions.

Pending jobs are persisted under ``workflow_delayed_actions`` with their due
time and payload, and a polling loop runs them once due. A job is removed
only after it ran, so a crash mid-run redelivers it on the next start
(at-least-once). Jobs are never cancelled: a rule disabled or deleted after
scheduling still has its pending actions fire.
"""
import asyncio
import contextlib
import orjson
import structlog
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from ..adapters.base import BlobStore
from ..event_models import utcnow
from ..rules.models import RuleAction, new_id

log = structlog.get_logger()

DELAYED_ACTIONS_KEY = "workflow_delayed_actions"

ActionRunner = Callable[[Any, dict], Awaitable[bool]]


class DelayedJob(BaseModel):
    id: str = Field(default_factory=new_id)
    execution_id: str
    rule_id: str
    event_id: str
    action: RuleAction
    data: dict[str, Any] = Field(default_factory=dict)
    due_at: datetime
    created_at: datetime = Field(default_factory=utcnow)


_jobs_adapter = TypeAdapter(list[DelayedJob])


class DelayedActionQueue:
    """Persisted delayed jobs plus the scheduler loop that fires them."""

    def __init__(self, blob: BlobStore, poll_interval: float = 5.0, metrics=None):
        """
        Initialize the queue.

        Args:
            blob: Backend holding the pending jobs
            poll_interval: Seconds between scheduler polls
            metrics: Optional Metrics instance for the pending-jobs gauge
        """
        self._blob = blob
        self._poll_interval = poll_interval
        self._metrics = metrics
        self._jobs: list[DelayedJob] = []
        self._lock = asyncio.Lock()
        self._loaded = False
        self._task: asyncio.Task | None = None

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        raw = await self._blob.get(DELAYED_ACTIONS_KEY)
        if raw is not None:
            try:
                self._jobs = _jobs_adapter.validate_python(orjson.loads(raw))
            except (orjson.JSONDecodeError, ValidationError) as e:
                log.warning("delayed_actions.load_failed", error=str(e))
                self._jobs = []
        self._loaded = True
        self._report_pending()
        if self._jobs:
            log.info("delayed_actions.restored", pending=len(self._jobs))

    async def _save(self) -> None:
        payload = [job.model_dump(mode="json") for job in self._jobs]
        await self._blob.set(DELAYED_ACTIONS_KEY, orjson.dumps(payload))
        self._report_pending()

    def _report_pending(self) -> None:
        if self._metrics is not None:
            self._metrics.set_delayed_actions_pending(len(self._jobs))

    async def schedule(
        self,
        action,
        data: dict,
        *,
        execution_id: str,
        rule_id: str,
        event_id: str,
        delay_minutes: int,
        now: datetime | None = None,
    ) -> DelayedJob:
        """Persist a job due ``delay_minutes`` from now."""
        now = now or datetime.now(timezone.utc)
        job = DelayedJob(
            execution_id=execution_id,
            rule_id=rule_id,
            event_id=event_id,
            action=action,
            data=data,
            due_at=now + timedelta(minutes=delay_minutes),
        )
        async with self._lock:
            await self._ensure_loaded()
            self._jobs.append(job)
            await self._save()
        log.info(
            "delayed_action.scheduled",
            job_id=job.id,
            action_id=action.id,
            action_type=action.type,
            rule_id=rule_id,
            due_at=job.due_at.isoformat(),
        )
        return job

    async def pending(self) -> list[DelayedJob]:
        """Copies of all pending jobs, soonest first."""
        async with self._lock:
            await self._ensure_loaded()
            return sorted((j.model_copy(deep=True) for j in self._jobs), key=lambda j: j.due_at)

    async def run_due(self, run: ActionRunner, now: datetime | None = None) -> int:
        """
        Run every job due at ``now`` in due order.

        Failures are logged and not retried.

        Returns:
            Number of jobs that were due
        """
        now = now or datetime.now(timezone.utc)
        async with self._lock:
            await self._ensure_loaded()
            due = sorted((j for j in self._jobs if j.due_at <= now), key=lambda j: j.due_at)

        for job in due:
            try:
                handled = await run(job.action, job.data)
            except Exception as e:
                log.error(
                    "delayed_action.failed",
                    job_id=job.id,
                    action_id=job.action.id,
                    rule_id=job.rule_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                log.info(
                    "delayed_action.executed",
                    job_id=job.id,
                    action_id=job.action.id,
                    rule_id=job.rule_id,
                    handled=handled,
                )
            async with self._lock:
                self._jobs = [j for j in self._jobs if j.id != job.id]
                await self._save()

        return len(due)

    async def _loop(self, run: ActionRunner) -> None:
        while True:
            try:
                await self.run_due(run)
            except Exception as e:
                log.error("scheduler.poll_failed", error=str(e), error_type=type(e).__name__)
            await asyncio.sleep(self._poll_interval)

    def start(self, run: ActionRunner) -> None:
        """Start the polling loop on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(run))
            log.info("scheduler.started", poll_interval=self._poll_interval)

    async def stop(self) -> None:
        """Stop the polling loop; pending jobs stay persisted."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            log.info("scheduler.stopped")
