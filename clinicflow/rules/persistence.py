"""Rule and execution persistence on top of a blob store.

Rules live under ``workflow_rules`` and the execution log under
``workflow_executions``. Every mutation is read-modify-persist under a
single lock. Unreadable stored state resets that collection to empty.
"""
import asyncio
import orjson
import structlog
from datetime import datetime, timezone
from typing import Any, Iterable
from pydantic import TypeAdapter, ValidationError
from .models import (
    Rule,
    WorkflowExecution,
    ExecutionStatus,
    PROTECTED_RULE_FIELDS,
)
from ..adapters.base import BlobStore

log = structlog.get_logger()

RULES_KEY = "workflow_rules"
EXECUTIONS_KEY = "workflow_executions"
DEFAULT_EXECUTION_RETENTION = 1000

_rules_adapter = TypeAdapter(list[Rule])
_executions_adapter = TypeAdapter(list[WorkflowExecution])


class RuleStore:
    """Authoritative holder of the rule collection and the execution log."""

    def __init__(self, blob: BlobStore, max_executions: int = DEFAULT_EXECUTION_RETENTION):
        """
        Initialize the store.

        Args:
            blob: Backend used to persist both collections
            max_executions: Execution log cap, oldest evicted first
        """
        self._blob = blob
        self._max_executions = max(1, max_executions)
        self._rules: list[Rule] = []
        self._executions: list[WorkflowExecution] = []
        self._lock = asyncio.Lock()
        self._loaded = False

    async def load(self) -> None:
        """Load both collections from the backend (idempotent)."""
        async with self._lock:
            await self._ensure_loaded()

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._rules = await self._read(RULES_KEY, _rules_adapter, "rules.load_failed")
        self._sort_rules()
        executions = await self._read(EXECUTIONS_KEY, _executions_adapter, "executions.load_failed")
        self._executions = executions[-self._max_executions:]
        self._loaded = True
        log.info("rules.loaded", rules=len(self._rules), executions=len(self._executions))

    async def _read(self, key: str, adapter: TypeAdapter, failure_event: str) -> list:
        raw = await self._blob.get(key)
        if raw is None:
            return []
        try:
            return adapter.validate_python(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as e:
            # Rules can be re-authored; start over rather than fail
            log.warning(failure_event, key=key, error=str(e))
            return []

    def _sort_rules(self) -> None:
        """Sort rules by priority, highest first (stable for ties)."""
        self._rules.sort(key=lambda r: r.priority, reverse=True)

    async def _save_rules(self) -> None:
        payload = [r.model_dump(mode="json") for r in self._rules]
        await self._blob.set(RULES_KEY, orjson.dumps(payload))

    async def _save_executions(self) -> None:
        payload = [e.model_dump(mode="json") for e in self._executions[-self._max_executions:]]
        await self._blob.set(EXECUTIONS_KEY, orjson.dumps(payload))

    def _find(self, rule_id: str) -> Rule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    # --- rules -----------------------------------------------------------

    async def add_rule(self, rule: Rule) -> Rule:
        """
        Add a rule and re-derive priority order.

        Raises:
            ValueError: If a rule with the same ID already exists
        """
        async with self._lock:
            await self._ensure_loaded()
            if self._find(rule.id) is not None:
                raise ValueError(f"Rule with ID {rule.id} already exists")
            stored = rule.model_copy(deep=True)
            self._rules.append(stored)
            self._sort_rules()
            await self._save_rules()
            log.info("rule.added", rule_id=rule.id, rule_name=rule.name, priority=rule.priority)
            return stored.model_copy(deep=True)

    async def add_rules_if_empty(self, rules: Iterable[Rule]) -> int:
        """Seed the store when it holds no rules. Returns the number added."""
        async with self._lock:
            await self._ensure_loaded()
            if self._rules:
                return 0
            self._rules = [r.model_copy(deep=True) for r in rules]
            self._sort_rules()
            await self._save_rules()
            log.info("rules.seeded", count=len(self._rules))
            return len(self._rules)

    async def update_rule(self, rule_id: str, updates: dict[str, Any]) -> Rule | None:
        """
        Merge fields into a rule.

        Counter, id and creation fields in ``updates`` are ignored.

        Returns:
            Updated rule, or None if the ID is unknown

        Raises:
            ValidationError: If the merged rule is invalid
        """
        async with self._lock:
            await self._ensure_loaded()
            for index, rule in enumerate(self._rules):
                if rule.id == rule_id:
                    break
            else:
                log.debug("rule.update_unknown", rule_id=rule_id)
                return None

            changes = {k: v for k, v in updates.items() if k not in PROTECTED_RULE_FIELDS}
            merged = Rule.model_validate({**rule.model_dump(), **changes})
            self._rules[index] = merged
            self._sort_rules()
            await self._save_rules()
            log.info("rule.updated", rule_id=rule_id, fields=sorted(changes))
            return merged.model_copy(deep=True)

    async def delete_rule(self, rule_id: str) -> bool:
        """
        Remove a rule by ID.

        Returns:
            True if rule was removed, False if not found
        """
        async with self._lock:
            await self._ensure_loaded()
            initial_count = len(self._rules)
            self._rules = [r for r in self._rules if r.id != rule_id]
            removed = len(self._rules) < initial_count
            if removed:
                await self._save_rules()
                log.info("rule.removed", rule_id=rule_id)
            return removed

    async def toggle_rule(self, rule_id: str) -> Rule | None:
        """Flip a rule's enabled flag. Returns the rule, or None if unknown."""
        async with self._lock:
            await self._ensure_loaded()
            rule = self._find(rule_id)
            if rule is None:
                return None
            rule.enabled = not rule.enabled
            await self._save_rules()
            log.info("rule.toggled", rule_id=rule_id, enabled=rule.enabled)
            return rule.model_copy(deep=True)

    async def get_rule(self, rule_id: str) -> Rule | None:
        """Get a copy of a rule by ID."""
        async with self._lock:
            await self._ensure_loaded()
            rule = self._find(rule_id)
            return rule.model_copy(deep=True) if rule else None

    async def get_rules(self) -> list[Rule]:
        """Copies of all rules, priority-descending."""
        async with self._lock:
            await self._ensure_loaded()
            return [r.model_copy(deep=True) for r in self._rules]

    async def matching_rules(self, event_type: str) -> list[Rule]:
        """Copies of enabled rules triggered by ``event_type``, priority-descending."""
        async with self._lock:
            await self._ensure_loaded()
            return [
                r.model_copy(deep=True)
                for r in self._rules
                if r.enabled and r.trigger.event == event_type
            ]

    async def record_outcome(self, rule_id: str, success: bool) -> None:
        """
        Count one qualifying invocation of a rule.

        Increments ``trigger_count`` and exactly one of ``success_count`` /
        ``error_count``. A rule deleted meanwhile is ignored.
        """
        async with self._lock:
            await self._ensure_loaded()
            rule = self._find(rule_id)
            if rule is None:
                log.debug("rule.outcome_for_missing_rule", rule_id=rule_id)
                return
            rule.trigger_count += 1
            if success:
                rule.success_count += 1
                rule.last_triggered = datetime.now(timezone.utc)
            else:
                rule.error_count += 1
            await self._save_rules()

    # --- executions ------------------------------------------------------

    def _append_execution(self, execution: WorkflowExecution) -> None:
        self._executions.append(execution)
        overflow = len(self._executions) - self._max_executions
        if overflow > 0:
            del self._executions[:overflow]

    async def record_execution(self, execution: WorkflowExecution) -> None:
        """Append an execution to the log (capped, oldest evicted first)."""
        async with self._lock:
            await self._ensure_loaded()
            self._append_execution(execution)
            await self._save_executions()

    async def start_execution(self, rule_id: str, event_id: str) -> WorkflowExecution:
        """Create and log a ``running`` execution; the returned object is live."""
        execution = WorkflowExecution(rule_id=rule_id, event_id=event_id, status=ExecutionStatus.RUNNING)
        await self.record_execution(execution)
        log.debug("execution.started", execution_id=execution.id, rule_id=rule_id, event_id=event_id)
        return execution

    async def finish_execution(
        self,
        execution: WorkflowExecution,
        status: ExecutionStatus,
        error: str | None = None,
    ) -> WorkflowExecution:
        """
        Terminate an execution exactly once.

        Raises:
            RuntimeError: If the execution already finished
        """
        if status not in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
            raise ValueError(f"Cannot finish an execution as {status}")
        async with self._lock:
            await self._ensure_loaded()
            if execution.is_finished:
                raise RuntimeError(f"Execution {execution.id} already finished")
            execution.status = ExecutionStatus(status).value
            execution.end_time = datetime.now(timezone.utc)
            if error:
                execution.error = error
            await self._save_executions()
            return execution

    async def get_executions(self) -> list[WorkflowExecution]:
        """Copies of the retained execution log, oldest first."""
        async with self._lock:
            await self._ensure_loaded()
            return [e.model_copy(deep=True) for e in self._executions]
