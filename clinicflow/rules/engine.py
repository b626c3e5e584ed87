"""Workflow engine: matches events to rules and runs their actions."""
import asyncio
import structlog
from datetime import datetime, timezone
from typing import Any, Iterable
from .conditions import evaluate_conditions, match_conditions
from .models import (
    Rule,
    RuleDraft,
    WorkflowExecution,
    ExecutionStatus,
    WorkflowStats,
    RulePerformance,
    SimulationResult,
)
from .persistence import RuleStore
from .stats import StatsAggregator
from ..actions.executor import ActionExecutor
from ..event_models import InboundWorkflowEvent, WorkflowEvent, TriggerEvent

log = structlog.get_logger()


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class WorkflowEngine:
    """
    Event dispatcher over a rule store.

    One engine instance is owned by the composition root and handed to
    whoever needs to emit events or read rules, executions and stats.
    """

    def __init__(
        self,
        store: RuleStore,
        executor: ActionExecutor,
        stats: StatsAggregator | None = None,
        metrics=None,
    ):
        self.store = store
        self.executor = executor
        self.stats = stats or StatsAggregator()
        self._metrics = metrics

    # --- rule management -------------------------------------------------

    async def add_rule(self, rule: Rule) -> Rule:
        return await self.store.add_rule(rule)

    async def create_rule(self, draft: RuleDraft, created_by: str) -> Rule:
        """Build a new rule from an authoring draft (fresh id, zeroed counters)."""
        rule = Rule(**draft.model_dump(), created_by=created_by)
        return await self.store.add_rule(rule)

    async def update_rule(self, rule_id: str, updates: dict[str, Any]) -> Rule | None:
        return await self.store.update_rule(rule_id, updates)

    async def delete_rule(self, rule_id: str) -> bool:
        return await self.store.delete_rule(rule_id)

    async def toggle_rule(self, rule_id: str) -> Rule | None:
        return await self.store.toggle_rule(rule_id)

    async def get_rule(self, rule_id: str) -> Rule | None:
        return await self.store.get_rule(rule_id)

    async def get_rules(self) -> list[Rule]:
        return await self.store.get_rules()

    async def get_executions(self) -> list[WorkflowExecution]:
        return await self.store.get_executions()

    async def seed_rules(self, rules: Iterable[Rule]) -> int:
        """Add rules only when the store is empty."""
        return await self.store.add_rules_if_empty(rules)

    # --- event processing ------------------------------------------------

    async def emit_event(
        self,
        type: TriggerEvent | str,
        data: dict[str, Any] | None = None,
        source: str = "system",
    ) -> list[WorkflowExecution]:
        """Stamp an inbound event with id and timestamp, then process it."""
        event = InboundWorkflowEvent(type=type, data=data or {}, source=source).stamp()
        return await self.process_event(event)

    async def process_event(self, event: WorkflowEvent) -> list[WorkflowExecution]:
        """
        Dispatch an event to every enabled rule it triggers.

        Qualifying rules start in priority order and run concurrently;
        each rule's actions run in declared order. Failures are captured
        in the execution records, never raised to the caller.

        Returns:
            Executions created for this event
        """
        event_type = TriggerEvent(event.type).value
        log.info("workflow.event_received", event_id=event.id, event_type=event_type, source=event.source)
        if self._metrics is not None:
            self._metrics.record_event_processed(event_type)

        try:
            candidates = await self.store.matching_rules(event_type)
        except Exception as e:
            log.error("workflow.rules_unavailable", event_id=event.id, error=str(e))
            return []

        qualifying = [r for r in candidates if evaluate_conditions(r.conditions, event.data)]
        log.debug(
            "workflow.rules_matched",
            event_id=event.id,
            candidates=len(candidates),
            qualifying=[r.id for r in qualifying],
        )

        tasks = [asyncio.create_task(self._run_rule(rule, event)) for rule in qualifying]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        executions = []
        for rule, result in zip(qualifying, results):
            if isinstance(result, BaseException):
                log.error("workflow.rule_crashed", rule_id=rule.id, event_id=event.id, error=str(result))
            elif result is not None:
                executions.append(result)
        return executions

    async def _run_rule(self, rule: Rule, event: WorkflowEvent) -> WorkflowExecution | None:
        try:
            execution = await self.store.start_execution(rule.id, event.id)
        except Exception as e:
            log.error("execution.start_failed", rule_id=rule.id, event_id=event.id, error=str(e))
            return None

        error = None
        try:
            await self.executor.run_actions(rule, event.data, execution)
        except Exception as e:
            error = str(e) or type(e).__name__
            log.error(
                "execution.failed",
                execution_id=execution.id,
                rule_id=rule.id,
                event_id=event.id,
                error=str(e),
                error_type=type(e).__name__,
            )
        succeeded = error is None
        status = ExecutionStatus.COMPLETED if succeeded else ExecutionStatus.FAILED

        # Both store calls update memory before persisting
        try:
            await self.store.finish_execution(execution, status, error)
        except Exception as e:
            log.error("execution.persist_failed", execution_id=execution.id, rule_id=rule.id, error=str(e))
        try:
            await self.store.record_outcome(rule.id, success=succeeded)
        except Exception as e:
            log.error("rule.outcome_persist_failed", rule_id=rule.id, success=succeeded, error=str(e))

        if succeeded:
            log.info(
                "execution.completed",
                execution_id=execution.id,
                rule_id=rule.id,
                actions_executed=len(execution.actions_executed),
            )

        if self._metrics is not None:
            self._metrics.record_execution(execution.status)
        return execution

    # --- read side -------------------------------------------------------

    async def get_stats(self) -> WorkflowStats:
        rules = await self.store.get_rules()
        executions = await self.store.get_executions()
        return self.stats.compute(rules, executions)

    async def get_stats_for_period(self, start: datetime, end: datetime) -> WorkflowStats:
        rules = await self.store.get_rules()
        executions = await self.store.get_executions()
        return self.stats.for_period(rules, executions, _aware(start), _aware(end))

    async def get_rule_performance(self, rule_id: str) -> RulePerformance:
        rule = await self.store.get_rule(rule_id)
        executions = await self.store.get_executions()
        return self.stats.rule_performance(rule, executions)

    def simulate_rule(self, rule: Rule, test_data: dict[str, Any]) -> SimulationResult:
        """Dry run: which conditions match and which actions would run. No side effects."""
        would_trigger = evaluate_conditions(rule.conditions, test_data)
        return SimulationResult(
            would_trigger=would_trigger,
            matched_conditions=match_conditions(rule.conditions, test_data),
            actions_to_execute=list(rule.actions) if would_trigger else [],
        )
