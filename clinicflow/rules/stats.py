"""Dashboard metrics derived from rules and the execution log."""
import math
from datetime import datetime, timedelta, timezone
from typing import Sequence
from zoneinfo import ZoneInfo
from .models import (
    Rule,
    WorkflowExecution,
    ExecutionStatus,
    WorkflowStats,
    TopTriggeredRule,
    RulePerformance,
)

# Estimated manual effort saved per execution
HOURS_SAVED_PER_EXECUTION = 0.25
TOP_RULES_LIMIT = 5


def _percent(part: int, total: int) -> int:
    """Rounded-half-up percentage; 100 when there is nothing to measure."""
    if total == 0:
        return 100
    return math.floor(part / total * 100 + 0.5)


class StatsAggregator:
    """Stateless computations over a snapshot of rules and executions."""

    def __init__(self, tz: str = "UTC"):
        self.tz = ZoneInfo(tz)

    def _midnight(self, now: datetime) -> datetime:
        local = now.astimezone(self.tz)
        return local.replace(hour=0, minute=0, second=0, microsecond=0)

    def compute(
        self,
        rules: Sequence[Rule],
        executions: Sequence[WorkflowExecution],
        now: datetime | None = None,
    ) -> WorkflowStats:
        now = now or datetime.now(timezone.utc)
        today = self._midnight(now)
        week_ago = now - timedelta(days=7)

        total = len(executions)
        completed = sum(1 for e in executions if e.status == ExecutionStatus.COMPLETED)

        top = sorted(rules, key=lambda r: r.trigger_count, reverse=True)[:TOP_RULES_LIMIT]

        return WorkflowStats(
            total_rules=len(rules),
            active_rules=sum(1 for r in rules if r.enabled),
            executions_today=sum(1 for e in executions if e.start_time >= today),
            executions_this_week=sum(1 for e in executions if e.start_time >= week_ago),
            success_rate=_percent(completed, total),
            time_saved_hours=math.floor(total * HOURS_SAVED_PER_EXECUTION),
            top_triggered_rules=[
                TopTriggeredRule(rule_id=r.id, rule_name=r.name, trigger_count=r.trigger_count)
                for r in top
            ],
        )

    def for_period(
        self,
        rules: Sequence[Rule],
        executions: Sequence[WorkflowExecution],
        start: datetime,
        end: datetime,
        now: datetime | None = None,
    ) -> WorkflowStats:
        """Same figures restricted to executions started within [start, end]."""
        window = [e for e in executions if start <= e.start_time <= end]
        return self.compute(rules, window, now=now)

    def rule_performance(
        self,
        rule: Rule | None,
        executions: Sequence[WorkflowExecution],
    ) -> RulePerformance:
        if rule is None:
            return RulePerformance(trigger_count=0, success_rate=100.0, average_execution_time_ms=0.0)

        mine = [e for e in executions if e.rule_id == rule.id]
        completed = sum(1 for e in mine if e.status == ExecutionStatus.COMPLETED)
        durations = [
            (e.end_time - e.start_time).total_seconds() * 1000
            for e in mine
            if e.end_time is not None
        ]

        return RulePerformance(
            trigger_count=rule.trigger_count,
            success_rate=completed / len(mine) * 100 if mine else 100.0,
            average_execution_time_ms=sum(durations) / len(durations) if durations else 0.0,
        )
