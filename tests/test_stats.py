"""Tests for dashboard statistics."""
from datetime import datetime, timedelta, timezone
import pytest
from clinicflow.rules.models import Rule, WorkflowExecution
from clinicflow.rules.stats import StatsAggregator

NOW = datetime(2024, 3, 10, 15, 0, tzinfo=timezone.utc)


def make_rule(rule_id, trigger_count=0, enabled=True):
    return Rule(
        id=rule_id,
        name=f"Rule {rule_id}",
        enabled=enabled,
        trigger={"event": "patient_registered"},
        trigger_count=trigger_count,
    )


def make_execution(status="completed", started=NOW, duration_ms=None, rule_id="r1"):
    end = started + timedelta(milliseconds=duration_ms) if duration_ms is not None else None
    return WorkflowExecution(rule_id=rule_id, event_id="evt", status=status, start_time=started, end_time=end)


def test_empty_stats():
    stats = StatsAggregator().compute([], [], now=NOW)
    assert stats.success_rate == 100
    assert stats.total_rules == 0
    assert stats.executions_today == 0
    assert stats.time_saved_hours == 0
    assert stats.top_triggered_rules == []


def test_success_rate_rounds_half_up():
    executions = [make_execution("completed")] + [make_execution("failed")] * 7
    # 1/8 = 12.5%
    assert StatsAggregator().compute([], executions, now=NOW).success_rate == 13

    executions = [make_execution("completed")] * 2 + [make_execution("failed")]
    assert StatsAggregator().compute([], executions, now=NOW).success_rate == 67


def test_today_and_week_windows():
    executions = [
        make_execution(started=NOW - timedelta(hours=1)),
        make_execution(started=NOW - timedelta(hours=20)),
        make_execution(started=NOW - timedelta(days=6)),
        make_execution(started=NOW - timedelta(days=8)),
    ]
    stats = StatsAggregator().compute([], executions, now=NOW)
    assert stats.executions_today == 1
    assert stats.executions_this_week == 3
    assert stats.time_saved_hours == 1


def test_today_uses_configured_timezone():
    # 23:30 in Sao Paulo on the 9th is 02:30 UTC on the 10th
    executions = [make_execution(started=datetime(2024, 3, 10, 2, 30, tzinfo=timezone.utc))]
    assert StatsAggregator("UTC").compute([], executions, now=NOW).executions_today == 1
    assert StatsAggregator("America/Sao_Paulo").compute([], executions, now=NOW).executions_today == 0


def test_top_triggered_rules():
    rules = [make_rule(f"r{i}", trigger_count=i) for i in range(7)]
    rules.append(make_rule("disabled", trigger_count=3, enabled=False))
    stats = StatsAggregator().compute(rules, [], now=NOW)

    assert stats.total_rules == 8
    assert stats.active_rules == 7
    assert [t.rule_id for t in stats.top_triggered_rules] == ["r6", "r5", "r4", "r3", "disabled"]
    assert [r.id for r in rules][:2] == ["r0", "r1"]


def test_period_stats():
    executions = [
        make_execution(started=NOW - timedelta(days=3)),
        make_execution("failed", started=NOW - timedelta(days=1)),
        make_execution(started=NOW),
    ]
    stats = StatsAggregator().for_period([], executions, NOW - timedelta(days=2), NOW, now=NOW)
    assert stats.success_rate == 50
    assert stats.executions_this_week == 2


def test_rule_performance():
    rule = make_rule("r1", trigger_count=3)
    executions = [
        make_execution("completed", duration_ms=100),
        make_execution("failed", duration_ms=300),
        make_execution("running"),
        make_execution("completed", duration_ms=50, rule_id="other"),
    ]
    perf = StatsAggregator().rule_performance(rule, executions)

    assert perf.trigger_count == 3
    assert perf.success_rate == pytest.approx(100 / 3)
    assert perf.average_execution_time_ms == pytest.approx(200)


def test_rule_performance_without_executions():
    perf = StatsAggregator().rule_performance(make_rule("r1"), [])
    assert perf.success_rate == 100.0
    assert perf.average_execution_time_ms == 0.0
