"""Tests for action execution and effect records."""
import pytest
from pydantic import TypeAdapter
from clinicflow.adapters.memory import InMemoryBlobStore
from clinicflow.actions.alerts import AlertBus, RecentAlerts
from clinicflow.actions.effects import (
    EffectStore,
    NOTIFICATIONS_KEY,
    TASKS_KEY,
    FLAGS_KEY,
    REMINDERS_KEY,
    EMAILS_KEY,
    ROOM_ASSIGNMENTS_KEY,
    FILE_CATEGORIES_KEY,
)
from clinicflow.actions.executor import ActionExecutor
from clinicflow.actions.rooms import Room, RoomDirectory
from clinicflow.actions.scheduler import DelayedActionQueue
from clinicflow.rules.models import RuleAction, Rule, WorkflowExecution

action_adapter = TypeAdapter(RuleAction)


def make_executor(blob=None, alerts=None, rooms=None):
    blob = blob or InMemoryBlobStore()
    effects = EffectStore(blob)
    queue = DelayedActionQueue(blob)
    executor = ActionExecutor(effects, alerts or AlertBus(), queue, rooms=rooms)
    return executor, effects, queue


def action(payload):
    return action_adapter.validate_python(payload)


DATA = {
    "patient": {"id": "p-1", "name": "Ana Silva", "age": 70, "primary_doctor": "dr-house"},
    "vitals": {"blood_pressure_systolic": 150, "blood_pressure_diastolic": 95},
    "appointment": {"id": "apt-1", "department": "Cardiology"},
    "file": {"id": "f-1", "name": "lab_results.pdf"},
}


@pytest.mark.asyncio
async def test_flag_record_renders_message():
    executor, effects, _ = make_executor()
    ran = await executor.execute(action({
        "type": "flag_record",
        "parameters": {"flag": "HIGH_RISK", "color": "red", "message": "Age {{patient.age}}, BP {{vitals.blood_pressure_systolic}}"},
    }), DATA)

    assert ran is True
    flags = await effects.read(FLAGS_KEY)
    assert len(flags) == 1
    assert flags[0]["record_id"] == "p-1"
    assert flags[0]["record_type"] == "patient"
    assert flags[0]["flag"] == "HIGH_RISK"
    assert "70" in flags[0]["message"] and "150" in flags[0]["message"]


@pytest.mark.asyncio
async def test_notification_defaults():
    executor, effects, _ = make_executor()
    await executor.execute(action({
        "type": "send_notification",
        "parameters": {"recipient": "doctor", "message": "{{patient.name}} needs attention", "priority": "high"},
    }), DATA)

    [notification] = await effects.read(NOTIFICATIONS_KEY)
    assert notification["title"] == "Workflow Notification"
    assert notification["message"] == "Ana Silva needs attention"
    assert notification["priority"] == "high"
    assert notification["read"] is False


@pytest.mark.asyncio
async def test_create_task_with_relative_due_date():
    executor, effects, _ = make_executor()
    await executor.execute(action({
        "type": "create_task",
        "parameters": {
            "title": "Review lab results for {{patient.name}}",
            "assignee": "{{patient.primary_doctor}}",
            "due_date": "+24h",
        },
    }), DATA)

    [task] = await effects.read(TASKS_KEY)
    assert task["title"] == "Review lab results for Ana Silva"
    assert task["assignee"] == "dr-house"
    assert task["due_date"] is not None
    assert task["status"] == "pending"
    assert task["created_by"] == "workflow_automation"


@pytest.mark.asyncio
async def test_room_assignment_uses_inventory():
    rooms = RoomDirectory([Room(id="c-1", name="Cardio 1", type="cardiology", equipment=["ecg"])])
    executor, effects, _ = make_executor(rooms=rooms)
    await executor.execute(action({
        "type": "auto_assign_room",
        "parameters": {"room_type": "cardiology", "equipment": ["ecg"], "notification": "Room {{room.name}} assigned"},
    }), DATA)

    assert await effects.read(ROOM_ASSIGNMENTS_KEY) == {"apt-1": "c-1"}
    [notification] = await effects.read(NOTIFICATIONS_KEY)
    assert notification["message"] == "Room Cardio 1 assigned"


@pytest.mark.asyncio
async def test_room_assignment_without_match_is_skipped():
    rooms = RoomDirectory([Room(id="g-1", name="General", type="general")])
    executor, effects, _ = make_executor(rooms=rooms)
    ran = await executor.execute(action({"type": "auto_assign_room", "parameters": {"room_type": "cardiology"}}), DATA)

    assert ran is True
    assert await effects.read(ROOM_ASSIGNMENTS_KEY) == {}


@pytest.mark.asyncio
async def test_categorize_file():
    executor, effects, _ = make_executor()
    await executor.execute(action({
        "type": "auto_categorize_file",
        "parameters": {"category": "lab_results", "move_to_folder": "Lab Reports/{{patient.name}}"},
    }), DATA)

    assert await effects.read(FILE_CATEGORIES_KEY) == {
        "f-1": {"category": "lab_results", "folder": "Lab Reports/Ana Silva"}
    }


@pytest.mark.asyncio
async def test_reminder_and_email():
    executor, effects, _ = make_executor()
    await executor.execute(action({
        "type": "create_reminder",
        "parameters": {"type": "follow_up", "message": "Call {{patient.name}}", "due_date": "+2d"},
    }), DATA)
    await executor.execute(action({
        "type": "send_email",
        "parameters": {"to": "{{patient.primary_doctor}}@clinic.test", "subject": "Patient {{patient.name}}", "delay": 30},
    }), DATA)

    [reminder] = await effects.read(REMINDERS_KEY)
    assert reminder["title"] == "Call Ana Silva"
    assert reminder["related_record_id"] == "p-1"
    [email] = await effects.read(EMAILS_KEY)
    assert email["to"] == "dr-house@clinic.test"
    assert email["subject"] == "Patient Ana Silva"


@pytest.mark.asyncio
async def test_alert_is_published_to_subscribers():
    alerts = AlertBus()
    recent = RecentAlerts()
    alerts.subscribe(recent)

    async def broken(alert):
        raise RuntimeError("subscriber down")

    alerts.subscribe(broken)
    executor, _, _ = make_executor(alerts=alerts)
    await executor.execute(action({
        "type": "create_alert",
        "parameters": {"alert_type": "vitals", "severity": "critical", "message": "BP {{vitals.blood_pressure_systolic}}"},
    }), DATA)

    [alert] = recent.list_recent()
    assert alert.severity == "critical"
    assert alert.message == "BP 150"
    assert alert.patient_id == "p-1"


@pytest.mark.asyncio
async def test_unhandled_action_types_are_skipped():
    executor, effects, _ = make_executor()
    assert await executor.execute(action({"type": "update_field", "parameters": {"field": "status"}}), DATA) is False
    assert await executor.execute(action({"type": "schedule_followup"}), DATA) is False
    assert await effects.read(NOTIFICATIONS_KEY) == []


class FailingBlobStore(InMemoryBlobStore):
    async def set(self, key, value):
        raise ConnectionError("store unavailable")


@pytest.mark.asyncio
async def test_store_failure_propagates():
    executor, _, _ = make_executor(blob=FailingBlobStore())
    with pytest.raises(ConnectionError):
        await executor.execute(action({"type": "flag_record", "parameters": {"flag": "X"}}), DATA)


@pytest.mark.asyncio
async def test_run_actions_defers_delayed_actions():
    executor, effects, queue = make_executor()
    rule = Rule(
        name="Mixed",
        trigger={"event": "appointment_created"},
        actions=[
            {"id": "now", "type": "send_notification", "parameters": {"message": "now"}},
            {"id": "later", "type": "send_notification", "delay": 15, "parameters": {"message": "later"}},
        ],
    )
    execution = WorkflowExecution(rule_id=rule.id, event_id="evt-1")

    await executor.run_actions(rule, DATA, execution)

    assert execution.actions_executed == ["now"]
    assert [n["message"] for n in await effects.read(NOTIFICATIONS_KEY)] == ["now"]
    [job] = await queue.pending()
    assert job.action.id == "later"
    assert job.execution_id == execution.id


@pytest.mark.asyncio
async def test_run_actions_stops_at_first_failure():
    executor, effects, _ = make_executor()
    rule = Rule(
        name="Broken",
        trigger={"event": "appointment_created"},
        actions=[
            {"id": "first", "type": "send_notification", "parameters": {"message": "one"}},
            {"id": "skip", "type": "update_field"},
            {"id": "boom", "type": "auto_categorize_file", "parameters": {"category": "x"}},
        ],
    )
    execution = WorkflowExecution(rule_id=rule.id, event_id="evt-1")

    effects.categorize_file = _raise
    with pytest.raises(RuntimeError):
        await executor.run_actions(rule, DATA, execution)
    assert execution.actions_executed == ["first"]


async def _raise(*args, **kwargs):
    raise RuntimeError("categories store down")
