"""Tests for the domain event emitters."""
import pytest
from clinicflow.actions.effects import TASKS_KEY, FILE_CATEGORIES_KEY, NOTIFICATIONS_KEY
from clinicflow.rules.samples import sample_rules
from clinicflow.services.integrations import WorkflowEvents


@pytest.mark.asyncio
async def test_file_uploaded_runs_lab_follow_up(engine, handle):
    await engine.seed_rules(sample_rules())
    events = WorkflowEvents(engine)

    [execution] = await events.file_uploaded(
        {"id": "f-1", "name": "CBC_Lab.pdf"},
        {"id": "p-1", "name": "Ana Silva", "primary_doctor": "dr-house"},
    )

    assert execution.rule_id == "rule-003"
    assert execution.status == "completed"
    assert await handle.effects.read(FILE_CATEGORIES_KEY) == {
        "f-1": {"category": "lab_results", "folder": "Lab Reports/Ana Silva"}
    }
    [task] = await handle.effects.read(TASKS_KEY)
    assert task["title"] == "Review lab results for Ana Silva"
    assert task["assignee"] == "dr-house"
    assert task["description"] == "Lab results uploaded: CBC_Lab.pdf"


@pytest.mark.asyncio
async def test_vital_signs_entered_flags_high_risk(engine, handle):
    await engine.seed_rules(sample_rules())
    events = WorkflowEvents(engine)

    executions = await events.vital_signs_entered(
        {"blood_pressure_systolic": 160, "blood_pressure_diastolic": 100},
        {"id": "p-1", "name": "Ana", "age": 72},
    )

    assert [e.rule_id for e in executions] == ["rule-001"]
    [notification] = await handle.effects.read(NOTIFICATIONS_KEY)
    assert notification["message"] == "High-risk patient Ana requires immediate attention"
    assert notification["priority"] == "high"


@pytest.mark.asyncio
async def test_emitters_tag_source_and_shape(engine):
    captured = []

    async def capture(event):
        captured.append(event)
        return []

    engine.process_event = capture
    events = WorkflowEvents(engine)

    await events.appointment_created({"id": "a-1"}, {"id": "p-1"})
    await events.appointment_completed({"id": "a-1"}, {"id": "p-1"})
    await events.patient_registered({"id": "p-1"})
    await events.patient_checked_in({"id": "p-1"}, {"id": "a-1"})
    await events.prescription_added({"id": "rx-1"}, {"id": "p-1"})
    await events.payment_received({"amount": 40}, {"id": "p-1"})

    assert [(e.type, e.source) for e in captured] == [
        ("appointment_created", "appointment_form"),
        ("appointment_completed", "appointment_management"),
        ("patient_registered", "patient_form"),
        ("patient_checked_in", "check_in"),
        ("prescription_added", "prescription_form"),
        ("payment_received", "payment_system"),
    ]
    assert captured[0].data == {"appointment": {"id": "a-1"}, "patient": {"id": "p-1"}}
    assert captured[-1].data == {"payment": {"amount": 40}, "patient": {"id": "p-1"}, "appointment": None}
    assert all(e.id and e.timestamp for e in captured)
