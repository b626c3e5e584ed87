"""Tests for placeholder rendering and due dates."""
from datetime import datetime, timedelta, timezone
from clinicflow.rules.templates import render_template, calculate_due_date

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_render_resolves_nested_paths():
    data = {"patient": {"name": "Ana", "age": 70}, "vitals": {"blood_pressure_systolic": 150}}
    text = render_template("Age {{patient.age}}, BP {{ vitals.blood_pressure_systolic }}", data)
    assert text == "Age 70, BP 150"


def test_render_keeps_unresolved_placeholders():
    assert render_template("Hello {{patient.nickname}}", {"patient": {}}) == "Hello {{patient.nickname}}"


def test_render_null_as_empty_string():
    assert render_template("Doctor: {{patient.primary_doctor}}.", {"patient": {"primary_doctor": None}}) == "Doctor: ."


def test_render_booleans_and_whole_floats():
    data = {"paid": True, "amount": 40.0, "ratio": 0.5}
    assert render_template("{{paid}} {{amount}} {{ratio}}", data) == "true 40 0.5"


def test_render_none_template():
    assert render_template(None, {}) == ""


def test_relative_due_dates():
    assert calculate_due_date("+24h", now=NOW) == NOW + timedelta(hours=24)
    assert calculate_due_date("+3d", now=NOW) == NOW + timedelta(days=3)
    assert calculate_due_date("+1w", now=NOW) == NOW + timedelta(weeks=1)
    assert calculate_due_date("+30", now=NOW) == NOW + timedelta(minutes=30)


def test_absolute_due_dates():
    assert calculate_due_date("2024-03-05T10:00:00+00:00") == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)
    assert calculate_due_date("2024-03-05T10:00:00") == datetime(2024, 3, 5, 10, tzinfo=timezone.utc)


def test_invalid_due_dates():
    assert calculate_due_date(None) is None
    assert calculate_due_date("") is None
    assert calculate_due_date("+soon") is None
    assert calculate_due_date("next tuesday") is None
