"""Starter rules seeded into an empty store when SEED_SAMPLE_RULES is on."""
from datetime import datetime, timezone
from .models import Rule


def sample_rules() -> list[Rule]:
    return [
        Rule.model_validate({
            "id": "rule-001",
            "name": "High-Risk Patient Alert",
            "description": "Automatically flag patients over 65 with high blood pressure",
            "priority": 8,
            "trigger": {"event": "vital_signs_entered", "timing": "immediate"},
            "conditions": [
                {"id": "cond-001", "field": "patient.age", "operator": "greater_than", "value": 65},
                {
                    "id": "cond-002",
                    "field": "vitals.blood_pressure_systolic",
                    "operator": "greater_than",
                    "value": 140,
                    "logical_operator": "AND",
                },
            ],
            "actions": [
                {
                    "id": "action-001",
                    "type": "flag_record",
                    "parameters": {
                        "flag": "HIGH_RISK",
                        "color": "red",
                        "message": (
                            "High-risk patient: Age {{patient.age}}, "
                            "BP {{vitals.blood_pressure_systolic}}/{{vitals.blood_pressure_diastolic}}"
                        ),
                    },
                },
                {
                    "id": "action-002",
                    "type": "send_notification",
                    "parameters": {
                        "recipient": "doctor",
                        "method": "app_notification",
                        "message": "High-risk patient {{patient.name}} requires immediate attention",
                        "priority": "high",
                    },
                },
            ],
            "created_by": "admin",
            "created_at": datetime(2024, 1, 15, tzinfo=timezone.utc),
        }),
        Rule.model_validate({
            "id": "rule-002",
            "name": "Cardiology Room Assignment",
            "description": "Auto-assign cardiology room for heart-related appointments",
            "priority": 6,
            "trigger": {"event": "patient_checked_in", "timing": "immediate"},
            "conditions": [
                {"id": "cond-003", "field": "appointment.department", "operator": "equals", "value": "Cardiology"},
            ],
            "actions": [
                {
                    "id": "action-003",
                    "type": "auto_assign_room",
                    "parameters": {
                        "criteria": "has_ecg_equipment",
                        "room_type": "cardiology",
                        "notification": "Cardiology room {{room.name}} assigned with ECG equipment",
                    },
                },
            ],
            "created_by": "admin",
            "created_at": datetime(2024, 1, 10, tzinfo=timezone.utc),
        }),
        Rule.model_validate({
            "id": "rule-003",
            "name": "Lab Results Follow-up",
            "description": "Create follow-up task when lab results are uploaded",
            "priority": 5,
            "trigger": {"event": "file_uploaded", "timing": "immediate"},
            "conditions": [
                {"id": "cond-004", "field": "file.name", "operator": "contains", "value": "lab"},
            ],
            "actions": [
                {
                    "id": "action-004",
                    "type": "auto_categorize_file",
                    "parameters": {
                        "category": "lab_results",
                        "move_to_folder": "Lab Reports/{{patient.name}}",
                    },
                },
                {
                    "id": "action-005",
                    "type": "create_task",
                    "parameters": {
                        "title": "Review lab results for {{patient.name}}",
                        "description": "Lab results uploaded: {{file.name}}",
                        "assignee": "{{patient.primary_doctor}}",
                        "due_date": "+24h",
                        "priority": "medium",
                    },
                },
            ],
            "created_by": "admin",
            "created_at": datetime(2024, 1, 8, tzinfo=timezone.utc),
        }),
    ]
