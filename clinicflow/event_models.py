from pydantic import BaseModel, Field
from typing import Any, Dict
from datetime import datetime, timezone
from enum import Enum
import uuid


class TriggerEvent(str, Enum):
    """Domain event types a rule can be triggered by."""
    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_COMPLETED = "appointment_completed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    PATIENT_REGISTERED = "patient_registered"
    PATIENT_CHECKED_IN = "patient_checked_in"
    PRESCRIPTION_ADDED = "prescription_added"
    PRESCRIPTION_COMPLETED = "prescription_completed"
    FILE_UPLOADED = "file_uploaded"
    VITAL_SIGNS_ENTERED = "vital_signs_entered"
    PAYMENT_RECEIVED = "payment_received"
    LAB_RESULTS_UPLOADED = "lab_results_uploaded"
    MEDICAL_ALERT_CREATED = "medical_alert_created"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InboundWorkflowEvent(BaseModel):
    type: TriggerEvent = Field(..., description="Event type discriminator")
    data: Dict[str, Any] = Field(default_factory=dict, description="Payload consulted by conditions and templates")
    source: str = Field(..., description="Origin identifier")

    def stamp(self) -> "WorkflowEvent":
        return WorkflowEvent(**self.model_dump())


class WorkflowEvent(InboundWorkflowEvent):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
