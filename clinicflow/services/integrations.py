"""Typed emitters for the domain occurrences other modules report."""
from typing import Any
from ..event_models import TriggerEvent
from ..rules.engine import WorkflowEngine
from ..rules.models import WorkflowExecution

Record = dict[str, Any]


class WorkflowEvents:
    """
    Helpers used by the appointment, patient, file and payment modules.

    Each builds the payload shape rules are written against and tags the
    event with the emitting module as its source.
    """

    def __init__(self, engine: WorkflowEngine):
        self.engine = engine

    async def appointment_created(self, appointment: Record, patient: Record) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.APPOINTMENT_CREATED,
            {"appointment": appointment, "patient": patient},
            source="appointment_form",
        )

    async def appointment_completed(self, appointment: Record, patient: Record) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.APPOINTMENT_COMPLETED,
            {"appointment": appointment, "patient": patient},
            source="appointment_management",
        )

    async def patient_registered(self, patient: Record) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.PATIENT_REGISTERED,
            {"patient": patient},
            source="patient_form",
        )

    async def patient_checked_in(self, patient: Record, appointment: Record) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.PATIENT_CHECKED_IN,
            {"patient": patient, "appointment": appointment},
            source="check_in",
        )

    async def prescription_added(self, prescription: Record, patient: Record) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.PRESCRIPTION_ADDED,
            {"prescription": prescription, "patient": patient},
            source="prescription_form",
        )

    async def file_uploaded(self, file: Record, patient: Record | None = None) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.FILE_UPLOADED,
            {"file": file, "patient": patient},
            source="file_upload",
        )

    async def vital_signs_entered(self, vitals: Record, patient: Record) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.VITAL_SIGNS_ENTERED,
            {"vitals": vitals, "patient": patient},
            source="vital_signs_form",
        )

    async def payment_received(
        self,
        payment: Record,
        patient: Record,
        appointment: Record | None = None,
    ) -> list[WorkflowExecution]:
        return await self.engine.emit_event(
            TriggerEvent.PAYMENT_RECEIVED,
            {"payment": payment, "patient": patient, "appointment": appointment},
            source="payment_system",
        )
