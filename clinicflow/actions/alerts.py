"""Publish hook for alerts raised by workflow rules."""
from collections import deque
from typing import Any, Awaitable, Callable
from pydantic import BaseModel, Field
from datetime import datetime
import structlog
from ..event_models import utcnow

log = structlog.get_logger()


class MedicalAlert(BaseModel):
    type: str = "workflow_alert"
    severity: str = "medium"
    message: str
    patient_id: str | None = None
    recommended_action: str | None = None
    related_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


AlertSubscriber = Callable[[MedicalAlert], Awaitable[None]]


class AlertBus:
    """
    One-directional observer: the engine publishes, subscribers react.

    Subscribers are wired by the composition root. A failing subscriber is
    logged and does not prevent delivery to the others.
    """

    def __init__(self):
        self._subscribers: list[AlertSubscriber] = []

    def subscribe(self, subscriber: AlertSubscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: AlertSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def publish(self, alert: MedicalAlert) -> None:
        log.info("alert.published", alert_type=alert.type, severity=alert.severity, patient_id=alert.patient_id)
        for subscriber in list(self._subscribers):
            try:
                await subscriber(alert)
            except Exception as e:
                log.error("alert.subscriber_failed", error=str(e), error_type=type(e).__name__)


class RecentAlerts:
    """Bounded in-process feed of published alerts (for the dashboard)."""

    def __init__(self, maxlen: int = 200):
        self._alerts: deque[MedicalAlert] = deque(maxlen=maxlen)

    async def __call__(self, alert: MedicalAlert) -> None:
        self._alerts.append(alert)

    def list_recent(self, limit: int = 50) -> list[MedicalAlert]:
        return list(reversed(self._alerts))[:limit]
