"""Action execution: turns rule actions into effect records."""
import structlog
from datetime import datetime, timedelta, timezone
from typing import Any
from .alerts import AlertBus, MedicalAlert
from .effects import (
    EffectStore,
    Notification,
    Task,
    Flag,
    Reminder,
    Email,
    NOTIFICATIONS_KEY,
    TASKS_KEY,
    FLAGS_KEY,
    REMINDERS_KEY,
    EMAILS_KEY,
)
from .rooms import RoomDirectory
from .scheduler import DelayedActionQueue
from ..rules.conditions import MISSING, get_nested_value
from ..rules.models import (
    ActionType,
    Rule,
    WorkflowExecution,
    NotificationParameters,
    TaskParameters,
    RoomAssignmentParameters,
    FlagParameters,
    CategorizeFileParameters,
    ReminderParameters,
    EmailParameters,
    AlertParameters,
)
from ..rules.templates import render_template, calculate_due_date

log = structlog.get_logger()


def _render_optional(template: str | None, data: Any) -> str | None:
    return None if template is None else render_template(template, data)


def _first_id(data: Any, *paths: str) -> str | None:
    """First non-empty value among dotted paths, as a string."""
    for path in paths:
        value = get_nested_value(data, path)
        if value is not MISSING and value is not None and value != "":
            return str(value)
    return None


class ActionExecutor:
    """
    Executes one action at a time, or a rule's whole action sequence.

    Each handler builds a typed effect record with its text fields rendered
    against the event data and writes it to the effect store. Store errors
    propagate to the caller.
    """

    def __init__(
        self,
        effects: EffectStore,
        alerts: AlertBus,
        queue: DelayedActionQueue,
        rooms: RoomDirectory | None = None,
        metrics=None,
    ):
        self._effects = effects
        self._alerts = alerts
        self._queue = queue
        self._rooms = rooms or RoomDirectory()
        self._metrics = metrics
        self._handlers = {
            ActionType.SEND_NOTIFICATION.value: self._send_notification,
            ActionType.CREATE_TASK.value: self._create_task,
            ActionType.AUTO_ASSIGN_ROOM.value: self._assign_room,
            ActionType.FLAG_RECORD.value: self._flag_record,
            ActionType.AUTO_CATEGORIZE_FILE.value: self._categorize_file,
            ActionType.CREATE_REMINDER.value: self._create_reminder,
            ActionType.SEND_EMAIL.value: self._send_email,
            ActionType.CREATE_ALERT.value: self._create_alert,
        }

    def _count(self, action_type: str, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_action(action_type, outcome)

    async def execute(self, action, data: dict) -> bool:
        """
        Execute a single action now.

        Returns:
            True if the action ran, False if its type has no handler

        Raises:
            Exception: Whatever the underlying store write raised
        """
        handler = self._handlers.get(action.type)
        if handler is None:
            log.warning("action.unknown_type", action_id=action.id, action_type=action.type)
            self._count(action.type, "skipped")
            return False

        log.info("action.executing", action_id=action.id, action_type=action.type)
        try:
            await handler(action.parameters, data)
        except Exception as e:
            log.error("action.failed", action_id=action.id, action_type=action.type, error=str(e))
            self._count(action.type, "failed")
            raise
        self._count(action.type, "succeeded")
        return True

    async def run_actions(self, rule: Rule, data: dict, execution: WorkflowExecution) -> None:
        """
        Run a rule's actions in declared order.

        Actions with a delay (rule trigger delay plus action delay) go to the
        delayed queue and detach from the execution. The first failing
        action aborts the rest; already applied effects stay.
        """
        base_delay = rule.trigger.delay if rule.trigger.timing == "delayed" else 0
        for action in rule.actions:
            delay = (base_delay or 0) + (action.delay or 0)
            if delay > 0:
                await self._queue.schedule(
                    action,
                    data,
                    execution_id=execution.id,
                    rule_id=rule.id,
                    event_id=execution.event_id,
                    delay_minutes=delay,
                )
            elif await self.execute(action, data):
                execution.actions_executed.append(action.id)

    # --- handlers --------------------------------------------------------

    async def _send_notification(self, params: NotificationParameters, data: dict) -> None:
        notification = Notification(
            title=render_template(params.subject, data) if params.subject else "Workflow Notification",
            message=render_template(params.message, data),
            recipient=_render_optional(params.recipient, data),
            method=params.method,
            priority=params.priority,
        )
        await self._effects.append(NOTIFICATIONS_KEY, notification)

    async def _create_task(self, params: TaskParameters, data: dict) -> None:
        task = Task(
            title=render_template(params.title, data),
            description=render_template(params.description, data),
            assignee=_render_optional(params.assignee, data),
            due_date=calculate_due_date(params.due_date),
            priority=params.priority,
            category=params.category,
        )
        await self._effects.append(TASKS_KEY, task)

    async def _assign_room(self, params: RoomAssignmentParameters, data: dict) -> None:
        room = self._rooms.find_available(params.criteria, params.room_type, params.equipment)
        if room is None:
            log.info("room.unavailable", criteria=params.criteria, room_type=params.room_type)
            return

        record_id = _first_id(data, "appointment.id", "patient.id")
        if record_id is None:
            log.warning("room.no_record", room_id=room.id)
            return
        await self._effects.assign_room(record_id, room.id)

        if params.notification:
            context = {**data, "room": room.model_dump()}
            await self._effects.append(
                NOTIFICATIONS_KEY,
                Notification(message=render_template(params.notification, context)),
            )

    async def _flag_record(self, params: FlagParameters, data: dict) -> None:
        flag = Flag(
            record_id=_first_id(data, "patient.id", "appointment.id"),
            record_type="patient" if data.get("patient") else "appointment",
            flag=params.flag,
            color=params.color,
            message=render_template(params.message, data),
        )
        await self._effects.append(FLAGS_KEY, flag)

    async def _categorize_file(self, params: CategorizeFileParameters, data: dict) -> None:
        file_id = _first_id(data, "file.id")
        if file_id is None:
            log.debug("file.categorize_skipped", reason="no file in event")
            return
        await self._effects.categorize_file(
            file_id,
            params.category,
            _render_optional(params.move_to_folder, data),
        )

    async def _create_reminder(self, params: ReminderParameters, data: dict) -> None:
        reminder = Reminder(
            type=params.type,
            title=render_template(params.title or params.message, data),
            message=render_template(params.message, data),
            due_date=calculate_due_date(params.due_date),
            assignee=_render_optional(params.assignee, data),
            related_record_id=_first_id(data, "patient.id", "appointment.id"),
        )
        await self._effects.append(REMINDERS_KEY, reminder)

    async def _send_email(self, params: EmailParameters, data: dict) -> None:
        now = datetime.now(timezone.utc)
        email = Email(
            to=render_template(params.to, data),
            subject=render_template(params.subject, data),
            body=render_template(params.body, data),
            template=params.template,
            scheduled_for=now + timedelta(minutes=params.delay) if params.delay else now,
        )
        await self._effects.append(EMAILS_KEY, email)

    async def _create_alert(self, params: AlertParameters, data: dict) -> None:
        alert = MedicalAlert(
            type=params.alert_type,
            severity=params.severity,
            message=render_template(params.message, data),
            patient_id=_first_id(data, "patient.id"),
            recommended_action=_render_optional(params.recommended_action, data),
            related_data=data,
        )
        await self._alerts.publish(alert)
