"""Workflow rule, action and execution models."""
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Annotated, Any, Literal, Union
from datetime import datetime
from enum import Enum
import uuid
from ..event_models import TriggerEvent, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class ConditionOperator(str, Enum):
    """Supported condition operators."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"
    IN_LIST = "in_list"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class ActionType(str, Enum):
    """Supported action types."""
    SEND_NOTIFICATION = "send_notification"
    CREATE_TASK = "create_task"
    UPDATE_FIELD = "update_field"
    AUTO_ASSIGN_ROOM = "auto_assign_room"
    CREATE_REMINDER = "create_reminder"
    FLAG_RECORD = "flag_record"
    AUTO_CATEGORIZE_FILE = "auto_categorize_file"
    SCHEDULE_FOLLOWUP = "schedule_followup"
    SEND_EMAIL = "send_email"
    CREATE_ALERT = "create_alert"


class RuleCondition(BaseModel):
    """One predicate, folded left-to-right into the running result."""
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=new_id)
    field: str = Field(..., description="Dotted path into the event data (e.g. patient.age)")
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: Any = Field(default=None, description="Scalar, [min, max] for between, list for in_list")
    logical_operator: LogicalOperator | None = Field(
        default=None,
        description="How this condition combines with the preceding result (AND when unset)"
    )


class RuleTrigger(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    event: TriggerEvent
    timing: Literal["immediate", "delayed"] = "immediate"
    delay: int | None = Field(default=None, description="Minutes, only for delayed timing")

    @model_validator(mode="after")
    def _check_delay(self) -> "RuleTrigger":
        if self.timing == "delayed" and (self.delay is None or self.delay <= 0):
            raise ValueError("delayed triggers need a positive delay")
        if self.timing == "immediate" and self.delay is not None:
            raise ValueError("delay is only allowed for delayed triggers")
        return self


# Action parameter records

class NotificationParameters(BaseModel):
    recipient: str | None = None
    method: Literal["email", "sms", "app_notification", "system_alert"] = "app_notification"
    subject: str | None = None
    message: str = ""
    priority: Literal["low", "medium", "high", "urgent"] = "medium"


class TaskParameters(BaseModel):
    title: str
    description: str = ""
    assignee: str | None = None
    due_date: str | None = Field(default=None, description="ISO timestamp or relative offset like +24h")
    priority: Literal["low", "medium", "high"] = "medium"
    category: str = "workflow"


class RoomAssignmentParameters(BaseModel):
    criteria: str = ""
    room_type: str | None = None
    equipment: list[str] = Field(default_factory=list)
    notification: str | None = None


class FlagParameters(BaseModel):
    flag: str
    color: str = "orange"
    message: str = ""


class CategorizeFileParameters(BaseModel):
    category: str
    move_to_folder: str | None = None


class ReminderParameters(BaseModel):
    type: str | None = None
    title: str | None = None
    message: str = ""
    due_date: str | None = None
    assignee: str | None = None


class EmailParameters(BaseModel):
    to: str
    subject: str = ""
    body: str = ""
    template: str | None = None
    delay: int | None = Field(default=None, description="Minutes until the email is scheduled for sending")


class AlertParameters(BaseModel):
    alert_type: str = "workflow_alert"
    severity: Literal["low", "medium", "high", "critical"] = "medium"
    message: str = ""
    recommended_action: str | None = None


class BaseAction(BaseModel):
    id: str = Field(default_factory=new_id)
    delay: int | None = Field(default=None, ge=0, description="Minutes to defer this action")


class NotificationAction(BaseAction):
    type: Literal["send_notification"] = "send_notification"
    parameters: NotificationParameters


class TaskAction(BaseAction):
    type: Literal["create_task"] = "create_task"
    parameters: TaskParameters


class RoomAssignmentAction(BaseAction):
    type: Literal["auto_assign_room"] = "auto_assign_room"
    parameters: RoomAssignmentParameters = Field(default_factory=RoomAssignmentParameters)


class FlagRecordAction(BaseAction):
    type: Literal["flag_record"] = "flag_record"
    parameters: FlagParameters


class CategorizeFileAction(BaseAction):
    type: Literal["auto_categorize_file"] = "auto_categorize_file"
    parameters: CategorizeFileParameters


class ReminderAction(BaseAction):
    type: Literal["create_reminder"] = "create_reminder"
    parameters: ReminderParameters


class EmailAction(BaseAction):
    type: Literal["send_email"] = "send_email"
    parameters: EmailParameters


class AlertAction(BaseAction):
    type: Literal["create_alert"] = "create_alert"
    parameters: AlertParameters


class UpdateFieldAction(BaseAction):
    type: Literal["update_field"] = "update_field"
    parameters: dict[str, Any] = Field(default_factory=dict)


class ScheduleFollowupAction(BaseAction):
    type: Literal["schedule_followup"] = "schedule_followup"
    parameters: dict[str, Any] = Field(default_factory=dict)


RuleAction = Annotated[
    Union[
        NotificationAction,
        TaskAction,
        RoomAssignmentAction,
        FlagRecordAction,
        CategorizeFileAction,
        ReminderAction,
        EmailAction,
        AlertAction,
        UpdateFieldAction,
        ScheduleFollowupAction,
    ],
    Field(discriminator="type"),
]


class Rule(BaseModel):
    """Workflow automation rule definition."""

    id: str = Field(default_factory=new_id, description="Unique rule identifier")
    name: str = Field(..., description="Human-readable rule name")
    description: str = ""
    enabled: bool = Field(default=True, description="Whether rule is active")
    priority: int = Field(default=0, description="Rule priority (higher runs first)")

    trigger: RuleTrigger
    conditions: list[RuleCondition] = Field(
        default_factory=list,
        description="Conditions folded left-to-right (empty = always qualifies)"
    )
    actions: list[RuleAction] = Field(default_factory=list)

    created_by: str = "system"
    created_at: datetime = Field(default_factory=utcnow)

    # Engine-owned counters
    trigger_count: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    last_triggered: datetime | None = None


class RuleDraft(BaseModel):
    """Authoring-layer payload for a new rule (id, timestamps and counters are assigned)."""

    name: str = Field(..., min_length=1)
    description: str = ""
    enabled: bool = True
    priority: int = 0
    trigger: RuleTrigger
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(..., min_length=1)


# Fields the authoring layer may never change through an update
PROTECTED_RULE_FIELDS = frozenset({
    "id", "created_at", "trigger_count", "success_count", "error_count", "last_triggered",
})


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowExecution(BaseModel):
    """Record of one rule's response to one event."""
    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=new_id)
    rule_id: str
    event_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    error: str | None = None
    actions_executed: list[str] = Field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class TopTriggeredRule(BaseModel):
    rule_id: str
    rule_name: str
    trigger_count: int


class WorkflowStats(BaseModel):
    total_rules: int
    active_rules: int
    executions_today: int
    executions_this_week: int
    success_rate: int
    time_saved_hours: int
    top_triggered_rules: list[TopTriggeredRule] = Field(default_factory=list)


class RulePerformance(BaseModel):
    trigger_count: int
    success_rate: float
    average_execution_time_ms: float


class SimulationResult(BaseModel):
    would_trigger: bool
    matched_conditions: list[bool]
    actions_to_execute: list[RuleAction]
