from pydantic import BaseModel, Field
from typing import Any, Dict, List
from ..event_models import InboundWorkflowEvent, TriggerEvent
from ..rules.models import (
    Rule,
    RuleDraft,
    RuleTrigger,
    RuleCondition,
    RuleAction,
    WorkflowExecution,
)
from ..actions.alerts import MedicalAlert


class ProcessEventRequest(BaseModel):
    type: TriggerEvent
    data: Dict[str, Any] = Field(default_factory=dict)
    source: str = "api"

    def to_inbound(self) -> InboundWorkflowEvent:
        return InboundWorkflowEvent(**self.model_dump())


class ProcessEventResponse(BaseModel):
    event_id: str
    status: str
    executions: List[WorkflowExecution]


class ExecutionListResponse(BaseModel):
    total: int
    executions: List[WorkflowExecution]


class RuleListResponse(BaseModel):
    total: int
    rules: List[Rule]


class RuleCreateRequest(RuleDraft):
    created_by: str = "admin"


class RuleUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    enabled: bool | None = None
    priority: int | None = None
    trigger: RuleTrigger | None = None
    conditions: List[RuleCondition] | None = None
    actions: List[RuleAction] | None = Field(default=None, min_length=1)


class SimulateRequest(BaseModel):
    rule: Rule
    test_data: Dict[str, Any] = Field(default_factory=dict)


class EffectsResponse(BaseModel):
    kind: str
    records: Any


class AlertListResponse(BaseModel):
    total: int
    alerts: List[MedicalAlert]
