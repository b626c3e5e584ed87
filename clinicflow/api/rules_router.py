"""API routes for workflow rule management."""
from fastapi import APIRouter, HTTPException, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from .router import get_engine
from .schemas import RuleListResponse, RuleCreateRequest, RuleUpdateRequest, SimulateRequest
from ..rules.engine import WorkflowEngine
from ..rules.models import Rule, RuleDraft, RulePerformance, SimulationResult

router = APIRouter(prefix="/v1/rules", tags=["rules"])


def _not_found(rule_id: str) -> HTTPException:
    return HTTPException(404, detail=f"Rule {rule_id} not found")


@router.post("", response_model=Rule, status_code=201)
async def create_rule(req: RuleCreateRequest, engine: WorkflowEngine = Depends(get_engine)):
    """Create a new rule from an authoring draft."""
    draft = RuleDraft.model_validate(req.model_dump(exclude={"created_by"}))
    try:
        return await engine.create_rule(draft, created_by=req.created_by)
    except ValueError as e:
        raise HTTPException(400, detail=str(e))


@router.get("", response_model=RuleListResponse)
async def list_rules(engine: WorkflowEngine = Depends(get_engine)):
    """List all rules, highest priority first."""
    rules = await engine.get_rules()
    return RuleListResponse(total=len(rules), rules=rules)


@router.post("/simulate", response_model=SimulationResult)
async def simulate_rule(req: SimulateRequest, engine: WorkflowEngine = Depends(get_engine)):
    """Dry-run a rule against test data."""
    return engine.simulate_rule(req.rule, req.test_data)


@router.get("/{rule_id}", response_model=Rule)
async def get_rule(rule_id: str, engine: WorkflowEngine = Depends(get_engine)):
    """Get a specific rule by ID."""
    rule = await engine.get_rule(rule_id)
    if not rule:
        raise _not_found(rule_id)
    return rule


@router.patch("/{rule_id}", response_model=Rule)
async def update_rule(rule_id: str, req: RuleUpdateRequest, engine: WorkflowEngine = Depends(get_engine)):
    """Apply a partial update to an existing rule."""
    try:
        updated = await engine.update_rule(rule_id, req.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    if updated is None:
        raise _not_found(rule_id)
    return updated


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(rule_id: str, engine: WorkflowEngine = Depends(get_engine)):
    """Delete a rule."""
    if not await engine.delete_rule(rule_id):
        raise _not_found(rule_id)
    return None


@router.post("/{rule_id}/toggle", response_model=Rule)
async def toggle_rule(rule_id: str, engine: WorkflowEngine = Depends(get_engine)):
    """Enable a disabled rule or disable an enabled one."""
    rule = await engine.toggle_rule(rule_id)
    if rule is None:
        raise _not_found(rule_id)
    return rule


@router.get("/{rule_id}/performance", response_model=RulePerformance)
async def rule_performance(rule_id: str, engine: WorkflowEngine = Depends(get_engine)):
    """Trigger count, success rate and average duration for one rule."""
    if await engine.get_rule(rule_id) is None:
        raise _not_found(rule_id)
    return await engine.get_rule_performance(rule_id)
