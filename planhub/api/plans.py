"""
Plan procedures.

Each route is one procedure bound to one access tier:
- plans.find (public, query string planId)
- plans.create (admin)
- plans.update (admin)
- plans.checkUpgradePrice (public, query string)

Mutation bodies are read by a dependency declared after the access tier, so a
rejected caller gets Unauthorized before the body is even decoded.
"""
from typing import Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ValidationError

from planhub.core.errors import InvalidRequestError, validation_message
from planhub.core.procedures import ExecutionContext, admin_procedure, public_procedure
from planhub.features.plans.service import check_upgrade_price, create_plan, find_plan, update_plan
from planhub.models.plan import Plan, PlanCreateRequest, PlanUpdateRequest, UpgradeQuote

router = APIRouter(prefix="/trpc", tags=["plans"])

BodyT = TypeVar("BodyT", bound=BaseModel)


def json_body(model: Type[BodyT]):
    """Dependency decoding and validating the JSON request body as `model`."""

    async def dependency(request: Request) -> BodyT:
        try:
            data = await request.json()
        except ValueError as e:
            raise InvalidRequestError("Malformed JSON body") from e
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise InvalidRequestError(validation_message(e.errors())) from e

    return dependency


@router.get("/plans.find", response_model=Plan)
def find(
    plan_id: Optional[str] = Query(None, alias="planId"),
    ctx: ExecutionContext = Depends(public_procedure),
) -> Plan:
    return find_plan(ctx.plans, plan_id)


@router.post("/plans.create", response_model=Plan)
def create(
    ctx: ExecutionContext = Depends(admin_procedure),
    body: PlanCreateRequest = Depends(json_body(PlanCreateRequest)),
) -> Plan:
    return create_plan(ctx.plans, body.name, body.price, actor_id=ctx.identity.user_id)


@router.post("/plans.update", response_model=Plan)
def update(
    ctx: ExecutionContext = Depends(admin_procedure),
    body: PlanUpdateRequest = Depends(json_body(PlanUpdateRequest)),
) -> Plan:
    return update_plan(ctx.plans, body.id, body.name, body.price, actor_id=ctx.identity.user_id)


@router.get("/plans.checkUpgradePrice", response_model=UpgradeQuote)
def check_upgrade(
    current_plan_id: str = Query(..., alias="currentPlanId"),
    new_plan_id: str = Query(..., alias="newPlanId"),
    days_remaining: float = Query(..., alias="daysRemaining", allow_inf_nan=False),
    ctx: ExecutionContext = Depends(public_procedure),
) -> UpgradeQuote:
    return check_upgrade_price(ctx.plans, current_plan_id, new_plan_id, days_remaining)
