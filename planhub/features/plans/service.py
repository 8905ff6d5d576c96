"""
planhub/features/plans/service.py

Plan procedure bodies.

Handles:
- find: lookup by id (missing id and unknown id are both NotFound)
- create: name-unique insert with a generated id
- update: partial update of name/price (falsy values are ignored)
- check_upgrade_price: proration quote between two plans

Authorization is settled before these run; nothing here re-checks it.
"""

from typing import Dict, Optional, Union
from uuid import uuid4

from planhub.core.errors import InvalidRequestError, NotFoundError
from planhub.core.logging import log_event
from planhub.features.plans.proration import calculate_upgrade_amount, upgrade_message
from planhub.features.plans.store import DuplicatePlanError, PlanStore
from planhub.models.plan import Plan, UpgradeQuote


DUPLICATE_NAME_MESSAGE = "Plan with the same name already exists"


def find_plan(store: PlanStore, plan_id: Optional[str]) -> Plan:
    if not plan_id:
        raise NotFoundError()

    plan = store.find_by_id(plan_id)
    if plan is None:
        raise NotFoundError()
    return plan


def create_plan(store: PlanStore, name: str, price: float, *, actor_id: Optional[str] = None) -> Plan:
    """
    Create a plan with a freshly generated id.

    Raises:
        InvalidRequestError: a plan with exactly this name already exists
    """
    if store.find_by_name(name) is not None:
        raise InvalidRequestError(DUPLICATE_NAME_MESSAGE)

    try:
        created = store.insert(Plan(id=str(uuid4()), name=name, price=price))
    except DuplicatePlanError as e:
        # Lost a race with a concurrent create of the same name
        raise InvalidRequestError(DUPLICATE_NAME_MESSAGE) from e

    log_event("info", "plan.created", user_id=actor_id, plan_id=created.id)
    return created


def update_plan(
    store: PlanStore,
    plan_id: str,
    name: Optional[str] = None,
    price: Optional[float] = None,
    *,
    actor_id: Optional[str] = None,
) -> Plan:
    """
    Apply the supplied fields to an existing plan.

    Only truthy values are applied, so a caller cannot clear the name or set
    the price to 0 through this operation.

    Raises:
        InvalidRequestError: no plan with plan_id exists, or the new name is taken
    """
    if store.find_by_id(plan_id) is None:
        raise InvalidRequestError("No plan to update")

    fields: Dict[str, Union[str, float]] = {}
    if name:
        fields["name"] = name
    if price:
        fields["price"] = price

    try:
        updated = store.update(plan_id, fields)
    except DuplicatePlanError as e:
        raise InvalidRequestError(DUPLICATE_NAME_MESSAGE) from e

    log_event("info", "plan.updated", user_id=actor_id, plan_id=plan_id,
              changed=sorted(fields))
    return updated


def check_upgrade_price(store: PlanStore, current_plan_id: str, new_plan_id: str, days_remaining: float) -> UpgradeQuote:
    current_plan = store.find_by_id(current_plan_id)
    new_plan = store.find_by_id(new_plan_id)

    if current_plan is None or new_plan is None:
        raise InvalidRequestError("Invalid params")

    amount = calculate_upgrade_amount(current_plan.price, new_plan.price, days_remaining)
    return UpgradeQuote(amount=amount, message=upgrade_message(amount))
