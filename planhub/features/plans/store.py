"""
planhub/features/plans/store.py

Plan persistence over the `plans` table.

The store owns uniqueness: `id` is the primary key and `name` carries a
unique constraint, so a concurrent duplicate insert fails here with
DuplicatePlanError even when the service pre-check passed. The session is
left for the caller to roll back.
"""

from typing import Dict, Optional, Protocol, Union

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from planhub.core.database import plans
from planhub.models.plan import Plan


class DuplicatePlanError(Exception):
    """Raised when an insert or update violates id/name uniqueness."""


class PlanStore(Protocol):
    def find_by_id(self, plan_id: str) -> Optional[Plan]: ...

    def find_by_name(self, name: str) -> Optional[Plan]: ...

    def insert(self, plan: Plan) -> Plan: ...

    def update(self, plan_id: str, fields: Dict[str, Union[str, float]]) -> Plan: ...


def _row_to_plan(row) -> Plan:
    return Plan(id=row.id, name=row.name, price=float(row.price))


class SqlPlanStore:
    """PlanStore bound to one session (one procedure invocation)."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, plan_id: str) -> Optional[Plan]:
        row = self.session.execute(
            select(plans.c.id, plans.c.name, plans.c.price).where(plans.c.id == plan_id)
        ).first()
        return _row_to_plan(row) if row else None

    def find_by_name(self, name: str) -> Optional[Plan]:
        row = self.session.execute(
            select(plans.c.id, plans.c.name, plans.c.price).where(plans.c.name == name)
        ).first()
        return _row_to_plan(row) if row else None

    def insert(self, plan: Plan) -> Plan:
        try:
            self.session.execute(
                insert(plans).values(id=plan.id, name=plan.name, price=plan.price)
            )
        except IntegrityError as e:
            raise DuplicatePlanError(str(e.orig)) from e
        return self.find_by_id(plan.id)

    def update(self, plan_id: str, fields: Dict[str, Union[str, float]]) -> Plan:
        if fields:
            try:
                self.session.execute(
                    update(plans).where(plans.c.id == plan_id).values(**fields)
                )
            except IntegrityError as e:
                raise DuplicatePlanError(str(e.orig)) from e
        return self.find_by_id(plan_id)
