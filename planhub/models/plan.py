"""
planhub/models/plan.py

Plan records, procedure inputs and the upgrade quote.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Plan(BaseModel):
    """
    A subscription plan as stored.

    - id: generated on create, immutable afterwards
    - name: unique across all plans (case-sensitive)
    - price: price of one 30-day billing cycle
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: float


class PlanCreateRequest(BaseModel):
    name: str
    price: float = Field(ge=0, allow_inf_nan=False)


class PlanUpdateRequest(BaseModel):
    """Partial update: falsy name/price leave the stored value unchanged."""
    id: str
    name: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class UpgradeQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: float
    message: str
