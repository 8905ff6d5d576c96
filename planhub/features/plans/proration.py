"""
Upgrade proration.

The cost of moving to a new plan mid-cycle is the new plan's price minus
what has already been consumed of the current plan. A negative amount is a
credit and is returned as-is; days_remaining is not range-checked.
"""

BILLING_CYCLE_DAYS = 30


def calculate_upgrade_amount(current_price: float, new_price: float, days_remaining: float) -> float:
    daily_cost_of_current = current_price / BILLING_CYCLE_DAYS
    consumed_so_far = daily_cost_of_current * (BILLING_CYCLE_DAYS - days_remaining)
    return new_price - consumed_so_far


def format_amount(amount: float) -> str:
    """Render an amount to the cent without trailing zeros (45.0 -> "45")."""
    text = f"{amount:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def upgrade_message(amount: float) -> str:
    return f"You will need to pay {format_amount(amount)} to upgrade"
