# printdesk/modules/pricing/commission.py
from decimal import Decimal, ROUND_HALF_UP

from printdesk.core.exceptions import InputValidationError
from printdesk.db.schemas.pricing_schemas import CommissionSplit


def split_commission(delivery_fee: float, agent_commission_percentage: int) -> CommissionSplit:
    """Splits a delivery fee between agent and company.

    The commission is rounded once (half up, to a whole currency unit) and the
    company keeps the exact remainder, so the two parts always sum to the fee.
    """
    if delivery_fee is None or delivery_fee < 0:
        raise InputValidationError(f"Delivery fee must be >= 0, got {delivery_fee}.")
    if not 0 <= agent_commission_percentage <= 100:
        raise InputValidationError(
            f"Agent commission percentage must be between 0 and 100, got {agent_commission_percentage}."
        )

    raw = Decimal(str(delivery_fee)) * Decimal(agent_commission_percentage) / Decimal(100)
    commission = int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    # Sub-unit fees can round up past the fee itself; revenue never goes negative
    if commission > delivery_fee:
        commission = delivery_fee
    return CommissionSplit(
        delivery_fee=delivery_fee,
        agent_commission=commission,
        company_revenue=delivery_fee - commission,
        agent_commission_percentage=agent_commission_percentage,
    )
