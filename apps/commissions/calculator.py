from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from core.exceptions import InvalidArgument

MINOR_UNIT = Decimal("1")


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def calculate_commission(gross_amount, commission_rate) -> int:
    gross = _as_decimal(gross_amount)
    rate = _as_decimal(commission_rate)
    if gross < 0:
        raise InvalidArgument("gross_amount", "Gross amount cannot be negative")
    if rate < 0 or rate > 1:
        raise InvalidArgument("commission_rate", "Commission rate must be between 0 and 1")
    # ROUND_HALF_UP rounds halves away from zero.
    return int((gross * rate).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP))


def calculate_net_amount(gross_amount, commission_rate, escrow_interest=0) -> int:
    commission = calculate_commission(gross_amount, commission_rate)
    net = _as_decimal(gross_amount) - commission - _as_decimal(escrow_interest or 0)
    net = net.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
    return max(0, int(net))
