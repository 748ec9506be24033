"""Decimal helpers for user-entered monetary amounts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")


def parse_amount(value: Any) -> Decimal:
    """Best-effort conversion of form input to Decimal.

    Empty, malformed, NaN and infinite values all become ``0``; callers never
    see a parse error.
    """

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_fee_and_net(amount: Any, fee_percentage: Any) -> tuple[Decimal, Decimal]:
    """Return ``(fee, net)`` for a gross amount, both rounded to cents."""

    gross = parse_amount(amount)
    fee = gross * parse_amount(fee_percentage)
    return round_cents(fee), round_cents(gross - fee)
