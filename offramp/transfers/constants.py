"""Shared constants for the transfer wizard."""

from __future__ import annotations

from decimal import Decimal

STEP_AMOUNT: int = 1
STEP_DEPOSIT: int = 2
STEP_ALLOCATION: int = 3
FIRST_STEP: int = STEP_AMOUNT

DEFAULT_FEE_PERCENTAGE: Decimal = Decimal("0.01")
ALLOCATION_TOLERANCE: Decimal = Decimal("0.01")

TRANSFER_TYPE_CRYPTO_TO_FIAT: str = "crypto-to-fiat"
TRANSFER_TYPES: tuple[str, ...] = ("crypto-to-fiat", "fiat-to-crypto")

CSV_COLUMNS: dict[str, str] = {
    "account holder name": "account_name",
    "account number": "account_number",
    "bank name": "bank_name",
    "routing number": "routing_number",
    "transfer amount": "transfer_amount",
}

MAINTENANCE_MESSAGE: str = (
    "Transfers are temporarily unavailable while fee configuration is being updated. "
    "Please try again shortly."
)
