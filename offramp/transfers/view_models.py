"""Presentation helpers for transfer amounts and statuses."""

from __future__ import annotations

from typing import Any

from offramp.lib.money import parse_amount, round_cents
from offramp.transfers.schemas import TransferResponse

_STATUS_STYLES: dict[str, tuple[str, str, str]] = {
    "pending": ("Pending", "text-yellow-700", "bg-yellow-100"),
    "processing": ("Processing", "text-blue-700", "bg-blue-100"),
    "completed": ("Completed", "text-green-700", "bg-green-100"),
    "failed": ("Failed", "text-red-700", "bg-red-100"),
    "cancelled": ("Cancelled", "text-gray-700", "bg-gray-100"),
}

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_transfer_status(status: str) -> dict[str, str]:
    text, color, bg_color = _STATUS_STYLES.get(status, (status, "text-gray-700", "bg-gray-100"))
    return {"text": text, "color": color, "bg_color": bg_color}


def format_amount(amount: Any, currency: str = "USD") -> str:
    """Render ``amount`` with two decimals; USDT is displayed as USD."""

    code = "USD" if currency.upper() == "USDT" else currency.upper()
    value = round_cents(parse_amount(amount))
    sign = "-" if value < 0 else ""
    symbol = _CURRENCY_SYMBOLS.get(code)
    digits = f"{abs(value):,.2f}"
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{code} {digits}"


def transfer_summary_view(transfer: TransferResponse) -> dict[str, Any]:
    """Compact row data for transfer lists and the status page."""

    return {
        "id": transfer.id,
        "transfer_id": transfer.transfer_id,
        "type": transfer.type_,
        "amount_display": format_amount(transfer.amount, transfer.currency),
        "fee_display": format_amount(transfer.fee, transfer.currency),
        "net_display": format_amount(transfer.net_amount, transfer.currency),
        "status": format_transfer_status(transfer.status),
        "status_message": transfer.status_message,
        "confirmations": (
            f"{transfer.confirmation_count or 0}/{transfer.required_confirmations}"
            if transfer.required_confirmations
            else None
        ),
        "created_at": transfer.created_at.isoformat() if transfer.created_at else None,
    }
