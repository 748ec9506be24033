"""Predicates deciding whether the wizard may advance or submit.

Every check is a pure function of a ``TransferFlowState``. Bad input is never
an exception here: it shows up as ``False`` or as a message in a
``ValidationResult`` so callers can disable actions and render inline errors.
Allocated-vs-available comparisons always allow ``ALLOCATION_TOLERANCE``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Literal

from offramp.lib.money import ZERO, calculate_fee_and_net, parse_amount, round_cents
from offramp.transfers.constants import (
    ALLOCATION_TOLERANCE,
    STEP_AMOUNT,
    STEP_DEPOSIT,
    TRANSFER_TYPE_CRYPTO_TO_FIAT,
    TRANSFER_TYPES,
)
from offramp.transfers.flow import BankAccountAllocation, TransferFlowState
from offramp.transfers.schemas import TransferCreateRequest

AllocationStatus = Literal["empty", "under", "balanced", "over"]


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class AllocationSummary:
    net_amount: Decimal
    total_allocated: Decimal
    remaining_amount: Decimal
    status: AllocationStatus
    exceeding_ids: list[str] = field(default_factory=list)
    suggested_account_id: str | None = None
    suggested_amount: Decimal | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "net_amount": str(self.net_amount),
            "total_allocated": str(self.total_allocated),
            "remaining_amount": str(self.remaining_amount),
            "status": self.status,
            "exceeding_ids": list(self.exceeding_ids),
            "suggested_account_id": self.suggested_account_id,
            "suggested_amount": None if self.suggested_amount is None else str(self.suggested_amount),
        }


def _filled(value: str | None) -> bool:
    return bool(value and value.strip())


def is_step1_valid(state: TransferFlowState) -> bool:
    return parse_amount(state.gross_amount) > ZERO


def is_step2_ready(state: TransferFlowState) -> bool:
    """Whether hash verification may be attempted (not whether it succeeded)."""

    return _filled(state.deposit_wallet_address) and _filled(state.transaction_hash)


def is_account_complete(account: BankAccountAllocation) -> bool:
    return (
        _filled(account.account_name)
        and _filled(account.account_number)
        and _filled(account.bank_name)
        and _filled(account.routing_number)
        and account.amount > ZERO
    )


def are_all_bank_accounts_valid(state: TransferFlowState) -> bool:
    """Single gate for enabling final submission."""

    if not all(is_account_complete(account) for account in state.bank_accounts):
        return False
    allocated = state.total_allocated()
    return ZERO < allocated <= state.net_amount() + ALLOCATION_TOLERANCE


def is_account_exceeding(state: TransferFlowState, account_id: str) -> bool:
    account = state.get_bank_account(account_id)
    if account is None or not account.transfer_amount.strip():
        return False
    return round_cents(account.amount) > state.max_for_account(account_id) + ALLOCATION_TOLERANCE


def can_advance(state: TransferFlowState) -> bool:
    """Sequential step gate: 1 -> 2 needs an amount, 2 -> 3 needs a verified hash."""

    if state.step == STEP_AMOUNT:
        return is_step1_valid(state)
    if state.step == STEP_DEPOSIT:
        return state.hash_verified
    return False


def describe_allocation(
    state: TransferFlowState,
    last_edited_id: str | None = None,
) -> AllocationSummary:
    """Aggregate allocation status plus a corrective suggestion when over-allocated."""

    net = state.net_amount()
    allocated = state.total_allocated()
    summary = AllocationSummary(
        net_amount=net,
        total_allocated=allocated,
        remaining_amount=state.remaining_amount(),
        status="balanced",
        exceeding_ids=[
            account.id for account in state.bank_accounts if is_account_exceeding(state, account.id)
        ],
    )

    if allocated <= ZERO:
        summary.status = "empty"
    elif allocated > net + ALLOCATION_TOLERANCE:
        summary.status = "over"
        target = state.get_bank_account(last_edited_id) if last_edited_id else None
        if target is None:
            target = state.bank_accounts[-1]
        summary.suggested_account_id = target.id
        summary.suggested_amount = state.max_for_account(target.id)
    elif allocated < net - ALLOCATION_TOLERANCE:
        summary.status = "under"
    return summary


def validate_transfer_request(
    request: TransferCreateRequest,
    fee_percentage: Decimal,
) -> ValidationResult:
    """Check an assembled transfer request before it is sent upstream.

    The net amount is derived from the session's own fee percentage.
    """

    result = ValidationResult()
    errors = result.errors

    if request.amount is None or request.amount <= ZERO:
        errors.append("Amount must be greater than 0")

    if request.type not in TRANSFER_TYPES:
        errors.append("Invalid transfer type")

    if request.type != TRANSFER_TYPE_CRYPTO_TO_FIAT:
        return result

    if not _filled(request.deposit_wallet_address):
        errors.append("Deposit wallet address is required")
    if not _filled(request.crypto_tx_hash):
        errors.append("Transaction hash is required")

    if not request.bank_accounts:
        errors.append("At least one bank account is required")
        return result

    for index, account in enumerate(request.bank_accounts, start=1):
        if not _filled(account.account_name):
            errors.append(f"Bank account {index}: Account name is required")
        if not _filled(account.account_number):
            errors.append(f"Bank account {index}: Account number is required")
        if not _filled(account.bank_name):
            errors.append(f"Bank account {index}: Bank name is required")
        if not _filled(account.routing_number):
            errors.append(f"Bank account {index}: Routing number is required")
        if parse_amount(account.transfer_amount) <= ZERO:
            errors.append(f"Bank account {index}: Transfer amount must be greater than 0")

    allocated = round_cents(
        sum((parse_amount(account.transfer_amount) for account in request.bank_accounts), ZERO)
    )
    _, net = calculate_fee_and_net(request.amount, fee_percentage)
    if allocated > net + ALLOCATION_TOLERANCE:
        errors.append("Total allocated amount exceeds available amount after fees")

    return result
