"""Working state of the crypto-to-fiat transfer wizard.

The state is a plain mutable object owned by one wizard session. Mutators
never raise: form input is kept as entered and every derived amount is
recomputed from it on demand.
"""

from __future__ import annotations

import secrets
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from offramp.lib.money import ZERO, parse_amount, round_cents
from offramp.transfers.constants import DEFAULT_FEE_PERCENTAGE, FIRST_STEP

ACCOUNT_FIELDS: tuple[str, ...] = (
    "account_name",
    "account_number",
    "bank_name",
    "routing_number",
    "transfer_amount",
)


def _new_account_id() -> str:
    return secrets.token_hex(8)


@dataclass
class BankAccountAllocation:
    """One destination bank account and the share of the net amount routed to it."""

    id: str = field(default_factory=_new_account_id)
    account_name: str = ""
    account_number: str = ""
    bank_name: str = ""
    routing_number: str = ""
    transfer_amount: str = ""

    @property
    def amount(self) -> Decimal:
        return parse_amount(self.transfer_amount)


@dataclass
class TransferFlowState:
    step: int = FIRST_STEP
    gross_amount: str = ""
    fee_percentage: Decimal = DEFAULT_FEE_PERCENTAGE
    deposit_wallet_address: str = ""
    transaction_hash: str = ""
    hash_verified: bool = False
    bank_accounts: list[BankAccountAllocation] = field(
        default_factory=lambda: [BankAccountAllocation()]
    )

    # -- setters ---------------------------------------------------------

    def set_step(self, step: int) -> None:
        self.step = step

    def set_gross_amount(self, value: Any) -> None:
        self.gross_amount = "" if value is None else str(value)

    def set_fee_percentage(self, value: Any) -> None:
        self.fee_percentage = parse_amount(value)

    def set_deposit_wallet_address(self, value: str) -> None:
        self.deposit_wallet_address = value or ""

    def set_transaction_hash(self, value: str) -> None:
        self.transaction_hash = value or ""

    def set_hash_verified(self, verified: bool) -> None:
        self.hash_verified = bool(verified)

    # -- bank accounts ---------------------------------------------------

    def get_bank_account(self, account_id: str) -> BankAccountAllocation | None:
        return next((account for account in self.bank_accounts if account.id == account_id), None)

    def add_bank_account(self) -> BankAccountAllocation:
        account = BankAccountAllocation()
        while self.get_bank_account(account.id) is not None:
            account = BankAccountAllocation()
        self.bank_accounts.append(account)
        return account

    def remove_bank_account(self, account_id: str) -> None:
        if len(self.bank_accounts) <= 1:
            return
        self.bank_accounts = [account for account in self.bank_accounts if account.id != account_id]

    def update_bank_account(self, account_id: str, field_name: str, value: Any) -> None:
        if field_name not in ACCOUNT_FIELDS:
            return
        account = self.get_bank_account(account_id)
        if account is None:
            return
        setattr(account, field_name, "" if value is None else str(value))

    def replace_bank_accounts(self, accounts: Iterable[BankAccountAllocation]) -> None:
        replacement = list(accounts)
        self.bank_accounts = replacement or [BankAccountAllocation()]

    def reset(self) -> None:
        self.step = FIRST_STEP
        self.gross_amount = ""
        self.fee_percentage = DEFAULT_FEE_PERCENTAGE
        self.deposit_wallet_address = ""
        self.transaction_hash = ""
        self.hash_verified = False
        self.bank_accounts = [BankAccountAllocation()]

    # -- derived amounts -------------------------------------------------

    def net_amount(self) -> Decimal:
        """Gross amount less the fee; ``0`` while the amount field is unusable."""

        gross = parse_amount(self.gross_amount)
        return round_cents(gross * (Decimal("1") - self.fee_percentage))

    def total_allocated(self) -> Decimal:
        return round_cents(sum((account.amount for account in self.bank_accounts), ZERO))

    def remaining_amount(self) -> Decimal:
        return round_cents(max(ZERO, self.net_amount() - self.total_allocated()))

    def max_for_account(self, account_id: str) -> Decimal:
        """Largest amount ``account_id`` may take given the other allocations."""

        others = sum(
            (account.amount for account in self.bank_accounts if account.id != account_id),
            ZERO,
        )
        return round_cents(max(ZERO, self.net_amount() - others))

    def snapshot(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "gross_amount": self.gross_amount,
            "fee_percentage": str(self.fee_percentage),
            "deposit_wallet_address": self.deposit_wallet_address,
            "transaction_hash": self.transaction_hash,
            "hash_verified": self.hash_verified,
            "bank_accounts": [asdict(account) for account in self.bank_accounts],
            "net_amount": str(self.net_amount()),
            "total_allocated": str(self.total_allocated()),
            "remaining_amount": str(self.remaining_amount()),
        }
