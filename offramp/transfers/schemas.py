"""Pydantic schemas for the transfer API and the wizard routes."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")

AccountField = Literal[
    "account_name",
    "account_number",
    "bank_name",
    "routing_number",
    "transfer_amount",
]


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every upstream transfer API endpoint."""

    success: bool
    data: T | None = None
    message: str = ""


# -- upstream: transfers ----------------------------------------------------


class BankAccountInfo(BaseModel):
    """Destination bank account as sent to the transfer-creation endpoint."""

    account_name: str
    account_number: str
    bank_name: str
    routing_number: str
    transfer_amount: str


class TransferCreateRequest(BaseModel):
    type: Literal["crypto-to-fiat", "fiat-to-crypto"]
    amount: Decimal
    currency: str | None = None
    deposit_wallet_address: str | None = None
    crypto_tx_hash: str | None = None
    bank_accounts: list[BankAccountInfo] = Field(default_factory=list)


class StatusHistoryEntry(BaseModel):
    from_status: str | None = None
    to_status: str
    timestamp: datetime
    changed_by: str
    changed_by_name: str | None = None
    message: str | None = None
    admin_remarks: str | None = None


class TransferResponse(BaseModel):
    """Server-side transfer record."""

    id: str
    transfer_id: str
    user_id: str | None = None
    type_: str
    amount: Decimal
    fee: Decimal
    net_amount: Decimal
    currency: str
    status: str
    status_message: str | None = None
    crypto_tx_hash: str | None = None
    deposit_wallet_address: str | None = None
    admin_wallet_address: str | None = None
    confirmation_count: int | None = None
    required_confirmations: int | None = None
    bank_accounts: list[dict[str, Any]] = Field(default_factory=list)
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    expires_at: datetime | None = None


class TransferStatusResponse(BaseModel):
    status: str
    status_message: str | None = None
    confirmation_count: int = 0


class PaginatedTransfersResponse(BaseModel):
    transfers: list[TransferResponse]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class HashVerificationRequest(BaseModel):
    transaction_hash: str
    wallet_address: str
    amount: Decimal
    network: str
    admin_wallet_address: str | None = None


class HashVerificationResponse(BaseModel):
    is_valid: bool
    confirmations: int = 0
    amount: Decimal | None = None
    message: str = ""
    network: str | None = None
    block_height: int | None = None
    timestamp: datetime | None = None


# -- upstream: fee configuration ------------------------------------------


class AdminWallet(BaseModel):
    """Platform wallet that receives user deposits; carries the crypto fee."""

    id: str
    name: str
    address: str
    currency: str
    network: str
    fee_percentage: Decimal
    is_active: bool = True
    is_primary: bool = False
    notes: str | None = None


class AdminBankAccount(BaseModel):
    id: str
    name: str
    bank_name: str
    account_type: str
    fee_percentage: Decimal
    is_active: bool = True
    is_primary: bool = False


class PaymentMethods(BaseModel):
    primary_wallet: AdminWallet | None = None
    primary_bank_account: AdminBankAccount | None = None


# -- wizard route payloads -------------------------------------------------


class AmountPayload(BaseModel):
    amount: str = Field(..., max_length=32)

    @field_validator("amount")
    @classmethod
    def strip_amount(cls, value: str) -> str:
        return value.strip()


class DepositPayload(BaseModel):
    deposit_wallet_address: str = Field(default="", max_length=128)
    transaction_hash: str = Field(default="", max_length=128)

    @field_validator("deposit_wallet_address", "transaction_hash")
    @classmethod
    def strip_value(cls, value: str) -> str:
        return value.strip()


class AccountUpdatePayload(BaseModel):
    field: AccountField
    value: str = Field(default="", max_length=128)


class SubmittedTransfer(BaseModel):
    """Returned after a successful submission."""

    transfer: TransferResponse
    status_url: str
