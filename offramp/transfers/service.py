"""Wizard controller driving the crypto-to-fiat transfer flow."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

from fastapi import HTTPException

from offramp.lib.api_client import TransferAPIClient, TransferAPIError
from offramp.lib.logger import get_logger
from offramp.lib.metrics import METRICS
from offramp.lib.money import ZERO, parse_amount
from offramp.transfers import csv_import, validation
from offramp.transfers.constants import (
    FIRST_STEP,
    MAINTENANCE_MESSAGE,
    STEP_ALLOCATION,
    STEP_AMOUNT,
    STEP_DEPOSIT,
    TRANSFER_TYPE_CRYPTO_TO_FIAT,
)
from offramp.transfers.flow import BankAccountAllocation, TransferFlowState
from offramp.transfers.schemas import (
    BankAccountInfo,
    HashVerificationRequest,
    HashVerificationResponse,
    SubmittedTransfer,
    TransferCreateRequest,
)

logger = get_logger(__name__)


class TransferWizard:
    """Owns one session's ``TransferFlowState`` and the upstream calls around it.

    Hash verification and submission share a single in-flight flag so at most
    one of them is outstanding; nothing is retried automatically and a failed
    call leaves the state as it was.
    """

    def __init__(
        self,
        client: TransferAPIClient,
        *,
        currency: str = "USDT",
        network: str = "TRC20",
        state: TransferFlowState | None = None,
    ) -> None:
        self.client = client
        self.currency = currency
        self.network = network
        self.state = state or TransferFlowState()
        self.admin_wallet_address: str | None = None
        self.fee_status: str = "pending"
        self.notice: str | None = None
        self.last_edited_id: str | None = None
        self.in_flight = False

    # -- fee configuration ------------------------------------------------

    async def load_fee_configuration(self) -> None:
        """Fetch the primary deposit wallet and adopt its fee percentage."""

        try:
            response = await self.client.get_payment_methods()
        except TransferAPIError as exc:
            self._mark_degraded(str(exc))
            return

        wallet = response.data.primary_wallet if response.success and response.data else None
        if wallet is None or not wallet.is_active or not ZERO <= wallet.fee_percentage < 1:
            self._mark_degraded(response.message or "No active deposit wallet")
            return

        self.state.set_fee_percentage(wallet.fee_percentage)
        self.admin_wallet_address = wallet.address
        self.network = wallet.network or self.network
        self.fee_status = "ready"
        self.notice = None
        logger.info(
            "transfer.fee.loaded",
            extra={"fee_percentage": str(wallet.fee_percentage), "network": self.network},
        )

    def _mark_degraded(self, reason: str) -> None:
        METRICS.increment("transfer.fee.degraded")
        logger.warning("transfer.fee.degraded", extra={"reason": reason})
        self.fee_status = "degraded"
        self.notice = MAINTENANCE_MESSAGE

    # -- step 1 -----------------------------------------------------------

    def enter_amount(self, value: str) -> None:
        self.state.set_gross_amount(value)

    def continue_to_deposit(self) -> None:
        self._require_step(STEP_AMOUNT)
        if self.fee_status == "degraded":
            raise HTTPException(status_code=503, detail=self.notice or MAINTENANCE_MESSAGE)
        if not validation.can_advance(self.state):
            raise HTTPException(status_code=422, detail="Amount must be greater than 0")
        self.state.set_step(STEP_DEPOSIT)

    # -- step 2 -----------------------------------------------------------

    def enter_deposit_details(self, deposit_wallet_address: str, transaction_hash: str) -> None:
        state = self.state
        changed = (
            deposit_wallet_address != state.deposit_wallet_address
            or transaction_hash != state.transaction_hash
        )
        state.set_deposit_wallet_address(deposit_wallet_address)
        state.set_transaction_hash(transaction_hash)
        if changed:
            state.set_hash_verified(False)

    async def verify_hash(self) -> HashVerificationResponse:
        self._require_step(STEP_DEPOSIT)
        state = self.state
        if not validation.is_step2_ready(state):
            raise HTTPException(
                status_code=422,
                detail="Deposit wallet address and transaction hash are required",
            )

        payload = HashVerificationRequest(
            transaction_hash=state.transaction_hash.strip(),
            wallet_address=state.deposit_wallet_address.strip(),
            amount=parse_amount(state.gross_amount),
            network=self.network,
            admin_wallet_address=self.admin_wallet_address,
        )

        METRICS.increment("transfer.verify.attempt")
        logger.info(
            "transfer.verify.attempt",
            extra={"transaction_hash": payload.transaction_hash, "network": payload.network},
        )
        async with self._exclusive("verify"):
            try:
                response = await self.client.verify_transaction_hash(payload)
            except TransferAPIError as exc:
                METRICS.increment("transfer.verify.error")
                raise HTTPException(status_code=502, detail=exc.message) from exc

        if not self._matches_verified(payload):
            METRICS.increment("transfer.verify.stale")
            logger.info(
                "transfer.verify.stale",
                extra={"transaction_hash": payload.transaction_hash, "step": state.step},
            )
            raise HTTPException(
                status_code=409,
                detail="Deposit details changed during verification. Verify again.",
            )

        result = response.data
        if not response.success or result is None or not result.is_valid:
            METRICS.increment("transfer.verify.rejected")
            message = (result.message if result and result.message else None) or response.message
            logger.info(
                "transfer.verify.rejected",
                extra={"transaction_hash": payload.transaction_hash, "reason": message},
            )
            raise HTTPException(status_code=400, detail=message or "Transaction could not be verified")

        state.set_hash_verified(True)
        state.set_step(STEP_ALLOCATION)
        METRICS.increment("transfer.verify.success")
        logger.info(
            "transfer.verify.success",
            extra={"transaction_hash": payload.transaction_hash, "confirmations": result.confirmations},
        )
        return result

    def back(self) -> None:
        self.state.set_step(max(FIRST_STEP, self.state.step - 1))

    # -- step 3 -----------------------------------------------------------

    def add_account(self) -> BankAccountAllocation:
        account = self.state.add_bank_account()
        self.last_edited_id = account.id
        return account

    def remove_account(self, account_id: str) -> None:
        self._require_account(account_id)
        self.state.remove_bank_account(account_id)
        if self.last_edited_id == account_id:
            self.last_edited_id = None

    def update_account(self, account_id: str, field_name: str, value: str) -> None:
        self._require_account(account_id)
        self.state.update_bank_account(account_id, field_name, value)
        if field_name == "transfer_amount":
            self.last_edited_id = account_id

    def use_max(self, account_id: str) -> Decimal:
        self._require_account(account_id)
        maximum = self.state.max_for_account(account_id)
        self.state.update_bank_account(account_id, "transfer_amount", f"{maximum:.2f}")
        self.last_edited_id = account_id
        return maximum

    def auto_adjust(self) -> validation.AllocationSummary:
        """Cap the suggested account at its maximum when the allocation overshoots."""

        summary = validation.describe_allocation(self.state, self.last_edited_id)
        if summary.status == "over" and summary.suggested_account_id:
            self.use_max(summary.suggested_account_id)
            summary = validation.describe_allocation(self.state, self.last_edited_id)
        return summary

    def import_accounts(self, csv_text: str) -> list[BankAccountAllocation]:
        try:
            accounts = csv_import.parse_bank_accounts(csv_text)
        except csv_import.CsvImportError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        self.state.replace_bank_accounts(accounts)
        self.last_edited_id = None
        logger.info("transfer.accounts.imported", extra={"count": len(accounts)})
        return self.state.bank_accounts

    def build_request(self) -> TransferCreateRequest:
        state = self.state
        return TransferCreateRequest(
            type=TRANSFER_TYPE_CRYPTO_TO_FIAT,
            amount=parse_amount(state.gross_amount),
            currency=self.currency,
            deposit_wallet_address=state.deposit_wallet_address.strip(),
            crypto_tx_hash=state.transaction_hash.strip(),
            bank_accounts=[
                BankAccountInfo(
                    account_name=account.account_name.strip(),
                    account_number=account.account_number.strip(),
                    bank_name=account.bank_name.strip(),
                    routing_number=account.routing_number.strip(),
                    transfer_amount=account.transfer_amount.strip(),
                )
                for account in state.bank_accounts
            ],
        )

    async def submit(self) -> SubmittedTransfer:
        self._require_step(STEP_ALLOCATION)
        state = self.state
        if not state.hash_verified:
            raise HTTPException(status_code=422, detail="Transaction hash has not been verified")
        if not validation.are_all_bank_accounts_valid(state):
            raise HTTPException(
                status_code=422,
                detail={
                    "message": "Bank account details are incomplete or exceed the available amount",
                    "allocation": validation.describe_allocation(state, self.last_edited_id).as_dict(),
                },
            )

        request = self.build_request()
        checked = validation.validate_transfer_request(request, state.fee_percentage)
        if not checked.is_valid:
            raise HTTPException(status_code=422, detail={"message": "Invalid transfer", "errors": checked.errors})

        METRICS.increment("transfer.submit.attempt")
        logger.info(
            "transfer.submit.attempt",
            extra={"amount": str(request.amount), "accounts": len(request.bank_accounts)},
        )
        async with self._exclusive("submit"):
            try:
                response = await self.client.create_transfer(request)
            except TransferAPIError as exc:
                METRICS.increment("transfer.submit.error")
                raise HTTPException(status_code=502, detail=exc.message) from exc

        if not response.success or response.data is None:
            METRICS.increment("transfer.submit.rejected")
            logger.info("transfer.submit.rejected", extra={"reason": response.message})
            raise HTTPException(status_code=400, detail=response.message or "Failed to create transfer")

        transfer = response.data
        METRICS.increment("transfer.submit.success")
        logger.info("transfer.submit.success", extra={"transfer_id": transfer.id})
        self.reset()
        return SubmittedTransfer(transfer=transfer, status_url=f"/transfer/transfers/{transfer.id}")

    def reset(self) -> None:
        """Start over, keeping the fee configuration loaded for this session."""

        fee = self.state.fee_percentage if self.fee_status == "ready" else None
        self.state.reset()
        if fee is not None:
            self.state.set_fee_percentage(fee)
        self.last_edited_id = None

    # -- views ------------------------------------------------------------

    def view(self) -> dict[str, Any]:
        state = self.state
        data = state.snapshot()
        data.update(
            {
                "currency": self.currency,
                "network": self.network,
                "admin_wallet_address": self.admin_wallet_address,
                "fee_status": self.fee_status,
                "notice": self.notice,
                "in_flight": self.in_flight,
                "can_continue": validation.can_advance(state) and self.fee_status != "degraded",
                "can_verify": state.step == STEP_DEPOSIT and validation.is_step2_ready(state),
                "can_submit": (
                    state.step == STEP_ALLOCATION
                    and state.hash_verified
                    and validation.are_all_bank_accounts_valid(state)
                ),
                "allocation": validation.describe_allocation(state, self.last_edited_id).as_dict(),
                "account_errors": {
                    account.id: {
                        "complete": validation.is_account_complete(account),
                        "exceeding": validation.is_account_exceeding(state, account.id),
                        "max_amount": str(state.max_for_account(account.id)),
                    }
                    for account in state.bank_accounts
                },
            }
        )
        return data

    # -- helpers ----------------------------------------------------------

    def _require_step(self, step: int) -> None:
        if self.state.step != step:
            raise HTTPException(status_code=409, detail=f"Wizard is on step {self.state.step}, not {step}")

    def _matches_verified(self, payload: HashVerificationRequest) -> bool:
        """Whether the state still describes the deposit that was sent for verification."""

        state = self.state
        return (
            state.step == STEP_DEPOSIT
            and state.transaction_hash.strip() == payload.transaction_hash
            and state.deposit_wallet_address.strip() == payload.wallet_address
            and parse_amount(state.gross_amount) == payload.amount
        )

    def _require_account(self, account_id: str) -> None:
        if self.state.get_bank_account(account_id) is None:
            raise HTTPException(status_code=404, detail="Bank account not found")

    @asynccontextmanager
    async def _exclusive(self, action: str) -> AsyncIterator[None]:
        if self.in_flight:
            logger.info("transfer.request.busy", extra={"action": action})
            raise HTTPException(status_code=409, detail="Another request is already in progress")
        self.in_flight = True
        try:
            yield
        finally:
            self.in_flight = False
