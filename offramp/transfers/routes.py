"""HTTP routes for the transfer wizard and transfer lookups."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from offramp.config import get_settings
from offramp.lib.api_client import TransferAPIClient, TransferAPIError
from offramp.lib.rate_limiter import enforce_rate_limit
from offramp.transfers.schemas import AccountUpdatePayload, AmountPayload, DepositPayload
from offramp.transfers.service import TransferWizard
from offramp.transfers.store import WizardStore
from offramp.transfers.view_models import format_transfer_status, transfer_summary_view

router = APIRouter()


def get_api_client() -> TransferAPIClient:
    settings = get_settings()
    return TransferAPIClient(
        settings.transfer_api_base,
        token=settings.transfer_api_token,
        timeout=settings.transfer_api_timeout,
    )


def get_wizard_store(request: Request) -> WizardStore:
    store: WizardStore | None = getattr(request.app.state, "wizard_store", None)
    if store is None:
        raise RuntimeError("Wizard store not configured on application state")
    return store


async def get_wizard(
    request: Request,
    client: TransferAPIClient = Depends(get_api_client),
    store: WizardStore = Depends(get_wizard_store),
) -> TransferWizard:
    """Return the session's wizard, creating one (and loading fees) on first use."""

    wizard = store.get(request.session.get("flow_id"))
    if wizard is not None:
        return wizard

    # Each new wizard costs a fee lookup upstream.
    enforce_rate_limit(request, "transfer.flow.create")
    settings = get_settings()
    flow_id, wizard = store.create(
        lambda: TransferWizard(
            client,
            currency=settings.transfer_currency,
            network=settings.deposit_network,
        )
    )
    request.session["flow_id"] = flow_id
    await wizard.load_fee_configuration()
    return wizard


def _success(data: Any) -> JSONResponse:
    return JSONResponse({"ok": True, "data": data})


# -------- wizard ---------


@router.get("/flow")
async def get_flow(wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    return _success(wizard.view())


@router.post("/flow/amount")
async def set_amount(payload: AmountPayload, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    wizard.enter_amount(payload.amount)
    return _success(wizard.view())


@router.post("/flow/continue")
async def continue_flow(wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    wizard.continue_to_deposit()
    return _success(wizard.view())


@router.post("/flow/deposit")
async def set_deposit(payload: DepositPayload, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    wizard.enter_deposit_details(payload.deposit_wallet_address, payload.transaction_hash)
    return _success(wizard.view())


@router.post("/flow/verify")
async def verify_hash(request: Request, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    """Verify the deposit transaction hash; success moves the wizard to bank allocation."""

    enforce_rate_limit(request, "transfer.verify")
    result = await wizard.verify_hash()
    return _success({"verification": result.model_dump(mode="json"), "flow": wizard.view()})


@router.post("/flow/back")
async def go_back(wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    wizard.back()
    return _success(wizard.view())


@router.post("/flow/accounts")
async def add_account(wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    account = wizard.add_account()
    return _success({"account_id": account.id, "flow": wizard.view()})


@router.post("/flow/accounts/import")
async def import_accounts(request: Request, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    """Replace the bank-account list with rows from a CSV request body."""

    body = await request.body()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded") from exc
    accounts = wizard.import_accounts(text)
    return _success({"imported": len(accounts), "flow": wizard.view()})


@router.patch("/flow/accounts/{account_id}")
async def update_account(
    account_id: str,
    payload: AccountUpdatePayload,
    wizard: TransferWizard = Depends(get_wizard),
) -> JSONResponse:
    wizard.update_account(account_id, payload.field, payload.value)
    return _success(wizard.view())


@router.delete("/flow/accounts/{account_id}")
async def remove_account(account_id: str, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    wizard.remove_account(account_id)
    return _success(wizard.view())


@router.post("/flow/accounts/{account_id}/max")
async def use_max(account_id: str, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    maximum = wizard.use_max(account_id)
    return _success({"max_amount": str(maximum), "flow": wizard.view()})


@router.post("/flow/auto-adjust")
async def auto_adjust(wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    summary = wizard.auto_adjust()
    return _success({"allocation": summary.as_dict(), "flow": wizard.view()})


@router.post("/flow/reset")
async def reset_flow(wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    wizard.reset()
    return _success(wizard.view())


@router.post("/flow/submit")
async def submit_flow(request: Request, wizard: TransferWizard = Depends(get_wizard)) -> JSONResponse:
    """Create the transfer upstream; the wizard starts over on success."""

    enforce_rate_limit(request, "transfer.submit")
    submitted = await wizard.submit()
    data = submitted.model_dump(mode="json")
    data["summary"] = transfer_summary_view(submitted.transfer)
    return _success(data)


# -------- transfer lookups ---------


def _upstream_failure(exc: TransferAPIError) -> HTTPException:
    status = 404 if exc.status_code == 404 else 502
    return HTTPException(status_code=status, detail=exc.message)


@router.get("/transfers")
async def list_transfers(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    type_filter: str | None = Query(default=None),
    status_filter: str | None = Query(default=None),
    client: TransferAPIClient = Depends(get_api_client),
) -> JSONResponse:
    try:
        response = await client.list_transfers(
            skip=skip, limit=limit, type_filter=type_filter, status_filter=status_filter
        )
    except TransferAPIError as exc:
        raise _upstream_failure(exc) from exc
    if not response.success or response.data is None:
        raise HTTPException(status_code=502, detail=response.message or "Failed to fetch transfers")

    page = response.data
    data = page.model_dump(mode="json", exclude={"transfers"})
    data["transfers"] = [transfer_summary_view(transfer) for transfer in page.transfers]
    return _success(data)


@router.get("/transfers/{transfer_id}")
async def get_transfer(transfer_id: str, client: TransferAPIClient = Depends(get_api_client)) -> JSONResponse:
    try:
        response = await client.get_transfer(transfer_id)
    except TransferAPIError as exc:
        raise _upstream_failure(exc) from exc
    if not response.success or response.data is None:
        raise HTTPException(status_code=404, detail=response.message or "Transfer not found")

    data = response.data.model_dump(mode="json")
    data["summary"] = transfer_summary_view(response.data)
    return _success(data)


@router.get("/transfers/{transfer_id}/status")
async def get_transfer_status(
    transfer_id: str, client: TransferAPIClient = Depends(get_api_client)
) -> JSONResponse:
    try:
        response = await client.get_transfer_status(transfer_id)
    except TransferAPIError as exc:
        raise _upstream_failure(exc) from exc
    if not response.success or response.data is None:
        raise HTTPException(status_code=404, detail=response.message or "Transfer not found")

    data = response.data.model_dump(mode="json")
    data["display"] = format_transfer_status(response.data.status)
    return _success(data)
