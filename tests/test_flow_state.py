"""Tests for the transfer wizard's working state."""

from __future__ import annotations

import random
from decimal import Decimal

import pytest

from offramp.lib.money import calculate_fee_and_net, parse_amount, round_cents
from offramp.transfers.flow import BankAccountAllocation, TransferFlowState


def _fill(state: TransferFlowState, account: BankAccountAllocation, amount: str) -> None:
    state.update_bank_account(account.id, "account_name", "Jane Doe")
    state.update_bank_account(account.id, "account_number", "000123456789")
    state.update_bank_account(account.id, "bank_name", "First Bank")
    state.update_bank_account(account.id, "routing_number", "021000021")
    state.update_bank_account(account.id, "transfer_amount", amount)


def test_initial_state_has_one_blank_account() -> None:
    state = TransferFlowState()

    assert state.step == 1
    assert state.gross_amount == ""
    assert state.fee_percentage == Decimal("0.01")
    assert state.hash_verified is False
    assert len(state.bank_accounts) == 1
    account = state.bank_accounts[0]
    assert account.id
    assert (account.account_name, account.transfer_amount) == ("", "")


def test_add_bank_account_appends_with_fresh_id() -> None:
    state = TransferFlowState()
    first = state.bank_accounts[0]

    added = [state.add_bank_account() for _ in range(5)]

    assert state.bank_accounts[0] is first
    assert state.bank_accounts[-1] is added[-1]
    ids = [account.id for account in state.bank_accounts]
    assert len(set(ids)) == len(ids)


def test_account_list_never_empty_under_random_operations() -> None:
    rng = random.Random(1234)
    state = TransferFlowState()

    for _ in range(500):
        if rng.random() < 0.4:
            state.add_bank_account()
        else:
            target = rng.choice(state.bank_accounts).id
            state.remove_bank_account(target)
        assert len(state.bank_accounts) >= 1


def test_remove_last_account_is_noop() -> None:
    state = TransferFlowState()
    only = state.bank_accounts[0]

    state.remove_bank_account(only.id)

    assert state.bank_accounts == [only]
    assert state.bank_accounts[0].id == only.id


def test_remove_account_keeps_order_of_others() -> None:
    state = TransferFlowState()
    first = state.bank_accounts[0]
    second = state.add_bank_account()
    third = state.add_bank_account()

    state.remove_bank_account(second.id)

    assert [account.id for account in state.bank_accounts] == [first.id, third.id]


def test_update_bank_account_ignores_unknown_id_and_field() -> None:
    state = TransferFlowState()
    account = state.bank_accounts[0]

    state.update_bank_account("missing", "bank_name", "Nowhere")
    state.update_bank_account(account.id, "id", "hijacked")
    state.update_bank_account(account.id, "bank_name", "Chase")

    assert account.id != "hijacked"
    assert account.bank_name == "Chase"


def test_reset_is_idempotent() -> None:
    state = TransferFlowState()
    state.set_step(3)
    state.set_gross_amount("250")
    state.set_fee_percentage("0.025")
    state.set_deposit_wallet_address("TWallet")
    state.set_transaction_hash("0xabc")
    state.set_hash_verified(True)
    state.add_bank_account()

    state.reset()
    once = state.snapshot()
    state.reset()
    twice = state.snapshot()

    for snapshot in (once, twice):
        for account in snapshot["bank_accounts"]:
            account.pop("id")
    assert once == twice
    assert twice["step"] == 1
    assert twice["gross_amount"] == ""
    assert twice["deposit_wallet_address"] == ""
    assert twice["transaction_hash"] == ""
    assert twice["fee_percentage"] == "0.01"
    assert twice["hash_verified"] is False
    assert len(twice["bank_accounts"]) == 1


def test_replace_bank_accounts_with_empty_list_keeps_one_blank() -> None:
    state = TransferFlowState()

    state.replace_bank_accounts([])

    assert len(state.bank_accounts) == 1
    assert state.bank_accounts[0].transfer_amount == ""


def test_net_amount_uses_session_fee() -> None:
    state = TransferFlowState(gross_amount="1000")
    assert state.net_amount() == Decimal("990.00")

    state.set_fee_percentage(0.025)
    assert state.net_amount() == Decimal("975.00")

    state.set_gross_amount("")
    assert state.net_amount() == Decimal("0.00")


def test_total_allocated_treats_garbage_as_zero() -> None:
    state = TransferFlowState(gross_amount="100")
    accounts = [state.bank_accounts[0], state.add_bank_account(), state.add_bank_account()]
    state.update_bank_account(accounts[0].id, "transfer_amount", "10.10")
    state.update_bank_account(accounts[1].id, "transfer_amount", "abc")
    state.update_bank_account(accounts[2].id, "transfer_amount", "0.2")

    assert state.total_allocated() == Decimal("10.30")


def test_float_drift_does_not_leak_into_totals() -> None:
    state = TransferFlowState(gross_amount="1")
    state.set_fee_percentage(0)
    state.update_bank_account(state.bank_accounts[0].id, "transfer_amount", "0.1")
    second = state.add_bank_account()
    state.update_bank_account(second.id, "transfer_amount", "0.2")

    assert state.total_allocated() == Decimal("0.30")
    assert state.remaining_amount() == Decimal("0.70")


@pytest.mark.parametrize(
    ("gross", "allocations"),
    [
        ("", []),
        ("", ["5"]),
        ("100", ["60", "50"]),
        ("abc", ["1"]),
        ("0.01", ["0.02"]),
    ],
)
def test_remaining_amount_is_never_negative(gross: str, allocations: list[str]) -> None:
    state = TransferFlowState(gross_amount=gross)
    for index, amount in enumerate(allocations):
        account = state.bank_accounts[0] if index == 0 else state.add_bank_account()
        state.update_bank_account(account.id, "transfer_amount", amount)

    assert state.remaining_amount() >= 0


def test_single_account_flow_leaves_nothing_remaining() -> None:
    state = TransferFlowState(gross_amount="1000")
    _fill(state, state.bank_accounts[0], "990")

    assert state.total_allocated() == Decimal("990.00")
    assert state.remaining_amount() == Decimal("0.00")


def test_max_for_account_accounts_for_other_allocations() -> None:
    state = TransferFlowState(gross_amount="100")
    first = state.bank_accounts[0]
    second = state.add_bank_account()
    state.update_bank_account(first.id, "transfer_amount", "60")
    state.update_bank_account(second.id, "transfer_amount", "50")

    assert state.net_amount() == Decimal("99.00")
    assert state.max_for_account(second.id) == Decimal("39.00")
    assert state.max_for_account(first.id) == Decimal("49.00")

    state.update_bank_account(second.id, "transfer_amount", str(state.max_for_account(second.id)))
    assert state.total_allocated() == Decimal("99.00")


def test_max_for_account_clamps_at_zero() -> None:
    state = TransferFlowState(gross_amount="10")
    first = state.bank_accounts[0]
    second = state.add_bank_account()
    state.update_bank_account(first.id, "transfer_amount", "50")

    assert state.max_for_account(second.id) == Decimal("0.00")


def test_snapshot_serializes_amounts_as_strings() -> None:
    state = TransferFlowState(gross_amount="100")
    state.update_bank_account(state.bank_accounts[0].id, "transfer_amount", "40")

    snapshot = state.snapshot()

    assert snapshot["net_amount"] == "99.00"
    assert snapshot["total_allocated"] == "40.00"
    assert snapshot["remaining_amount"] == "59.00"
    assert snapshot["bank_accounts"][0]["transfer_amount"] == "40"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12.5", Decimal("12.5")),
        (" 1,000.25 ", Decimal("1000.25")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        ("NaN", Decimal("0")),
        ("Infinity", Decimal("0")),
        ("12abc", Decimal("0")),
        (7, Decimal("7")),
    ],
)
def test_parse_amount_never_raises(raw, expected: Decimal) -> None:
    assert parse_amount(raw) == expected


def test_round_cents_rounds_half_up() -> None:
    assert round_cents(Decimal("1.005")) == Decimal("1.01")
    assert round_cents(Decimal("2.344")) == Decimal("2.34")


def test_calculate_fee_and_net() -> None:
    assert calculate_fee_and_net("1234.56", Decimal("0.01")) == (Decimal("12.35"), Decimal("1222.21"))


def test_grouped_amount_is_read_whole_and_trailing_text_is_not() -> None:
    state = TransferFlowState(gross_amount="1,000")

    assert parse_amount("1,000") == Decimal("1000")
    assert state.net_amount() == Decimal("990.00")

    state.set_gross_amount("12abc")
    assert state.net_amount() == Decimal("0.00")
