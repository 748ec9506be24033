"""Tests for the per-session wizard registry."""

from __future__ import annotations

from offramp.lib.metrics import METRICS
from offramp.transfers.service import TransferWizard
from offramp.transfers.store import WizardStore
from tests.factories import FakeTransferAPI


def _factory() -> TransferWizard:
    return TransferWizard(FakeTransferAPI())


def test_idle_wizard_expires() -> None:
    now = [0.0]
    store = WizardStore(ttl_seconds=60, clock=lambda: now[0])
    flow_id, wizard = store.create(_factory)

    now[0] = 59.0
    assert store.get(flow_id) is wizard

    now[0] = 118.0
    assert store.get(flow_id) is wizard

    now[0] = 179.0
    assert store.get(flow_id) is None
    assert len(store) == 0
    assert METRICS.get("transfer.flow.evicted") == 1


def test_create_sweeps_expired_entries() -> None:
    now = [0.0]
    store = WizardStore(ttl_seconds=60, clock=lambda: now[0])
    store.create(_factory)
    store.create(_factory)

    now[0] = 61.0
    fresh_id, _ = store.create(_factory)

    assert len(store) == 1
    assert store.get(fresh_id) is not None


def test_least_recently_used_is_evicted_at_capacity() -> None:
    now = [0.0]
    store = WizardStore(ttl_seconds=600, max_sessions=2, clock=lambda: now[0])
    first_id, first = store.create(_factory)
    now[0] = 1.0
    second_id, _ = store.create(_factory)
    now[0] = 2.0
    assert store.get(first_id) is first

    now[0] = 3.0
    third_id, _ = store.create(_factory)

    assert len(store) == 2
    assert store.get(second_id) is None
    assert store.get(first_id) is first
    assert store.get(third_id) is not None


def test_missing_flow_id() -> None:
    store = WizardStore()

    assert store.get(None) is None
    assert store.get("unknown") is None
