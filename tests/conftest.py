"""Pytest fixtures for the transfer wizard service."""

from collections.abc import AsyncIterator, Iterator
import os

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("SECRET_KEY_SALT", "test-secret-key")
os.environ.setdefault("OFFRAMP_ENV", "dev")
os.environ.setdefault("TRANSFER_API_BASE", "http://upstream.test")

from offramp.main import app as fastapi_app
from tests.factories import FakeTransferAPI


@pytest.fixture(scope="session")
def app() -> FastAPI:
    """Return the FastAPI application instance."""
    return fastapi_app


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an `httpx.AsyncClient` bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest.fixture(autouse=True)
def reset_runtime(app: FastAPI) -> Iterator[None]:
    """Reset metrics, rate limiter, wizard sessions and rate limits across tests."""

    original_limit = app.state.rate_limit_per_minute
    app.state.metrics.reset()
    app.state.rate_limiter.reset()
    app.state.wizard_store.reset()
    yield
    app.state.metrics.reset()
    app.state.rate_limiter.reset()
    app.state.wizard_store.reset()
    app.state.rate_limit_per_minute = original_limit


@pytest.fixture()
def fake_api() -> FakeTransferAPI:
    return FakeTransferAPI()


@pytest.fixture()
def patched_api(monkeypatch: pytest.MonkeyPatch, fake_api: FakeTransferAPI) -> FakeTransferAPI:
    """Route the app's upstream calls through ``fake_api``."""

    async def get_payment_methods(self):
        return await fake_api.get_payment_methods()

    async def verify_transaction_hash(self, payload):
        return await fake_api.verify_transaction_hash(payload)

    async def create_transfer(self, payload):
        return await fake_api.create_transfer(payload)

    target = "offramp.lib.api_client.TransferAPIClient"
    monkeypatch.setattr(f"{target}.get_payment_methods", get_payment_methods)
    monkeypatch.setattr(f"{target}.verify_transaction_hash", verify_transaction_hash)
    monkeypatch.setattr(f"{target}.create_transfer", create_transfer)
    return fake_api
