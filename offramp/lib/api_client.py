"""Async client for the upstream transfer REST API."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from offramp.lib.logger import get_logger
from offramp.transfers.schemas import (
    ApiResponse,
    HashVerificationRequest,
    HashVerificationResponse,
    PaginatedTransfersResponse,
    PaymentMethods,
    TransferCreateRequest,
    TransferResponse,
    TransferStatusResponse,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = get_logger(__name__)

TRANSFERS_PATH = "/api/v1/transfers/"
VERIFY_HASH_PATH = "/api/v1/transfers/verify-hash"
PAYMENT_METHODS_PATH = "/api/v1/fees/payment-methods"


class TransferAPIError(RuntimeError):
    """Raised when the transfer API cannot be reached or returns an unusable response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransferAPIClient:
    """Thin wrapper over the transfer, verification and fee endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._transport = transport

    async def create_transfer(self, payload: TransferCreateRequest) -> ApiResponse[TransferResponse]:
        return await self._request(
            "POST",
            TRANSFERS_PATH,
            ApiResponse[TransferResponse],
            action="create_transfer",
            json=payload.model_dump(mode="json", exclude_none=True),
        )

    async def list_transfers(
        self,
        *,
        skip: int = 0,
        limit: int = 20,
        type_filter: str | None = None,
        status_filter: str | None = None,
    ) -> ApiResponse[PaginatedTransfersResponse]:
        params: dict[str, Any] = {"skip": skip, "limit": limit}
        if type_filter:
            params["type_filter"] = type_filter
        if status_filter:
            params["status_filter"] = status_filter
        return await self._request(
            "GET",
            TRANSFERS_PATH,
            ApiResponse[PaginatedTransfersResponse],
            action="list_transfers",
            params=params,
        )

    async def get_transfer(self, transfer_id: str) -> ApiResponse[TransferResponse]:
        return await self._request(
            "GET",
            f"{TRANSFERS_PATH}{transfer_id}",
            ApiResponse[TransferResponse],
            action="get_transfer",
        )

    async def get_transfer_status(self, transfer_id: str) -> ApiResponse[TransferStatusResponse]:
        return await self._request(
            "GET",
            f"{TRANSFERS_PATH}{transfer_id}/status",
            ApiResponse[TransferStatusResponse],
            action="get_transfer_status",
        )

    async def verify_transaction_hash(
        self, payload: HashVerificationRequest
    ) -> ApiResponse[HashVerificationResponse]:
        return await self._request(
            "POST",
            VERIFY_HASH_PATH,
            ApiResponse[HashVerificationResponse],
            action="verify_hash",
            json=payload.model_dump(mode="json", exclude_none=True),
        )

    async def get_payment_methods(self) -> ApiResponse[PaymentMethods]:
        return await self._request(
            "GET",
            PAYMENT_METHODS_PATH,
            ApiResponse[PaymentMethods],
            action="payment_methods",
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        model: type[ModelT],
        *,
        action: str,
        **kwargs: Any,
    ) -> ModelT:
        logger.info(
            "transfer_api.request",
            extra={"action": action, "method": method, "path": path, "base_url": self.base_url},
        )
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = _error_detail(exc.response)
            logger.warning(
                "transfer_api.request.http_error",
                extra={"action": action, "status": status, "detail": detail},
            )
            raise TransferAPIError(detail, status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "transfer_api.request.network_error",
                extra={"action": action, "base_url": self.base_url, "error": str(exc)},
            )
            raise TransferAPIError("Transfer service unreachable") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise TransferAPIError("Invalid JSON returned from transfer service") from exc

        try:
            parsed = model.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "transfer_api.request.bad_shape",
                extra={"action": action, "errors": exc.error_count()},
            )
            raise TransferAPIError("Unexpected response from transfer service") from exc

        logger.info("transfer_api.request.summary", extra={"action": action, "status": response.status_code})
        return parsed


def _error_detail(response: httpx.Response) -> str:
    """Pull the upstream ``detail`` (or ``message``) out of an error response."""

    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] if text else f"Transfer service error ({response.status_code})"

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail:
            return detail[:200]
        if detail:
            return str(detail)[:200]
    return f"Transfer service error ({response.status_code})"
