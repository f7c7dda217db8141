from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from marketcart.core.errors import ApiError
from marketcart.schemas.checkout import CheckoutRequest, CheckoutResponse
from marketcart.schemas.remote import RemoteCartEntry, RemoteProduct

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


def _error_details(resp: httpx.Response) -> tuple[str | None, str | None]:
    try:
        body = resp.json()
    except ValueError:
        return None, None
    if not isinstance(body, dict):
        return None, None
    message = body.get("message") or body.get("detail")
    error_type = body.get("error_type")
    return (str(message) if message else None), (str(error_type) if error_type else None)


def _unwrap_data(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class MarketplaceApi:
    """Thin async client for the marketplace cart, product and checkout endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        prefix: str = "/api",
        token_provider: TokenProvider | None = None,
        client_id: str = "",
        client_secret: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.token_provider = token_provider
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.client_id:
            headers["CLIENT_ID"] = self.client_id
        if self.client_secret:
            headers["CLIENT_SECRET"] = self.client_secret
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> Any:
        url = f"{self.prefix}{path}"
        try:
            async with self._client() as client:
                resp = await client.request(method, url, json=json)
                resp.raise_for_status()
                if not resp.content:
                    return None
                return resp.json()
        except httpx.HTTPStatusError as exc:
            message, error_type = _error_details(exc.response)
            status_code = exc.response.status_code
            logger.warning(
                "marketplace_api_failed",
                extra={"method": method, "path": url, "status_code": status_code, "error_type": error_type},
            )
            raise ApiError(
                message or f"Request failed with status {status_code}",
                status_code=status_code,
                error_type=error_type,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("marketplace_api_unreachable", extra={"method": method, "path": url, "error": str(exc)})
            raise ApiError(str(exc) or "Network error") from exc
        except ValueError as exc:
            raise ApiError("Malformed response body") from exc

    async def get_cart(self) -> list[RemoteCartEntry]:
        data = _unwrap_data(await self._request("GET", "/cart"))
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiError("Unexpected cart payload")
        try:
            return [RemoteCartEntry.model_validate(entry) for entry in data]
        except ValidationError as exc:
            raise ApiError("Unexpected cart payload") from exc

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> Any:
        body = await self._request("POST", "/cart/add", json={"product_id": product_id, "quantity": quantity})
        return _unwrap_data(body)

    async def increase_quantity(self, cart_item_id: int) -> Any:
        return _unwrap_data(await self._request("POST", f"/cart/{cart_item_id}/increase"))

    async def decrease_quantity(self, cart_item_id: int) -> Any:
        return _unwrap_data(await self._request("POST", f"/cart/{cart_item_id}/decrease"))

    async def remove_from_cart(self, cart_item_id: int) -> Any:
        return _unwrap_data(await self._request("DELETE", f"/cart/{cart_item_id}"))

    async def clear_cart(self) -> Any:
        return _unwrap_data(await self._request("DELETE", "/cart"))

    async def get_product(self, slug_or_id: str | int) -> RemoteProduct:
        data = _unwrap_data(await self._request("GET", f"/products/{slug_or_id}"))
        try:
            return RemoteProduct.model_validate(data)
        except ValidationError as exc:
            raise ApiError("Unexpected product payload") from exc

    async def checkout(self, request: CheckoutRequest) -> CheckoutResponse:
        body = await self._request("POST", "/checkout", json=request.model_dump())
        body = body if isinstance(body, dict) else {}
        data = body.get("data")
        payload = dict(data) if isinstance(data, dict) else dict(body)
        # The redirect url sits next to "data" on some deployments and inside it on others.
        if body.get("midtrans_redirect_url"):
            payload["midtrans_redirect_url"] = body["midtrans_redirect_url"]
        try:
            return CheckoutResponse.model_validate(payload)
        except ValidationError as exc:
            raise ApiError("Unexpected checkout payload") from exc
