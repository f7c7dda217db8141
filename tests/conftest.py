import json
import re
from collections.abc import Generator
from typing import Any

import httpx
import pytest

from marketcart.core import metrics
from marketcart.schemas.cart import CartItemDraft
from marketcart.schemas.remote import RemoteProduct
from marketcart.services.api_client import MarketplaceApi
from marketcart.services.cart_store import CartStore
from marketcart.services.notifier import Notifier
from marketcart.services.storage import MemoryStateStorage

_ITEM_ROUTE = re.compile(r"^/api/cart/(\d+)(?:/(increase|decrease))?$")
_PRODUCT_ROUTE = re.compile(r"^/api/products/([^/]+)$")


class FakeMarketplace:
    """In-memory marketplace API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.products: dict[int, dict[str, Any]] = {}
        self.entries: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self._failures: dict[tuple[str, str], list[httpx.Response]] = {}
        self._next_entry_id = 100

    def add_product(
        self,
        product_id: int,
        *,
        seller_id: int,
        shop_name: str | None,
        price: str,
        stock: int = 10,
        name: str | None = None,
    ) -> dict[str, Any]:
        product = {
            "id": product_id,
            "name": name or f"Product {product_id}",
            "slug": f"product-{product_id}",
            "description": f"Description {product_id}",
            "price": price,
            "image_url": f"https://cdn.example.com/{product_id}.jpg",
            "stock": stock,
            "seller_id": seller_id,
            "seller": {"id": seller_id, "shop_name": shop_name} if shop_name else None,
            "category": {"id": 1, "name": "General"},
        }
        self.products[product_id] = product
        return product

    def put_entry(self, product_id: int, quantity: int = 1) -> dict[str, Any]:
        entry = {"id": self._next_entry_id, "product_id": product_id, "quantity": quantity}
        self._next_entry_id += 1
        self.entries.append(entry)
        return entry

    def fail(self, method: str, path: str, status_code: int = 500, json: Any = None, times: int = 1) -> None:
        body = json if json is not None else {"message": "Server error"}
        self._failures.setdefault((method, path), []).extend(
            httpx.Response(status_code, json=body) for _ in range(times)
        )

    def quantities(self) -> dict[int, int]:
        return {entry["product_id"]: entry["quantity"] for entry in self.entries}

    def _entry_payload(self, entry: dict[str, Any]) -> dict[str, Any]:
        return {**entry, "product": self.products[entry["product_id"]]}

    def _find_entry(self, entry_id: int) -> dict[str, Any] | None:
        return next((entry for entry in self.entries if entry["id"] == entry_id), None)

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))
        self.requests.append(request)
        queued = self._failures.get((method, path))
        if queued:
            return queued.pop(0)

        if path == "/api/cart" and method == "GET":
            return httpx.Response(200, json={"data": [self._entry_payload(entry) for entry in self.entries]})
        if path == "/api/cart" and method == "DELETE":
            self.entries.clear()
            return httpx.Response(200, json={"data": None})
        if path == "/api/cart/add" and method == "POST":
            return self._add(request)
        if path == "/api/checkout" and method == "POST":
            return httpx.Response(200, json={"data": {"order_ids": [501]}, "midtrans_redirect_url": None})

        item_match = _ITEM_ROUTE.match(path)
        if item_match:
            return self._item_action(method, int(item_match.group(1)), item_match.group(2))

        product_match = _PRODUCT_ROUTE.match(path)
        if product_match and method == "GET":
            key = product_match.group(1)
            product = next(
                (p for p in self.products.values() if str(p["id"]) == key or p["slug"] == key),
                None,
            )
            if product is None:
                return httpx.Response(404, json={"message": "Product not found"})
            return httpx.Response(200, json={"data": product})

        return httpx.Response(404, json={"message": "Not found"})

    def _add(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        product_id = body["product_id"]
        if product_id not in self.products:
            return httpx.Response(404, json={"message": "Product not found"})
        sellers = {self.products[entry["product_id"]]["seller_id"] for entry in self.entries}
        if sellers and self.products[product_id]["seller_id"] not in sellers:
            return httpx.Response(422, json={"message": "Different seller", "error_type": "different_seller"})
        for entry in self.entries:
            if entry["product_id"] == product_id:
                entry["quantity"] += body.get("quantity", 1)
                return httpx.Response(200, json={"data": entry})
        return httpx.Response(201, json={"data": self.put_entry(product_id, body.get("quantity", 1))})

    def _item_action(self, method: str, entry_id: int, action: str | None) -> httpx.Response:
        entry = self._find_entry(entry_id)
        if entry is None:
            return httpx.Response(404, json={"message": "Cart item not found"})
        if method == "DELETE" and action is None:
            self.entries.remove(entry)
            return httpx.Response(200, json={"data": None})
        if method == "POST" and action == "increase":
            entry["quantity"] += 1
            return httpx.Response(200, json={"data": entry})
        if method == "POST" and action == "decrease":
            entry["quantity"] -= 1
            if entry["quantity"] <= 0:
                self.entries.remove(entry)
            return httpx.Response(200, json={"data": entry})
        return httpx.Response(405, json={"message": "Method not allowed"})


@pytest.fixture(scope="module")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None, None, None]:
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def marketplace() -> FakeMarketplace:
    market = FakeMarketplace()
    market.add_product(1, seller_id=10, shop_name="Toko Andalas", price="10000.00", stock=5)
    market.add_product(2, seller_id=10, shop_name="Toko Andalas", price="5000.00", stock=3)
    market.add_product(3, seller_id=20, shop_name="Batik Sari", price="7500.00", stock=8)
    return market


@pytest.fixture
def api(marketplace: FakeMarketplace) -> MarketplaceApi:
    return MarketplaceApi(
        "http://marketplace.test",
        token_provider=lambda: "token-123",
        client_id="client-id",
        client_secret="client-secret",
        transport=httpx.MockTransport(marketplace.handler),
    )


@pytest.fixture
def storage() -> MemoryStateStorage:
    return MemoryStateStorage()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def store(api: MarketplaceApi, storage: MemoryStateStorage, notifier: Notifier) -> CartStore:
    return CartStore(api, storage=storage, notifier=notifier)


@pytest.fixture
def draft_for(marketplace: FakeMarketplace):
    def _draft(product_id: int) -> CartItemDraft:
        return RemoteProduct.model_validate(marketplace.products[product_id]).to_cart_draft()

    return _draft
