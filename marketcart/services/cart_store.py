from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from marketcart.core import metrics
from marketcart.core.errors import ApiError
from marketcart.core.logging_config import operation_scope
from marketcart.schemas.cart import CartItem, CartItemDraft, CartState
from marketcart.services.api_client import MarketplaceApi
from marketcart.services.conflict import ConflictDecision, resolve_seller_conflict
from marketcart.services.notifier import Notifier
from marketcart.services.storage import MemoryStateStorage, StateStorage

logger = logging.getLogger(__name__)

StateListener = Callable[[CartState], None]

ADD_FAILED = "Failed to add product to cart"
ADD_DIFFERENT_SELLER = "Your cart already holds products from another seller"
UPDATE_FAILED = "Failed to update product quantity"
REMOVE_FAILED = "Failed to remove product from cart"
CLEAR_FAILED = "Failed to clear cart"
LOAD_FAILED = "Failed to load cart"

_TRANSIENT_FIELDS = ("is_loading", "show_confirm_dialog", "pending_item")


def _consistency_problem(state: CartState) -> str | None:
    ids = [item.id for item in state.items]
    if len(set(ids)) != len(ids):
        return "duplicate_item_id"
    if len({item.seller.id for item in state.items}) > 1:
        return "mixed_sellers"
    return None


class CartStore:
    """Single source of truth for the cart.

    Every mutation is applied to the local state first, then mirrored to the
    marketplace API. A failed remote call is reported through the notifier
    and followed by a full resync, which replaces the local items with the
    server's cart. No operation raises to the caller.

    Listeners registered with :meth:`subscribe` receive the new
    :class:`CartState` after every change; the same snapshot is written to
    ``storage`` under ``storage_key``.
    """

    def __init__(
        self,
        api: MarketplaceApi,
        *,
        storage: StateStorage | None = None,
        notifier: Notifier | None = None,
        storage_key: str = "cart-storage",
        persist_transient_flags: bool = False,
        serialize_mutations: bool = False,
    ) -> None:
        self._api = api
        self._storage = storage if storage is not None else MemoryStateStorage()
        self._notifier = notifier if notifier is not None else Notifier()
        self._storage_key = storage_key
        self._persist_transient_flags = persist_transient_flags
        self._lock = asyncio.Lock() if serialize_mutations else None
        self._state = CartState()
        self._listeners: list[StateListener] = []
        self._inflight = 0

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> list[CartItem]:
        return list(self._state.items)

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def show_confirm_dialog(self) -> bool:
        return self._state.show_confirm_dialog

    @property
    def pending_item(self) -> CartItemDraft | None:
        return self._state.pending_item

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def hydrate(self) -> CartState:
        """Restore the persisted snapshot; transient flags come back reset unless configured otherwise."""
        raw = self._storage.load(self._storage_key)
        if raw is None:
            return self._state
        if not self._persist_transient_flags:
            raw = {key: value for key, value in raw.items() if key not in _TRANSIENT_FIELDS}
        try:
            restored = CartState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("cart_snapshot_rejected", extra={"error_count": exc.error_count()})
            return self._state
        problem = _consistency_problem(restored)
        if problem is not None:
            logger.warning("cart_snapshot_rejected", extra={"reason": problem})
            return self._state
        self._state = restored.model_copy(update={"is_loading": False})
        logger.info("cart_hydrated", extra={"item_count": len(self._state.items)})
        self._emit()
        return self._state

    def _snapshot(self) -> dict[str, Any]:
        data = self._state.model_dump(mode="json")
        if self._persist_transient_flags:
            return data
        return {"items": data["items"]}

    def _persist(self) -> None:
        try:
            self._storage.save(self._storage_key, self._snapshot())
        except (OSError, ValueError):
            logger.exception("cart_snapshot_write_failed", extra={"key": self._storage_key})

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("cart_listener_failed")

    def _set(self, **changes: Any) -> None:
        if "items" in changes:
            changes["items"] = tuple(changes["items"])
        self._state = self._state.model_copy(update=changes)
        self._persist()
        self._emit()

    @asynccontextmanager
    async def _loading(self) -> AsyncIterator[None]:
        self._inflight += 1
        if self._inflight == 1:
            self._set(is_loading=True)
        try:
            yield
        finally:
            self._inflight -= 1
            if self._inflight == 0:
                self._set(is_loading=False)

    @asynccontextmanager
    async def _mutation(self, name: str) -> AsyncIterator[None]:
        with operation_scope(name):
            if self._lock is None:
                async with self._loading():
                    yield
                return
            async with self._lock:
                async with self._loading():
                    yield

    def _find_product(self, product_key: int) -> CartItem | None:
        return next((item for item in self._state.items if item.product_key == product_key), None)

    async def _recover(self, operation: str, exc: ApiError, message: str) -> None:
        metrics.record_remote_failure(operation)
        logger.warning(
            "cart_remote_failed",
            extra={"operation": operation, "status_code": exc.status_code, "error_type": exc.error_type},
        )
        self._notifier.error(message)
        await self.sync_with_server()

    def get_current_seller_id(self) -> int | None:
        items = self._state.items
        return items[0].seller.id if items else None

    def get_total(self) -> Decimal:
        return sum((item.line_total for item in self._state.items), Decimal("0"))

    def set_show_confirm_dialog(self, value: bool) -> None:
        self._set(show_confirm_dialog=bool(value))

    def set_pending_item(self, item: CartItemDraft | None) -> None:
        self._set(pending_item=item.as_draft() if item is not None else None)

    async def add_item(self, item: CartItemDraft) -> None:
        async with self._mutation("add_item"):
            await self._add_item(item.as_draft())

    async def update_quantity(self, item_id: int, quantity: int) -> None:
        async with self._mutation("update_quantity"):
            await self._update_quantity(item_id, quantity)

    async def remove_item(self, item_id: int) -> None:
        async with self._mutation("remove_item"):
            await self._remove_item(item_id)

    async def clear_cart(self) -> None:
        async with self._mutation("clear_cart"):
            await self._clear_cart()

    async def _add_item(self, draft: CartItemDraft) -> None:
        current_seller_id = self.get_current_seller_id()
        if resolve_seller_conflict(current_seller_id, draft) is ConflictDecision.suspend:
            metrics.record_seller_conflict()
            logger.info(
                "cart_seller_conflict",
                extra={"item_id": draft.id, "seller_id": draft.seller.id, "current_seller_id": current_seller_id},
            )
            self._set(pending_item=draft, show_confirm_dialog=True)
            return

        existing = self._find_product(draft.product_key)
        if existing is not None:
            await self._update_quantity(existing.id, existing.quantity + 1)
            return

        line = draft.with_quantity(1)
        if any(item.id == line.id for item in self._state.items):
            # A product id may equal the entry id of a synced line; park the new line on a local key.
            line = line.model_copy(update={"id": self._temporary_id(), "product_id": draft.product_key})
        self._set(items=[*self._state.items, line])
        try:
            created = await self._api.add_to_cart(draft.product_key, 1)
        except ApiError as exc:
            await self._recover("add_item", exc, ADD_DIFFERENT_SELLER if exc.is_different_seller else ADD_FAILED)
            return
        if not self._adopt_entry_id(line, created) and line.id < 0:
            await self.sync_with_server()
        logger.info("cart_item_added", extra={"item_id": draft.id, "seller_id": draft.seller.id})

    def _temporary_id(self) -> int:
        return min([0, *(item.id for item in self._state.items)]) - 1

    def _adopt_entry_id(self, line: CartItem, created: Any) -> bool:
        # The server answers an add with its cart entry; later quantity calls are keyed by that id.
        if not isinstance(created, dict):
            return False
        entry_id = created.get("id")
        if not isinstance(entry_id, int) or created.get("product_id", line.product_key) != line.product_key:
            return False
        if entry_id == line.id:
            return True
        if any(item.id == entry_id for item in self._state.items):
            return False
        self._set(
            items=[
                item.model_copy(update={"id": entry_id, "product_id": line.product_key}) if item.id == line.id else item
                for item in self._state.items
            ]
        )
        return True

    async def _update_quantity(self, item_id: int, quantity: int) -> None:
        if quantity <= 0:
            await self._remove_item(item_id)
            return

        existing = next((item for item in self._state.items if item.id == item_id), None)
        if existing is None:
            logger.info("cart_item_missing", extra={"item_id": item_id, "operation": "update_quantity"})
            return

        diff = quantity - existing.quantity
        self._set(
            items=[
                item.model_copy(update={"quantity": quantity}) if item.id == item_id else item
                for item in self._state.items
            ]
        )
        if diff == 0:
            return
        # One directional call per change, whatever the size of the delta.
        try:
            if diff > 0:
                await self._api.increase_quantity(item_id)
            else:
                await self._api.decrease_quantity(item_id)
        except ApiError as exc:
            await self._recover("update_quantity", exc, UPDATE_FAILED)

    async def _remove_item(self, item_id: int) -> None:
        remaining = [item for item in self._state.items if item.id != item_id]
        if len(remaining) == len(self._state.items):
            logger.info("cart_item_missing", extra={"item_id": item_id, "operation": "remove_item"})
            return

        self._set(items=remaining)
        try:
            await self._api.remove_from_cart(item_id)
        except ApiError as exc:
            await self._recover("remove_item", exc, REMOVE_FAILED)

    async def _clear_cart(self) -> None:
        self._set(items=[])
        try:
            await self._api.clear_cart()
        except ApiError as exc:
            await self._recover("clear_cart", exc, CLEAR_FAILED)

    async def sync_with_server(self) -> None:
        """Replace the local items with the server cart; keep them untouched if the fetch fails."""
        with operation_scope("sync"):
            try:
                entries = await self._api.get_cart()
                items: list[CartItem] = []
                seen: set[int] = set()
                for entry in entries:
                    if entry.id in seen:
                        continue
                    seen.add(entry.id)
                    items.append(entry.to_cart_item())
            except ApiError as exc:
                logger.warning("cart_sync_failed", extra={"status_code": exc.status_code, "error_type": exc.error_type})
                self._notifier.error(LOAD_FAILED)
                return
            except ValidationError as exc:
                logger.warning("cart_sync_failed", extra={"error_count": exc.error_count()})
                self._notifier.error(LOAD_FAILED)
                return
            self._set(items=items)
            metrics.record_resync()
            logger.info("cart_synced", extra={"item_count": len(items)})
