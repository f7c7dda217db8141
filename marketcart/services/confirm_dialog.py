from __future__ import annotations

import enum
import logging

from marketcart.schemas.cart import CartItemDraft
from marketcart.services.cart_store import CartStore

logger = logging.getLogger(__name__)

DIALOG_TITLE = "Replace cart?"
DIALOG_DESCRIPTION = "Your cart holds products from another seller. Clear the cart and add this product?"
CONFIRM_LABEL = "Yes, clear cart"
CANCEL_LABEL = "Cancel"


class ConflictPhase(str, enum.Enum):
    idle = "idle"
    pending_confirmation = "pending_confirmation"


class ConfirmDialogController:
    """Surfaces a pending seller conflict and replays the user's choice into the store.

    Holds no state of its own; everything is read from the store.
    """

    title = DIALOG_TITLE
    description = DIALOG_DESCRIPTION
    confirm_label = CONFIRM_LABEL
    cancel_label = CANCEL_LABEL

    def __init__(self, store: CartStore) -> None:
        self._store = store

    @property
    def is_open(self) -> bool:
        return self._store.show_confirm_dialog

    @property
    def pending_item(self) -> CartItemDraft | None:
        return self._store.pending_item

    @property
    def phase(self) -> ConflictPhase:
        if self._store.show_confirm_dialog:
            return ConflictPhase.pending_confirmation
        return ConflictPhase.idle

    def _reset(self) -> None:
        self._store.set_show_confirm_dialog(False)
        self._store.set_pending_item(None)

    async def confirm(self) -> None:
        pending = self._store.pending_item
        if pending is not None:
            logger.info("cart_conflict_confirmed", extra={"item_id": pending.id, "seller_id": pending.seller.id})
            await self._store.clear_cart()
            await self._store.add_item(pending)
        self._reset()

    def cancel(self) -> None:
        pending = self._store.pending_item
        if pending is not None:
            logger.info("cart_conflict_cancelled", extra={"item_id": pending.id, "seller_id": pending.seller.id})
        self._reset()

    def on_open_change(self, open: bool) -> None:
        if open:
            self._store.set_show_confirm_dialog(True)
            return
        self.cancel()
