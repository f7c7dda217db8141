from __future__ import annotations

import enum

from marketcart.schemas.cart import CartItemDraft


class ConflictDecision(str, enum.Enum):
    allow = "allow"
    suspend = "suspend"


def resolve_seller_conflict(current_seller_id: int | None, item: CartItemDraft) -> ConflictDecision:
    """Allow an add when the cart is empty or already holds this item's seller."""
    if current_seller_id is None:
        return ConflictDecision.allow
    if item.seller.id == current_seller_id:
        return ConflictDecision.allow
    return ConflictDecision.suspend
