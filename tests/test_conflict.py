from decimal import Decimal

from marketcart.schemas.cart import CartItemDraft, Seller
from marketcart.services.conflict import ConflictDecision, resolve_seller_conflict


def _draft(seller_id: int) -> CartItemDraft:
    return CartItemDraft(id=1, name="Kain Tenun", price=Decimal("1"), seller=Seller(id=seller_id, shop_name="Toko"))


def test_empty_cart_allows_any_seller() -> None:
    assert resolve_seller_conflict(None, _draft(7)) is ConflictDecision.allow


def test_same_seller_is_allowed() -> None:
    assert resolve_seller_conflict(7, _draft(7)) is ConflictDecision.allow


def test_other_seller_suspends() -> None:
    assert resolve_seller_conflict(7, _draft(8)) is ConflictDecision.suspend
