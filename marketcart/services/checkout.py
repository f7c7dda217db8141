from __future__ import annotations

import logging
from decimal import Decimal

from marketcart.core import metrics
from marketcart.core.errors import ApiError, CheckoutValidationError, EmptyCartError
from marketcart.schemas.cart import CartItem
from marketcart.schemas.checkout import CheckoutRequest, CheckoutResponse, SellerGroup
from marketcart.services.api_client import MarketplaceApi
from marketcart.services.cart_store import CartStore
from marketcart.services.notifier import Notifier

logger = logging.getLogger(__name__)

CHECKOUT_EMPTY = "Your cart is empty"
CHECKOUT_INCOMPLETE = "Please complete all shipping details"
CHECKOUT_SUCCESS = "Order created"
CHECKOUT_FAILED = "Failed to create order"


def group_by_seller(items: list[CartItem], shipping_cost: Decimal = Decimal("0")) -> list[SellerGroup]:
    groups: dict[int, SellerGroup] = {}
    for item in items:
        group = groups.get(item.seller.id)
        if group is None:
            group = SellerGroup(seller=item.seller, shipping=shipping_cost)
            groups[item.seller.id] = group
        group.items.append(item)
        group.subtotal += item.line_total
    return list(groups.values())


def payable_total(store: CartStore, shipping_cost: Decimal) -> Decimal:
    sellers = {item.seller.id for item in store.items}
    return store.get_total() + len(sellers) * shipping_cost


async def checkout(
    store: CartStore,
    api: MarketplaceApi,
    request: CheckoutRequest,
    *,
    notifier: Notifier | None = None,
) -> CheckoutResponse:
    notifier = notifier if notifier is not None else store.notifier
    if not store.items:
        notifier.error(CHECKOUT_EMPTY)
        raise EmptyCartError()
    missing = request.missing_fields()
    if missing:
        notifier.error(CHECKOUT_INCOMPLETE)
        raise CheckoutValidationError(missing)

    try:
        response = await api.checkout(request)
    except ApiError as exc:
        logger.warning("checkout_failed", extra={"status_code": exc.status_code, "error_type": exc.error_type})
        notifier.error(exc.message or CHECKOUT_FAILED)
        raise

    metrics.record_checkout()
    await store.clear_cart()
    if not response.midtrans_redirect_url:
        notifier.success(CHECKOUT_SUCCESS)
    logger.info("checkout_completed", extra={"order_ids": response.order_ids})
    return response
