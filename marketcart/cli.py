import argparse
import asyncio
import sys
from decimal import Decimal
from typing import TextIO

from marketcart.container import CartContainer, build_cart_store
from marketcart.core.config import settings
from marketcart.core.errors import ApiError, CheckoutValidationError, EmptyCartError
from marketcart.core.logging_config import configure_logging
from marketcart.core.sentry import init_sentry
from marketcart.core.startup_checks import validate_production_settings
from marketcart.schemas.checkout import CheckoutRequest
from marketcart.services import checkout as checkout_service
from marketcart.utils.formatters import format_price


def _print_items(container: CartContainer, out: TextIO) -> None:
    items = container.store.items
    if not items:
        print("Cart is empty", file=out)
        return
    seller = items[0].seller
    print(f"Seller: {seller.shop_name} (#{seller.id})", file=out)
    for item in items:
        print(
            f"  [{item.id}] {item.name} x{item.quantity} @ {format_price(item.price)} = {format_price(item.line_total)}",
            file=out,
        )
    print(f"Total: {format_price(container.store.get_total())}", file=out)


def _print_notifications(container: CartContainer, out: TextIO) -> None:
    for notification in container.notifier.history:
        print(f"{notification.level.value}: {notification.message}", file=out)


async def _add_product(container: CartContainer, product: str, *, replace: bool, out: TextIO) -> None:
    remote = await container.api.get_product(product)
    await container.store.add_item(remote.to_cart_draft())
    dialog = container.confirm_dialog
    if not dialog.is_open:
        return
    if replace:
        await dialog.confirm()
        return
    print(f"{dialog.description} Re-run with --replace to confirm.", file=out)
    dialog.cancel()


async def _checkout(container: CartContainer, args: argparse.Namespace, out: TextIO) -> None:
    request = CheckoutRequest(
        shipping_address=args.address or "",
        shipping_city=args.city or "",
        shipping_province=args.province or "",
        shipping_postal_code=args.postal_code or "",
        payment_method=args.payment_method,
        notes=args.notes or "",
    )
    response = await checkout_service.checkout(container.store, container.api, request)
    if response.midtrans_redirect_url:
        print(f"Complete payment at: {response.midtrans_redirect_url}", file=out)


async def _dispatch(container: CartContainer, args: argparse.Namespace, out: TextIO) -> bool:
    store = container.store
    if args.command == "show":
        _print_items(container, out)
        return True
    if args.command == "sync":
        await store.sync_with_server()
        _print_items(container, out)
        return True
    if args.command == "add":
        await _add_product(container, args.product, replace=bool(args.replace), out=out)
        _print_items(container, out)
        return True
    if args.command == "set-quantity":
        await store.update_quantity(args.item_id, args.quantity)
        _print_items(container, out)
        return True
    if args.command == "remove":
        await store.remove_item(args.item_id)
        _print_items(container, out)
        return True
    if args.command == "clear":
        await store.clear_cart()
        _print_items(container, out)
        return True
    if args.command == "total":
        shipping = Decimal(container.settings.checkout_shipping_cost_per_seller)
        print(f"Items: {format_price(store.get_total())}", file=out)
        print(f"Payable: {format_price(checkout_service.payable_total(store, shipping))}", file=out)
        return True
    if args.command == "checkout":
        await _checkout(container, args, out)
        return True
    return False


def _add_item_commands(subparsers) -> None:
    add = subparsers.add_parser("add", help="Add one unit of a product (by slug or id)")
    add.add_argument("product")
    add.add_argument("--replace", action="store_true", help="Clear a cart from another seller first")

    qty = subparsers.add_parser("set-quantity", help="Set the quantity of a cart line (0 removes it)")
    qty.add_argument("item_id", type=int)
    qty.add_argument("quantity", type=int)

    remove = subparsers.add_parser("remove", help="Remove a cart line")
    remove.add_argument("item_id", type=int)


def _add_checkout_command(subparsers) -> None:
    checkout = subparsers.add_parser("checkout", help="Create an order from the cart")
    checkout.add_argument("--address")
    checkout.add_argument("--city")
    checkout.add_argument("--province")
    checkout.add_argument("--postal-code", dest="postal_code")
    checkout.add_argument("--payment-method", default="bank_transfer")
    checkout.add_argument("--notes")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marketcart", description="Marketplace cart client")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("show", help="Print the locally persisted cart")
    subparsers.add_parser("sync", help="Reload the cart from the marketplace")
    subparsers.add_parser("clear", help="Empty the cart")
    subparsers.add_parser("total", help="Print cart and payable totals")
    _add_item_commands(subparsers)
    _add_checkout_command(subparsers)
    return parser


def run(argv: list[str] | None = None, *, container: CartContainer | None = None, out: TextIO | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    out = out or sys.stdout
    if not args.command:
        parser.print_help(file=out)
        return 2
    container = container or build_cart_store()
    try:
        if not asyncio.run(_dispatch(container, args, out)):
            parser.print_help(file=out)
            return 2
    except (CheckoutValidationError, EmptyCartError) as exc:
        print(str(exc), file=out)
        return 1
    except ApiError as exc:
        print(f"error: {exc.message}", file=out)
        return 1
    _print_notifications(container, out)
    return 1 if container.notifier.has_errors() else 0


def main() -> None:
    configure_logging(settings.log_json)
    validate_production_settings()
    init_sentry()
    raise SystemExit(run())


if __name__ == "__main__":
    main()
