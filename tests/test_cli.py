from io import StringIO
from pathlib import Path

import httpx
import pytest

from marketcart.cli import run
from marketcart.container import CartContainer, build_cart_store
from marketcart.core.config import Settings
from marketcart.services.storage import MemoryStateStorage


@pytest.fixture
def container(marketplace, tmp_path: Path) -> CartContainer:
    cfg = Settings(api_base_url="http://marketplace.test", storage_dir=str(tmp_path), api_token="cli-token")
    return build_cart_store(cfg, storage=MemoryStateStorage(), transport=httpx.MockTransport(marketplace.handler))


def _run(container: CartContainer, *argv: str) -> tuple[int, str]:
    out = StringIO()
    code = run(list(argv), container=container, out=out)
    return code, out.getvalue()


def test_without_command_prints_help(container) -> None:
    code, output = _run(container)

    assert code == 2
    assert "usage: marketcart" in output


def test_add_prints_cart_and_total(container, marketplace) -> None:
    code, output = _run(container, "add", "product-1")

    assert code == 0
    assert "Seller: Toko Andalas (#10)" in output
    assert "x1 @ Rp 10.000" in output
    assert marketplace.requests[-1].headers["Authorization"] == "Bearer cli-token"


def test_conflicting_add_needs_replace_flag(container, marketplace) -> None:
    _run(container, "add", "1")

    code, output = _run(container, "add", "3")
    assert code == 0
    assert "--replace" in output
    assert [i.product_key for i in container.store.items] == [1]
    assert container.store.show_confirm_dialog is False

    code, output = _run(container, "add", "3", "--replace")
    assert code == 0
    assert "Seller: Batik Sari (#20)" in output
    assert marketplace.quantities() == {3: 1}


def test_set_quantity_and_total_include_shipping(container, marketplace) -> None:
    marketplace.put_entry(1, 1)
    _run(container, "sync")

    _run(container, "set-quantity", "100", "3")
    code, output = _run(container, "total")

    assert code == 0
    assert "Items: Rp 30.000" in output
    assert "Payable: Rp 45.000" in output


def test_checkout_with_missing_address_fails(container, marketplace) -> None:
    marketplace.put_entry(1, 1)
    _run(container, "sync")

    code, output = _run(container, "checkout", "--city", "Padang")

    assert code == 1
    assert "Missing shipping details" in output
    assert ("POST", "/api/checkout") not in marketplace.calls


def test_failed_sync_exits_non_zero(container, marketplace) -> None:
    marketplace.fail("GET", "/api/cart", 500)

    code, output = _run(container, "sync")

    assert code == 1
    assert "error: Failed to load cart" in output


def test_checkout_of_empty_cart_fails(container, marketplace) -> None:
    code, output = _run(
        container, "checkout", "--address", "Jl. Sudirman 10", "--city", "Padang",
        "--province", "Sumatera Barat", "--postal-code", "25111",
    )

    assert code == 1
    assert "Cart is empty" in output
    assert ("POST", "/api/checkout") not in marketplace.calls
