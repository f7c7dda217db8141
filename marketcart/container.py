from __future__ import annotations

from dataclasses import dataclass

import httpx

from marketcart.core.config import Settings, settings as default_settings
from marketcart.services.api_client import MarketplaceApi
from marketcart.services.cart_store import CartStore
from marketcart.services.confirm_dialog import ConfirmDialogController
from marketcart.services.notifier import Notifier
from marketcart.services.storage import FileStateStorage, StateStorage


@dataclass
class CartContainer:
    settings: Settings
    api: MarketplaceApi
    notifier: Notifier
    store: CartStore
    confirm_dialog: ConfirmDialogController


def build_api(cfg: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> MarketplaceApi:
    def token_provider() -> str | None:
        return cfg.api_token.get_secret_value() if cfg.api_token else None

    return MarketplaceApi(
        cfg.api_base_url,
        prefix=cfg.api_prefix,
        token_provider=token_provider,
        client_id=cfg.api_client_id,
        client_secret=cfg.api_client_secret,
        timeout=cfg.api_timeout_seconds,
        transport=transport,
    )


def build_cart_store(
    cfg: Settings | None = None,
    *,
    storage: StateStorage | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    hydrate: bool = True,
) -> CartContainer:
    """Wire one store for the whole application; callers pass it down instead of looking it up."""
    cfg = cfg or default_settings
    api = build_api(cfg, transport=transport)
    notifier = Notifier()
    store = CartStore(
        api,
        storage=storage if storage is not None else FileStateStorage(cfg.storage_dir),
        notifier=notifier,
        storage_key=cfg.cart_storage_key,
        persist_transient_flags=cfg.cart_persist_transient_flags,
        serialize_mutations=cfg.cart_serialize_mutations,
    )
    if hydrate:
        store.hydrate()
    return CartContainer(
        settings=cfg,
        api=api,
        notifier=notifier,
        store=store,
        confirm_dialog=ConfirmDialogController(store),
    )
