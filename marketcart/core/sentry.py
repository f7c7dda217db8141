from __future__ import annotations

import logging
from typing import Any

from marketcart.core.config import settings

_SECRET_HEADERS = {"authorization", "client_id", "client_secret"}


def _scrub_headers(headers: Any) -> None:
    if not isinstance(headers, dict):
        return
    for name in list(headers):
        if str(name).lower() in _SECRET_HEADERS:
            headers[name] = "[Filtered]"


def _scrub_breadcrumb(crumb: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    _scrub_headers((crumb.get("data") or {}).get("headers"))
    return crumb


def _scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # The marketplace token and client secret travel as request headers.
    _scrub_headers((event.get("request") or {}).get("headers"))
    for crumb in (event.get("breadcrumbs") or {}).get("values") or []:
        _scrub_headers((crumb.get("data") or {}).get("headers"))
    return event


def init_sentry() -> bool:
    """Start error reporting when a DSN is configured; returns whether it did."""
    if not settings.sentry_dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations import Integration
    from sentry_sdk.integrations.httpx import HttpxIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations: list[Integration] = [HttpxIntegration()]
    if settings.sentry_enable_logs:
        event_level = getattr(logging, str(settings.sentry_log_level or "error").strip().upper(), logging.ERROR)
        integrations.append(LoggingIntegration(level=logging.INFO, event_level=event_level))

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=integrations,
        before_send=_scrub_event,
        before_breadcrumb=_scrub_breadcrumb,
        send_default_pii=False,
    )
    return True
