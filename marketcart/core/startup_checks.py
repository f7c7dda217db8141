from __future__ import annotations

import httpx

from marketcart.core.config import Settings, settings

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}


def _is_production(cfg: Settings) -> bool:
    return (cfg.environment or "").strip().lower() in {"prod", "production"}


def _api_url_problems(cfg: Settings) -> list[str]:
    try:
        url = httpx.URL((cfg.api_base_url or "").strip())
    except httpx.InvalidURL:
        return ["API_BASE_URL is not a valid URL."]
    problems: list[str] = []
    if url.scheme != "https":
        problems.append("API_BASE_URL must use https in production.")
    if not url.host or url.host in _LOCAL_HOSTS or url.host.endswith(".localhost"):
        problems.append("API_BASE_URL must point at the public marketplace API (not localhost) in production.")
    return problems


def _credential_problems(cfg: Settings) -> list[str]:
    problems: list[str] = []
    token = cfg.api_token.get_secret_value() if cfg.api_token else ""
    if not token.strip():
        problems.append("API_TOKEN must be configured in production.")
    if cfg.api_client_id and not cfg.api_client_secret:
        problems.append("API_CLIENT_SECRET must accompany API_CLIENT_ID.")
    return problems


def validate_production_settings(cfg: Settings | None = None) -> None:
    """
    Refuse to start against a development marketplace or without credentials
    and error reporting when running in production.
    """
    cfg = cfg or settings
    if not _is_production(cfg):
        return

    problems = _api_url_problems(cfg) + _credential_problems(cfg)
    if not (cfg.sentry_dsn or "").strip():
        problems.append("SENTRY_DSN must be configured in production.")

    if problems:
        raise RuntimeError("Production configuration checks failed:\n- " + "\n- ".join(problems))
