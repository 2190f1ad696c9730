"""
Environment + JSON config loader for dealer portal extraction.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from urllib.parse import urljoin

from db.config import load_env_files

from dealer_portal.scraping.config.models import (
    ALLOWED_STRATEGIES,
    STRATEGY_AUTO,
    PortalConfig,
    PortalScrapingSettings,
)
from dealer_portal.scraping.errors import ConfigError
from dealer_portal.scraping.types import Credentials

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_portal_scraping_settings() -> PortalScrapingSettings:
    """
    Return cached portal extraction settings from environment variables.
    """

    load_env_files()
    config_path = _get_str_env(
        "PORTAL_SCRAPE_CONFIG_PATH",
        "dealer_portal/scraping/config/portals.json",
    )
    return PortalScrapingSettings(
        config_path=str(_resolve_path(config_path)),
        default_user_agent=_get_str_env("PORTAL_SCRAPE_USER_AGENT", DEFAULT_USER_AGENT),
        headless=_get_bool_env("PORTAL_SCRAPE_HEADLESS", True),
        navigation_timeout_seconds=max(
            1.0,
            _get_float_env("PORTAL_SCRAPE_NAVIGATION_TIMEOUT_SECONDS", 30.0),
        ),
        request_timeout_seconds=max(
            1.0,
            _get_float_env("PORTAL_SCRAPE_REQUEST_TIMEOUT_SECONDS", 30.0),
        ),
        max_retries=max(0, _get_int_env("PORTAL_SCRAPE_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(
            0.1,
            _get_float_env("PORTAL_SCRAPE_BACKOFF_INITIAL_SECONDS", 0.5),
        ),
        backoff_multiplier=max(
            1.0,
            _get_float_env("PORTAL_SCRAPE_BACKOFF_MULTIPLIER", 2.0),
        ),
        max_redirects=max(1, _get_int_env("PORTAL_SCRAPE_MAX_REDIRECTS", 5)),
        item_delay_seconds=max(0.0, _get_float_env("PORTAL_SCRAPE_ITEM_DELAY_SECONDS", 1.0)),
        consecutive_failure_threshold=max(
            1,
            _get_int_env("PORTAL_SCRAPE_CONSECUTIVE_FAILURE_THRESHOLD", 10),
        ),
        max_logged_errors=max(0, _get_int_env("PORTAL_SCRAPE_MAX_LOGGED_ERRORS", 30)),
        checkpoint_interval=max(1, _get_int_env("PORTAL_SCRAPE_CHECKPOINT_INTERVAL", 25)),
        probe_sample_size=max(1, _get_int_env("PORTAL_SCRAPE_PROBE_SAMPLE_SIZE", 3)),
        login_settle_seconds=max(0.0, _get_float_env("PORTAL_SCRAPE_LOGIN_SETTLE_SECONDS", 3.0)),
        inventory_freshness_hours=max(
            1.0,
            _get_float_env("PORTAL_SCRAPE_INVENTORY_FRESHNESS_HOURS", 24.0),
        ),
        uploads_path=str(_resolve_path(_get_str_env("UPLOADS_PATH", "uploads"))),
    )


def load_portal_configs(*, config_path: str) -> list[PortalConfig]:
    """
    Load portal configurations from a JSON file.
    """

    path = _resolve_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Portal config file not found: {path}")

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    portals = raw_data.get("portals", [])
    if not isinstance(portals, list):
        raise ValueError("Invalid portal config: 'portals' must be a list.")

    parsed: list[PortalConfig] = []
    for entry in portals:
        if not isinstance(entry, dict):
            continue

        name = str(entry.get("name", "")).strip().lower()
        base_url = str(entry.get("base_url", "")).strip().rstrip("/")
        adapter_type = str(entry.get("adapter_type", "")).strip().lower()
        if not name or not base_url or not adapter_type:
            continue

        strategy = str(entry.get("strategy", STRATEGY_AUTO)).strip().lower()
        if strategy not in ALLOWED_STRATEGIES:
            strategy = STRATEGY_AUTO

        parsed.append(
            PortalConfig(
                name=name,
                adapter_type=adapter_type,
                base_url=base_url,
                login_url=_absolute_url(base_url, entry.get("login_url")) or base_url,
                entry_url=_absolute_url(base_url, entry.get("entry_url")) or base_url,
                endpoints=_normalize_endpoints(base_url=base_url, endpoints=entry.get("endpoints", {})),
                selectors=_normalize_selectors(entry.get("selectors", {})),
                username_env=_optional_str(entry.get("username_env")),
                password_env=_optional_str(entry.get("password_env")),
                cookies_env=_optional_str(entry.get("cookies_env")),
                strategy=strategy,
                verification_policy=_optional_str(entry.get("verification_policy")),
                discovery_term=_optional_str(entry.get("discovery_term")),
                deny_list=_normalize_str_list(entry.get("deny_list", [])),
                enabled=_optional_bool(entry.get("enabled"), True),
                user_agent=_optional_str(entry.get("user_agent")),
                item_delay_seconds=_optional_float(entry.get("item_delay_seconds")),
                headers=_normalize_headers(entry.get("headers", {})),
                schedule=_optional_str(entry.get("schedule")),
                inventory_schedule=_optional_str(entry.get("inventory_schedule")),
                warehouse=_optional_str(entry.get("warehouse")),
                vendor_code=_optional_str(entry.get("vendor_code")),
                adapter_class=_optional_str(entry.get("adapter_class")),
            )
        )

    return parsed


def get_portal_config(name: str, *, config_path: str) -> PortalConfig:
    """
    Return the enabled portal called `name`, or raise ConfigError.
    """

    wanted = name.strip().lower()
    for config in load_portal_configs(config_path=config_path):
        if config.name == wanted and config.enabled:
            return config
    raise ConfigError(f"No enabled portal named '{name}' in {config_path}.", portal=wanted, stage="config")


def load_credentials(portal: PortalConfig) -> Credentials | None:
    """
    Read the portal's username/password pair from the environment.

    Returns None when either half is missing; callers decide whether
    that is fatal (it is unless a cookie source is configured).
    """

    load_env_files()
    if not portal.username_env or not portal.password_env:
        return None
    username = (os.getenv(portal.username_env) or "").strip()
    password = os.getenv(portal.password_env) or ""
    credentials = Credentials(username=username, password=password)
    return credentials if credentials.is_complete() else None


def load_cookie_source(portal: PortalConfig) -> str | None:
    load_env_files()
    if not portal.cookies_env:
        return None
    return _optional_str(os.getenv(portal.cookies_env))


def _absolute_url(base_url: str, value: object) -> str | None:
    raw = _optional_str(value)
    if raw is None:
        return None
    if raw.startswith(("http://", "https://")):
        return raw
    return urljoin(f"{base_url}/", raw.lstrip("/"))


def _normalize_endpoints(*, base_url: str, endpoints: object) -> dict[str, str]:
    if not isinstance(endpoints, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in endpoints.items():
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        kind = key.strip().lower()
        template = value.strip()
        if not kind or not template:
            continue
        normalized[kind] = _absolute_url(base_url, template) or template
    return normalized


def _normalize_selectors(selectors: object) -> dict[str, list[str]]:
    if not isinstance(selectors, dict):
        return {}

    normalized: dict[str, list[str]] = {}
    for key, value in selectors.items():
        if not isinstance(key, str):
            continue
        normalized[key.strip().lower()] = _normalize_str_list(value)
    return normalized


def _normalize_str_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def _normalize_headers(headers: object) -> dict[str, str]:
    if not isinstance(headers, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in headers.items():
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        if key.strip() and value.strip():
            normalized[key.strip()] = value.strip()
    return normalized


def _optional_str(value: object) -> str | None:
    if value is None or not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default
