"""
Session import from exported cookies, used when automated login is blocked.
"""

from __future__ import annotations

import json
import logging
from http.cookiejar import LoadError, MozillaCookieJar
from pathlib import Path
from typing import Any

from dealer_portal.scraping.errors import ConfigError
from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.types import Session

logger = logging.getLogger(__name__)

_PATH_SUFFIXES = (".json", ".txt", ".cookies")


def import_session(source: str | None, *, portal: str) -> Session:
    """
    Build a Session from a cookie file path or a raw `name=value; ...` string.

    Supported files: a JSON list of cookie objects, a Playwright storage-state
    object with a `cookies` key, or a Netscape cookies.txt. Nothing is
    validated against the portal; stale cookies surface later as expiry.
    """

    raw = (source or "").strip()
    if not raw:
        raise ConfigError(
            "No cookie source configured: set the portal's cookies variable to a file path or cookie string.",
            portal=portal,
            stage="cookie_import",
        )

    path = Path(raw).expanduser()
    if _is_file(path) or _looks_like_path(raw):
        cookies = _load_cookie_file(path, portal=portal)
        origin = str(path)
    else:
        cookies = parse_cookie_string(raw)
        origin = None

    if not cookies:
        raise ConfigError("Cookie source contained no cookies.", portal=portal, stage="cookie_import")

    log_event(logger, logging.INFO, "cookies_imported", portal=portal, cookies=len(cookies), origin=origin)
    return Session(cookies=tuple(cookies), source="import", origin_url=origin)


def parse_cookie_string(raw: str) -> list[dict[str, Any]]:
    cookies: list[dict[str, Any]] = []
    for pair in raw.split(";"):
        name, separator, value = pair.strip().partition("=")
        if not separator or not name.strip():
            continue
        cookies.append({"name": name.strip(), "value": value.strip()})
    return cookies


def _looks_like_path(raw: str) -> bool:
    if parse_cookie_string(raw):
        return False
    return raw.startswith(("/", "./", "../", "~")) or raw.lower().endswith(_PATH_SUFFIXES)


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def _load_cookie_file(path: Path, *, portal: str) -> list[dict[str, Any]]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read cookie file {path}: {exc}", portal=portal, stage="cookie_import") from exc

    stripped = text.lstrip()
    if path.suffix.lower() == ".json" or stripped.startswith(("[", "{")):
        return _parse_json_cookies(text, path=path, portal=portal)
    return _parse_netscape_cookies(path, portal=portal)


def _parse_json_cookies(text: str, *, path: Path, portal: str) -> list[dict[str, Any]]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse cookie file {path}: {exc}", portal=portal, stage="cookie_import") from exc

    if isinstance(payload, dict):
        payload = payload.get("cookies", [])
    if not isinstance(payload, list):
        raise ConfigError(
            f"Cookie file {path} must hold a list of cookies or a storage state.",
            portal=portal,
            stage="cookie_import",
        )

    cookies: list[dict[str, Any]] = []
    for entry in payload:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        cookie: dict[str, Any] = {"name": str(entry["name"]), "value": str(entry.get("value", ""))}
        for key in ("domain", "path", "expires", "secure", "httpOnly"):
            if entry.get(key) is not None:
                cookie[key] = entry[key]
        # Chrome extension exports use expirationDate.
        if "expires" not in cookie and isinstance(entry.get("expirationDate"), (int, float)):
            cookie["expires"] = entry["expirationDate"]
        cookies.append(cookie)
    return cookies


def _parse_netscape_cookies(path: Path, *, portal: str) -> list[dict[str, Any]]:
    jar = MozillaCookieJar(str(path))
    try:
        jar.load(ignore_discard=True, ignore_expires=True)
    except (LoadError, OSError) as exc:
        raise ConfigError(f"Failed to parse cookie file {path}: {exc}", portal=portal, stage="cookie_import") from exc

    cookies: list[dict[str, Any]] = []
    for item in jar:
        cookie: dict[str, Any] = {
            "name": item.name,
            "value": item.value or "",
            "domain": item.domain,
            "path": item.path or "/",
            "secure": bool(item.secure),
        }
        if item.expires:
            cookie["expires"] = item.expires
        cookies.append(cookie)
    return cookies
