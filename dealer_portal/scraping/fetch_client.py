"""
Plain HTTP client carrying a portal session, with manual redirect handling.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urljoin, urlparse

import requests

from dealer_portal.scraping.config.models import PortalScrapingSettings
from dealer_portal.scraping.errors import ItemError, PortalScrapeError, SessionExpired
from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.types import Session

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
REDIRECT_STATUS_CODES = {301, 302, 303, 307, 308}
LOGIN_MARKERS = ("login", "signin", "sign_in", "sign-in")


def is_login_redirect(location: str | None) -> bool:
    """
    True when a redirect target mentions a login or sign-in page anywhere, in any casing.
    """

    if not location:
        return False
    target = location.strip().lower()
    return any(marker in target for marker in LOGIN_MARKERS)


class AuthenticatedFetchClient:
    """
    Issues portal requests with the session cookie header and a fixed user-agent.
    """

    def __init__(
        self,
        *,
        settings: PortalScrapingSettings,
        base_url: str,
        http: requests.Session | None = None,
        headers: Mapping[str, str] | None = None,
        user_agent: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._base_url = base_url.rstrip("/") + "/"
        self._http = http or requests.Session()
        self._headers = {"User-Agent": user_agent or settings.default_user_agent, **dict(headers or {})}
        self._sleep = sleep

    def request(
        self,
        path: str,
        session: Session | None,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        url = self.resolve_url(path)
        request_headers = dict(self._headers)
        if session is not None and len(session):
            request_headers["Cookie"] = session.cookie_header()
        request_headers.update(headers or {})

        origin_host = urlparse(url).netloc
        current_method = method.upper()
        current_data = data
        current_params = params
        for _hop in range(self._settings.max_redirects + 1):
            response = self._request_with_retry(
                current_method,
                url,
                headers=dict(request_headers),
                params=current_params,
                data=current_data,
            )
            if response.status_code not in REDIRECT_STATUS_CODES:
                if 400 <= response.status_code < 500:
                    raise ItemError(f"HTTP {response.status_code} for {url}", stage="fetch")
                return response

            location = response.headers.get("Location", "")
            if is_login_redirect(location):
                log_event(logger, logging.WARNING, "session_expired", url=url, location=location)
                raise SessionExpired(f"Session expired: redirected to login ({location})", stage="fetch")
            if not location:
                return response

            url = urljoin(url, location)
            if urlparse(url).netloc != origin_host:
                request_headers.pop("Cookie", None)
            current_params = None
            if response.status_code == 303 or (response.status_code in {301, 302} and current_method == "POST"):
                current_method = "GET"
                current_data = None

        raise ItemError(f"Too many redirects for {path}", stage="fetch")

    def fetch_text(self, url: str, session: Session | None) -> str | None:
        """
        Body of a 2xx response, or None on any failure (used by the strategy probe).
        """

        try:
            response = self.request(url, session)
        except (PortalScrapeError, requests.RequestException) as exc:
            log_event(logger, logging.INFO, "probe_fetch_failed", url=url, error=str(exc))
            return None
        if not 200 <= response.status_code < 300:
            return None
        return response.text

    def resolve_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(self._base_url, path.lstrip("/"))

    def _request_with_retry(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        params: Mapping[str, Any] | None,
        data: Any,
    ) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self._settings.max_retries + 1):
            try:
                response = self._http.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    data=data,
                    timeout=self._settings.request_timeout_seconds,
                    allow_redirects=False,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc

            if attempt >= self._settings.max_retries:
                break

            backoff_seconds = self._settings.backoff_initial_seconds * (
                self._settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.INFO,
                "fetch_retry",
                url=url,
                attempt=attempt + 1,
                backoff_seconds=backoff_seconds,
                error=str(last_error),
            )
            self._sleep(backoff_seconds)

        raise ItemError(f"Failed to fetch {url} after retries: {last_error}", stage="fetch")
