"""
tests/test_fetch_client.py

Pytest unit tests for AuthenticatedFetchClient redirect, retry and expiry handling.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from dealer_portal.scraping.errors import ItemError, SessionExpired
from dealer_portal.scraping.fetch_client import AuthenticatedFetchClient, is_login_redirect
from dealer_portal.scraping.types import Session

SESSION = Session(cookies=({"name": "sid", "value": "abc"}, {"name": "lang", "value": "en"}))


def _response(status_code: int, *, text: str = "", location: str | None = None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = {"Location": location} if location else {}
    return response


def _client(settings, responses: list, sleeps: list[float] | None = None) -> tuple[AuthenticatedFetchClient, Mock]:
    http = Mock()
    http.request.side_effect = responses
    client = AuthenticatedFetchClient(
        settings=settings,
        base_url="https://dealer.example.com/d24",
        http=http,
        headers={"Accept-Language": "en-US"},
        sleep=(sleeps.append if sleeps is not None else (lambda _seconds: None)),
    )
    return client, http


class TestIsLoginRedirect:
    @pytest.mark.parametrize(
        "location",
        [
            "/Account/Login.aspx",
            "https://dealer.example.com/signin?next=/items",
            "/d24/LogIn",
            "/auth/sign-in",
            "/customer_login",
            "https://login.dealer.example.com/authorize",
            "/users/sign_in",
            "/Account/LoginForm.aspx",
            "/auth/LOGINPAGE",
            "/sso?returnTo=/login",
        ],
    )
    def test_login_targets(self, location: str) -> None:
        assert is_login_redirect(location) is True

    @pytest.mark.parametrize("location", ["", None, "/catalog/items", "/d24/iteminquiry?item=TWL-40021"])
    def test_non_login_targets(self, location: str | None) -> None:
        assert is_login_redirect(location) is False


class TestRequest:
    def test_sends_cookie_header_and_user_agent(self, settings) -> None:
        client, http = _client(settings, [_response(200, text="<html>ok</html>")])

        response = client.request("/iteminquiry?item=ABC", SESSION)

        assert response.text == "<html>ok</html>"
        method, url = http.request.call_args.args
        headers = http.request.call_args.kwargs["headers"]
        assert method == "GET"
        assert url == "https://dealer.example.com/d24/iteminquiry?item=ABC"
        assert headers["Cookie"] == "sid=abc; lang=en"
        assert headers["User-Agent"] == "test-agent/1.0"
        assert headers["Accept-Language"] == "en-US"
        assert http.request.call_args.kwargs["allow_redirects"] is False

    def test_redirect_to_login_is_session_expired(self, settings) -> None:
        client, _http = _client(settings, [_response(302, location="/Account/Login.aspx?ReturnUrl=%2f")])

        with pytest.raises(SessionExpired):
            client.request("/iteminquiry?item=ABC", SESSION)

    def test_follows_non_login_redirects(self, settings) -> None:
        client, http = _client(
            settings,
            [_response(301, location="/d24/items/ABC"), _response(200, text="price")],
        )

        response = client.request("/iteminquiry?item=ABC", SESSION)

        assert response.text == "price"
        assert http.request.call_args.args[1] == "https://dealer.example.com/d24/items/ABC"

    def test_cross_host_redirect_drops_session_cookie(self, settings) -> None:
        client, http = _client(
            settings,
            [_response(302, location="https://cdn.thirdparty.example.net/x"), _response(200, text="asset")],
        )

        client.request("/iteminquiry?item=ABC", SESSION)

        first, second = http.request.call_args_list
        assert first.kwargs["headers"]["Cookie"] == "sid=abc; lang=en"
        assert "Cookie" not in second.kwargs["headers"]
        assert second.kwargs["headers"]["User-Agent"] == "test-agent/1.0"

    def test_same_host_redirect_keeps_session_cookie(self, settings) -> None:
        client, http = _client(settings, [_response(302, location="/d24/items/ABC"), _response(200)])

        client.request("/iteminquiry?item=ABC", SESSION)

        assert http.request.call_args.kwargs["headers"]["Cookie"] == "sid=abc; lang=en"

    def test_post_becomes_get_after_302(self, settings) -> None:
        client, http = _client(settings, [_response(302, location="/d24/result"), _response(200)])

        client.request("/search", SESSION, method="POST", data={"q": "ABC"})

        assert http.request.call_args.args[0] == "GET"
        assert http.request.call_args.kwargs["data"] is None

    def test_too_many_redirects(self, settings) -> None:
        loops = [_response(302, location="/d24/loop") for _ in range(settings.max_redirects + 1)]
        client, _http = _client(settings, loops)

        with pytest.raises(ItemError, match="Too many redirects"):
            client.request("/loop", SESSION)

    def test_client_error_is_item_error(self, settings) -> None:
        client, _http = _client(settings, [_response(404)])

        with pytest.raises(ItemError, match="HTTP 404"):
            client.request("/missing", SESSION)

    def test_retries_transient_status_with_backoff(self, settings) -> None:
        sleeps: list[float] = []
        client, http = _client(settings, [_response(503), _response(502), _response(200, text="ok")], sleeps)

        assert client.request("/flaky", SESSION).text == "ok"
        assert http.request.call_count == 3
        assert sleeps == [0.5, 1.0]

    def test_exhausted_retries_raise_item_error(self, settings) -> None:
        client, _http = _client(settings, [requests.ConnectionError("refused")] * 3)

        with pytest.raises(ItemError, match="after retries"):
            client.request("/down", SESSION)


class TestFetchText:
    def test_returns_body_on_success(self, settings) -> None:
        client, _http = _client(settings, [_response(200, text="Dealer Price $4.10")])
        assert client.fetch_text("https://www.example.com/public", None) == "Dealer Price $4.10"

    def test_unauthenticated_requests_send_no_cookie(self, settings) -> None:
        client, http = _client(settings, [_response(200)])
        client.fetch_text("https://www.example.com/public", None)
        assert "Cookie" not in http.request.call_args.kwargs["headers"]

    def test_failures_return_none(self, settings) -> None:
        client, _http = _client(settings, [_response(302, location="/login")])
        assert client.fetch_text("/item", SESSION) is None
