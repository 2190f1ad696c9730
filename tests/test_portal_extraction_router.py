"""
tests/test_portal_extraction_router.py

Pytest tests for the /portal-jobs API surface using FastAPI's TestClient.

Coverage
--------
- Successful extraction returns the job summary
- Repeated ``item`` query parameters reach the service as a list
- ConfigError maps to 400, other portal failures map to 502
- Inventory refresh forwards limit and items and reports mode "inventory"
- Discovery forwards the search term
- Job listing validates its limit
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from db.session import get_db
from dealer_portal.api.routers import portal_extraction_router
from dealer_portal.domain.portal_extraction import PortalJobSummary
from dealer_portal.scraping.errors import AuthError, ConfigError
from dealer_portal.services.portal_extraction_service import get_portal_extraction_service


class StubService:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.error: Exception | None = None

    def _answer(self, name: str, **kwargs: Any) -> PortalJobSummary:
        kwargs.pop("db")
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error
        return PortalJobSummary(
            job_id="8a4c2e4e-5d0c-4e3f-9a57-1e0c4b5f6a70",
            portal=kwargs["portal"],
            mode=name,
            status="completed",
            processed=3,
            matched=2,
            updated=2,
            errors=1,
            strategy="fetch",
            error_samples=["TWB-99107: HTTP 500"],
        )

    def extract(self, **kwargs: Any) -> PortalJobSummary:
        return self._answer("extract", **kwargs)

    def inventory(self, **kwargs: Any) -> PortalJobSummary:
        return self._answer("inventory", **kwargs)

    def discover(self, **kwargs: Any) -> PortalJobSummary:
        return self._answer("discover", **kwargs)

    def list_jobs(self, **kwargs: Any) -> list[PortalJobSummary]:
        self.calls.append(("list_jobs", {key: value for key, value in kwargs.items() if key != "db"}))
        return []


@pytest.fixture()
def stub_service() -> StubService:
    return StubService()


@pytest.fixture()
def client(stub_service: StubService) -> TestClient:
    app = FastAPI()
    app.include_router(portal_extraction_router)
    app.dependency_overrides[get_db] = lambda: object()
    app.dependency_overrides[get_portal_extraction_service] = lambda: stub_service
    return TestClient(app)


class TestExtractEndpoint:
    def test_returns_summary(self, client: TestClient, stub_service: StubService) -> None:
        response = client.post("/portal-jobs/triwest/extract", params={"limit": 50})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["matched"] == 2
        assert body["error_samples"] == ["TWB-99107: HTTP 500"]
        assert stub_service.calls == [("extract", {"portal": "triwest", "limit": 50, "items": None})]

    def test_repeated_items(self, client: TestClient, stub_service: StubService) -> None:
        response = client.post("/portal-jobs/msi/extract?item=A1&item=B2")

        assert response.status_code == 200
        assert stub_service.calls[0][1]["items"] == ["A1", "B2"]

    def test_config_error_is_400(self, client: TestClient, stub_service: StubService) -> None:
        stub_service.error = ConfigError("No enabled portal named 'nowhere'.", portal="nowhere", stage="config")

        response = client.post("/portal-jobs/nowhere/extract")

        assert response.status_code == 400
        assert response.json()["detail"] == "[nowhere/config] No enabled portal named 'nowhere'."

    def test_auth_error_is_502(self, client: TestClient, stub_service: StubService) -> None:
        stub_service.error = AuthError("Login failed: no email field found", portal="triwest", stage="login")

        response = client.post("/portal-jobs/triwest/extract")

        assert response.status_code == 502
        assert "Login failed" in response.json()["detail"]

    def test_limit_must_be_positive(self, client: TestClient) -> None:
        assert client.post("/portal-jobs/triwest/extract", params={"limit": 0}).status_code == 422


class TestInventoryEndpoint:
    def test_forwards_limit_and_items(self, client: TestClient, stub_service: StubService) -> None:
        response = client.post(
            "/portal-jobs/triwest/inventory",
            params=[("item", "TWL-40021"), ("item", "TWB-99107"), ("limit", 10)],
        )

        assert response.status_code == 200
        assert response.json()["mode"] == "inventory"
        assert stub_service.calls == [
            ("inventory", {"portal": "triwest", "limit": 10, "items": ["TWL-40021", "TWB-99107"]})
        ]

    def test_missing_inventory_endpoint_is_400(self, client: TestClient, stub_service: StubService) -> None:
        stub_service.error = ConfigError(
            "Portal 'msi' has no 'inventory' endpoint configured.",
            portal="msi",
            stage="config",
        )

        response = client.post("/portal-jobs/msi/inventory")

        assert response.status_code == 400
        assert "inventory" in response.json()["detail"]

class TestDiscoverAndListEndpoints:
    def test_discover_forwards_term(self, client: TestClient, stub_service: StubService) -> None:
        response = client.post("/portal-jobs/msi/discover", params={"term": "calacatta"})

        assert response.status_code == 200
        assert response.json()["mode"] == "discover"
        assert stub_service.calls == [("discover", {"portal": "msi", "term": "calacatta"})]

    def test_list_jobs(self, client: TestClient, stub_service: StubService) -> None:
        response = client.get("/portal-jobs", params={"portal": "msi", "limit": 5})

        assert response.status_code == 200
        assert response.json() == []
        assert stub_service.calls == [("list_jobs", {"portal": "msi", "limit": 5})]

    def test_list_limit_is_bounded(self, client: TestClient) -> None:
        assert client.get("/portal-jobs", params={"limit": 500}).status_code == 422
