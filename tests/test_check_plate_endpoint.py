# tests/test_check_plate_endpoint.py
from __future__ import annotations

from typing import Any, List

import httpx
import pytest
from fastapi.testclient import TestClient

import api  # imports app + module-level objects
import functions.utils.http_client as http_mod
from functions.orchestrator.dmv_client import DmvResponse
from functions.orchestrator.plate_check_service import PlateCheckService


class _FakeDmvClient:
    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.plates: List[str] = []

    async def check_plate(self, plate: str) -> DmvResponse:
        self.plates.append(plate)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def _json(payload: Any, status_code: int = 200) -> DmvResponse:
    return DmvResponse(status_code=status_code, content_type="application/json", payload=payload)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(api.app)


def _install(monkeypatch: pytest.MonkeyPatch, dmv: _FakeDmvClient) -> PlateCheckService:
    """Swap in a service with fresh cache/limiter state and a fake DMV client."""
    svc = PlateCheckService(api.settings, dmv_client=dmv)  # type: ignore[arg-type]
    monkeypatch.setattr(api, "svc", svc)
    return svc


# ---------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------
def test_health_ok(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert "service" in body
    assert "X-Correlation-Id" in r.headers


def test_healthz_ok(client: TestClient) -> None:
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


# ---------------------------------------------------------------------
# Success + cache
# ---------------------------------------------------------------------
def test_available_then_cached(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    dmv = _FakeDmvClient(_json({"success": True, "code": "AVAILABLE"}))
    _install(monkeypatch, dmv)

    r1 = client.post("/api/check-plate", json={"plate": "ab1"})
    assert r1.status_code == 200
    assert r1.json() == {"status": "available", "message": "That plate is available.", "cached": False}

    r2 = client.post("/api/check-plate", json={"plate": "ab1"})
    assert r2.status_code == 200
    assert r2.json()["status"] == "available"
    assert r2.json()["cached"] is True

    assert dmv.plates == ["AB1"]


def test_correlation_id_is_propagated(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _FakeDmvClient(_json({"code": "TAKEN"})))

    r = client.post("/api/check-plate", json={"plate": "xyz"}, headers={"X-Correlation-Id": "corr-123"})

    assert r.status_code == 200
    assert r.json()["status"] == "taken"
    assert r.headers.get("X-Correlation-Id") == "corr-123"


def test_invalid_interpretation_is_200(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _FakeDmvClient(_json({"message": "MESSAGE.INVALID"})))

    r = client.post("/api/check-plate", json={"plate": "ab1"})

    assert r.status_code == 200
    assert r.json() == {"status": "invalid", "message": "That plate is invalid.", "cached": False}


# ---------------------------------------------------------------------
# 400
# ---------------------------------------------------------------------
@pytest.mark.parametrize("body", [{}, {"plate": None}, {"other": "x"}])
def test_missing_plate_returns_400(client: TestClient, monkeypatch: pytest.MonkeyPatch, body) -> None:
    dmv = _FakeDmvClient(_json({"available": True}))
    _install(monkeypatch, dmv)

    r = client.post("/api/check-plate", json=body)

    assert r.status_code == 400
    assert r.json() == {"error": "Missing plate value."}
    assert dmv.plates == []


@pytest.mark.parametrize(
    "plate, message_part",
    [
        (123, "Plate must be text."),
        ("   ", "Plate cannot be empty."),
        ("A", "between 2 and 7"),
        ("ABCDEFGH", "between 2 and 7"),
        ("AB!", "Only letters A-Z"),
    ],
)
def test_invalid_plate_returns_400(
    client: TestClient, monkeypatch: pytest.MonkeyPatch, plate: Any, message_part: str
) -> None:
    dmv = _FakeDmvClient(_json({"available": True}))
    _install(monkeypatch, dmv)

    r = client.post("/api/check-plate", json={"plate": plate})

    assert r.status_code == 400
    assert message_part in r.json()["error"]
    assert dmv.plates == []


def test_non_json_body_returns_400(client: TestClient) -> None:
    r = client.post("/api/check-plate", content=b"not json", headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body."}
    assert "X-Correlation-Id" in r.headers


# ---------------------------------------------------------------------
# 429
# ---------------------------------------------------------------------
def test_21st_request_from_same_client_is_rate_limited(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    dmv = _FakeDmvClient(_json({"available": True}))
    _install(monkeypatch, dmv)
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

    for _ in range(20):
        assert client.post("/api/check-plate", json={"plate": "ab1"}, headers=headers).status_code == 200

    r = client.post("/api/check-plate", json={"plate": "ab1"}, headers=headers)
    assert r.status_code == 429
    assert r.json() == {"error": "Too many requests. Please wait a minute and try again."}

    # A different forwarded client still gets through
    other = client.post("/api/check-plate", json={"plate": "ab1"}, headers={"X-Forwarded-For": "198.51.100.1"})
    assert other.status_code == 200


def test_client_id_falls_back_to_connection_address(monkeypatch: pytest.MonkeyPatch) -> None:
    svc = _install(monkeypatch, _FakeDmvClient(_json({"available": True})))
    seen: List[str] = []
    original_admit = svc.rate_limiter.admit

    def _spy(client_id: str, now=None) -> bool:
        seen.append(client_id)
        return original_admit(client_id, now)

    monkeypatch.setattr(svc.rate_limiter, "admit", _spy)

    client = TestClient(api.app)
    client.post("/api/check-plate", json={"plate": "ab1"})
    client.post("/api/check-plate", json={"plate": "ab1"}, headers={"X-Forwarded-For": " 192.0.2.5 "})

    assert seen == ["testclient", "192.0.2.5"]


# ---------------------------------------------------------------------
# 502
# ---------------------------------------------------------------------
def test_dmv_timeout_returns_502_with_details(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _FakeDmvClient(httpx.ReadTimeout("read timed out")))

    r = client.post("/api/check-plate", json={"plate": "ab1"})

    assert r.status_code == 502
    assert r.json() == {"error": "Unable to reach DMV endpoint.", "details": "read timed out"}


def test_dmv_5xx_returns_502_and_is_not_cached(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    svc = _install(monkeypatch, _FakeDmvClient(_json("down", status_code=503)))

    r = client.post("/api/check-plate", json={"plate": "ab1"})

    assert r.status_code == 502
    body = r.json()
    assert body == {"error": "DMV service is temporarily unavailable. Please try again shortly."}
    assert "AB1" not in svc.cache


def test_uninterpretable_payload_returns_502_without_raw_content(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    svc = _install(monkeypatch, _FakeDmvClient(_json({"weird": "SECRET-UPSTREAM-CONTENT"})))

    r = client.post("/api/check-plate", json={"plate": "ab1"})

    assert r.status_code == 502
    assert r.json() == {"error": "Could not interpret DMV response. Please try again."}
    assert "SECRET-UPSTREAM-CONTENT" not in r.text
    assert len(svc.cache) == 0


# ---------------------------------------------------------------------
# Static front-end
# ---------------------------------------------------------------------
def test_root_serves_front_end(client: TestClient) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert "Plate Availability Checker" in r.text


# ---------------------------------------------------------------------
# Malformed DMV bodies through the real DmvClient
# ---------------------------------------------------------------------
class _FakeAsyncClient:
    """Stands in for httpx.AsyncClient: session GET, then a fixed check body."""

    def __init__(self, check_body: bytes, content_type: str) -> None:
        self.check_body = check_body
        self.content_type = content_type

    def __call__(self, *, timeout: Any) -> "_FakeAsyncClient":
        return self

    async def __aenter__(self) -> "_FakeAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, headers=None) -> httpx.Response:
        return httpx.Response(200, headers=[("set-cookie", "JSESSIONID=abc; Path=/")], text="<html></html>")

    async def post(self, url: str, data=None, headers=None) -> httpx.Response:
        return httpx.Response(200, content=self.check_body, headers={"content-type": self.content_type})


@pytest.mark.parametrize(
    "body, content_type",
    [
        (b"[" * 200_000, "application/json"),
        (b'{"available": false, "plate": "AB', "application/json;charset=UTF-8"),
    ],
)
def test_malformed_dmv_body_returns_502_and_is_not_cached(
    client: TestClient, monkeypatch: pytest.MonkeyPatch, body: bytes, content_type: str
) -> None:
    monkeypatch.setattr(http_mod.httpx, "AsyncClient", _FakeAsyncClient(body, content_type))
    svc = PlateCheckService(api.settings)
    monkeypatch.setattr(api, "svc", svc)

    r = client.post("/api/check-plate", json={"plate": "ab1"})

    assert r.status_code == 502
    assert r.json() == {"error": "Could not interpret DMV response. Please try again."}
    assert "AB1" not in svc.cache
