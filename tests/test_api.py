"""FastAPI endpoint tests."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wagerlab import config
from wagerlab.api import server
from wagerlab.data.aggregator import LiveDataAggregator
from wagerlab.data.cache import TTLCache
from wagerlab.db.models import Base
from wagerlab.db.repository import WagerRepository

SLIP = "\n".join(
    [
        "Dec-07-2025",
        "12:06 PM\t600311842\tSTRAIGHT BET",
        "[Dec-07-2025 01:00 PM] [NFL] - [451] NE PATRIOTS -3½-110",
        "$110/$100",
        "Pending",
        "Dec-08-2025",
        "1:00 PM\t600311843\tSTRAIGHT BET",
        "garbage line",
    ]
)
HEADERS = {"X-API-Key": "secret"}


@pytest.fixture()
def client(monkeypatch) -> TestClient:
    monkeypatch.setenv("WAGERLAB_API_KEY", "secret")
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    repository = WagerRepository(sessionmaker(bind=engine, class_=Session, expire_on_commit=False))
    server.app.dependency_overrides[server.get_repository] = lambda: repository
    server.app.dependency_overrides[server.get_aggregator] = lambda: LiveDataAggregator({}, {}, TTLCache())
    yield TestClient(server.app)
    server.app.dependency_overrides.clear()


def test_health_and_version(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/version").json()["name"] == "wagerlab"


def test_requires_api_key(client: TestClient) -> None:
    assert client.get("/wagers/active").status_code == 401
    assert client.get("/wagers/active", headers={"X-API-Key": "wrong"}).status_code == 401


def test_missing_server_key_rejects_everything(client: TestClient, monkeypatch) -> None:
    monkeypatch.delenv("WAGERLAB_API_KEY")
    monkeypatch.setattr(config, "get_settings", lambda: SimpleNamespace(wagerlab_api_key=""))
    response = client.get("/wagers/active", headers=HEADERS)
    assert response.status_code == 401
    assert "WAGERLAB_API_KEY" in response.json()["detail"]


def test_import_reports_wagers_errors_and_duplicates(client: TestClient) -> None:
    response = client.post("/wagers/import", json={"text": SLIP, "user_id": "u1"}, headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert [wager["id"] for wager in body["imported"]] == ["600311842"]
    assert body["imported"][0]["kind"] == "Spread"
    assert body["errors"][0]["block_index"] == 1
    assert body["duplicates"] == []

    again = client.post("/wagers/import", json={"text": SLIP, "user_id": "u1"}, headers=HEADERS).json()
    assert again["imported"] == []
    assert again["duplicates"] == ["600311842"]

    active = client.get("/wagers/active", params={"user_id": "u1"}, headers=HEADERS).json()
    assert [wager["id"] for wager in active] == ["600311842"]


def test_import_rejects_blank_text(client: TestClient) -> None:
    assert client.post("/wagers/import", json={"text": ""}, headers=HEADERS).status_code == 422
    assert client.post("/wagers/import", json={"text": "   "}, headers=HEADERS).status_code == 422


def test_settlement_without_providers_leaves_wagers_open(client: TestClient) -> None:
    client.post("/wagers/import", json={"text": SLIP}, headers=HEADERS)
    body = client.post("/run_settlement", json={}, headers=HEADERS).json()
    assert body["status"] == "ok"
    assert body["details"]["checked"] == 1
    assert body["details"]["settled"] == []
    assert body["details"]["unresolved"] == {"600311842": "No data providers configured for NFL"}

    progress = client.get("/wagers/progress", headers=HEADERS).json()
    assert progress[0]["wager_id"] == "600311842"
    assert progress[0]["is_complete"] is False


def test_clv_estimate(client: TestClient) -> None:
    response = client.post(
        "/clv/estimate",
        json={"opening_odds": -110, "current_odds": -125, "kind": "Moneyline", "stake": 100},
        headers=HEADERS,
    )
    body = response.json()
    assert response.status_code == 200
    assert body["clv"] == pytest.approx(6.06)
    assert body["expected_value"] == pytest.approx(6.06)
    assert body["adjusted_odds"] == -125


def test_user_filter_is_optional(client: TestClient) -> None:
    client.post("/wagers/import", json={"text": SLIP, "user_id": "u1"}, headers=HEADERS)
    client.post("/wagers/import", json={"text": SLIP.replace("600311842", "600311844"), "user_id": "u2"}, headers=HEADERS)

    everyone = client.get("/wagers/active", headers=HEADERS)
    assert everyone.status_code == 200
    assert sorted(wager["id"] for wager in everyone.json()) == ["600311842", "600311844"]
    only_u2 = client.get("/wagers/active", params={"user_id": "u2"}, headers=HEADERS).json()
    assert [wager["id"] for wager in only_u2] == ["600311844"]
    assert client.get("/wagers/progress", headers=HEADERS).status_code == 200
