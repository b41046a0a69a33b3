"""Tests for the history API routes via FastAPI TestClient."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.routes import history
from db.connection import get_db
from db.models import Base
from activity.services.history_service import HistoryService

D1: datetime = datetime(2026, 10, 15, 10, 0, tzinfo=UTC)
D2: datetime = D1 + timedelta(days=1)


def _create_test_app() -> FastAPI:
    """Minimal app without lifespan (no migrations)."""
    test_app: FastAPI = FastAPI()

    @test_app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    test_app.include_router(history.router)
    return test_app


_test_app: FastAPI = _create_test_app()


@pytest.fixture()
def _route_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with check_same_thread=False for TestClient."""
    eng: Engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def _route_session(_route_engine: Engine) -> Generator[Session, None, None]:
    factory: sessionmaker[Session] = sessionmaker(
        bind=_route_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    sess: Session = factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture()
def client(_route_session: Session) -> Generator[TestClient, None, None]:
    """TestClient with DB dependency overridden to use test session."""

    def _override_db() -> Generator[Session, None, None]:
        yield _route_session

    _test_app.dependency_overrides[get_db] = _override_db
    with TestClient(_test_app, raise_server_exceptions=True) as c:
        yield c
    _test_app.dependency_overrides.clear()


@pytest.fixture()
def session(_route_session: Session) -> Session:
    """Alias so seed helpers can use the same session as the client."""
    return _route_session


# ---------- seed helpers ----------


def _seed_scenario(session: Session) -> dict[str, int]:
    svc: HistoryService = HistoryService(session)
    return {
        "create": svc.record("invoice", 1, "create", entity_name="INV-0001", created_at=D1),
        "update": svc.record(
            "invoice",
            1,
            "update",
            entity_name="INV-0001",
            changes='{"status":"paid"}',
            user_name="admin",
            created_at=D1,
        ),
        "delete": svc.record(
            "user", 9, "delete", user_name="airavata_admin", created_at=D2
        ),
    }


# ===================================================================
# Health
# ===================================================================


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


# ===================================================================
# History
# ===================================================================


class TestHistoryRoutes:
    def test_empty(self, client: TestClient) -> None:
        resp = client.get("/api/history")
        assert resp.status_code == 200
        body = resp.json()
        assert body["groups"] == []
        assert body["total"] == 0
        assert body["emptyMessage"] == "Activity history will appear here as changes are made."

    def test_grouped(self, client: TestClient, session: Session) -> None:
        ids = _seed_scenario(session)
        body = client.get("/api/history", params={"tz": "UTC"}).json()
        assert [g["date"] for g in body["groups"]] == ["2026-10-16", "2026-10-15"]
        assert [e["id"] for e in body["groups"][1]["entries"]] == [ids["create"], ids["update"]]
        assert body["groups"][1]["countLabel"] == "2 changes"
        assert "changes" not in body["groups"][1]["entries"][1]

    def test_filters(self, client: TestClient, session: Session) -> None:
        _seed_scenario(session)
        body = client.get(
            "/api/history", params={"entityType": "invoice", "action": "all", "tz": "UTC"}
        ).json()
        assert body["total"] == 2
        assert body["hasActiveFilters"] is True
        assert [g["date"] for g in body["groups"]] == ["2026-10-15"]

    def test_search_and_dates(self, client: TestClient, session: Session) -> None:
        ids = _seed_scenario(session)
        body = client.get("/api/history", params={"search": "airavata"}).json()
        assert [e["id"] for g in body["groups"] for e in g["entries"]] == [ids["delete"]]
        body = client.get("/api/history", params={"from": "2026-10-16", "tz": "UTC"}).json()
        assert body["total"] == 1

    def test_malformed_date_ignored(self, client: TestClient, session: Session) -> None:
        _seed_scenario(session)
        resp = client.get("/api/history", params={"from": "not-a-date"})
        assert resp.status_code == 200
        assert resp.json()["total"] == 3

    def test_edge_dates_and_bad_zone_ignored(self, client: TestClient, session: Session) -> None:
        _seed_scenario(session)
        resp = client.get("/api/history", params={"to": "9999-12-31", "tz": "a" * 5000})
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 3
        assert body["timezone"] == "UTC"
        assert "error" not in body or body["error"] is None

    def test_search_too_long_rejected(self, client: TestClient, session: Session) -> None:
        _seed_scenario(session)
        resp = client.get("/api/history", params={"search": "x" * 201})
        assert resp.status_code == 422
        assert "200" in resp.json()["detail"]

    def test_flat_entries(self, client: TestClient, session: Session) -> None:
        ids = _seed_scenario(session)
        body = client.get("/api/history/entries").json()
        assert [e["id"] for e in body] == [ids["delete"], ids["create"], ids["update"]]
        assert body[0]["label"] == "user #9"

    def test_filter_options(self, client: TestClient, session: Session) -> None:
        _seed_scenario(session)
        body = client.get("/api/history/filters", params={"entityType": "invoice"}).json()
        assert [o["value"] for o in body["entityTypes"]] == ["invoice", "user"]
        assert [o["label"] for o in body["actions"]] == ["Create", "Delete", "Update"]

    def test_detail(self, client: TestClient, session: Session) -> None:
        ids = _seed_scenario(session)
        resp = client.get(f"/api/history/{ids['update']}", params={"tz": "UTC"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["changes"] == [
            {"field": "status", "before": None, "after": "paid", "isAddition": True}
        ]
        assert body["timestamp"] == "Oct 15, 2026, 10:00:00 AM"

    def test_detail_not_found(self, client: TestClient) -> None:
        resp = client.get("/api/history/999")
        assert resp.status_code == 404

    def test_entity_timeline(self, client: TestClient, session: Session) -> None:
        _seed_scenario(session)
        body = client.get("/api/history/entity/invoice/1").json()
        assert body["total"] == 2
        body = client.get("/api/history/entity/invoice/404").json()
        assert body["total"] == 0
        assert body["groups"] == []


class TestRecordRoute:
    def test_record_diff_list(self, client: TestClient) -> None:
        resp = client.post(
            "/api/history",
            json={
                "entityType": "invoice",
                "entityId": 17,
                "entityName": "INV-0017",
                "action": "update",
                "changes": [{"field": "status", "from": "draft", "to": "paid"}],
                "userId": 1,
                "userName": "admin",
            },
        )
        assert resp.status_code == 201
        entry_id = resp.json()["id"]
        detail = client.get(f"/api/history/{entry_id}").json()
        assert detail["changes"] == [
            {"field": "status", "before": "draft", "after": "paid", "isAddition": False}
        ]
        assert detail["entityId"] == "17"

    def test_record_free_text(self, client: TestClient) -> None:
        resp = client.post(
            "/api/history",
            json={"entityType": "company", "entityId": "3", "action": "cancel", "changes": "Closed"},
        )
        assert resp.status_code == 201
        detail = client.get(f"/api/history/{resp.json()['id']}").json()
        assert detail["changes"][0]["field"] == "details"
        assert detail["icon"] == "x"

    def test_record_unknown_action_kept(self, client: TestClient) -> None:
        resp = client.post(
            "/api/history",
            json={"entityType": "invoice", "entityId": 1, "action": "archive"},
        )
        assert resp.status_code == 201
        detail = client.get(f"/api/history/{resp.json()['id']}").json()
        assert detail["action"] == "archive"
        assert detail["actionKind"] == "update"

    def test_record_missing_field(self, client: TestClient) -> None:
        resp = client.post("/api/history", json={"entityType": "invoice", "action": "create"})
        assert resp.status_code == 422

    def test_record_blank_entity_id(self, client: TestClient) -> None:
        resp = client.post(
            "/api/history",
            json={"entityType": "invoice", "entityId": "  ", "action": "create"},
        )
        assert resp.status_code == 422
        assert "entityId" in resp.json()["detail"]

    def test_record_numeric_diff_values(self, client: TestClient) -> None:
        resp = client.post(
            "/api/history",
            json={
                "entityType": "invoice",
                "entityId": 5,
                "action": "update",
                "changes": [{"field": "amount", "from": 100, "to": 200}],
            },
        )
        assert resp.status_code == 201
        detail = client.get(f"/api/history/{resp.json()['id']}").json()
        assert detail["changes"] == [
            {"field": "amount", "before": "100", "after": "200", "isAddition": False}
        ]
