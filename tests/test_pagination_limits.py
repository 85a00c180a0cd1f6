import os

# Lightweight DB setup
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:////tmp/roadwatch_test_pagination.db")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("ROADWATCH_AUTH_DISABLED", "true")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from roadwatch.main import create_app
from roadwatch.storage import SqlDocumentStore


def _client() -> TestClient:
    app = create_app()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    app.state.document_store = SqlDocumentStore(engine)
    return TestClient(app)


def _seed(store, collection: str, count: int, **extra) -> None:
    for i in range(count):
        doc = {"sessionId": "s1", "deviceId": "d1", "timestamp": f"2024-03-05 10:{i:02d}:00", "objectType": "car"}
        doc.update(extra)
        store.insert(collection, doc)


def test_page_size_capped(monkeypatch):
    monkeypatch.setenv("API_MAX_PAGE_SIZE", "5")
    with _client() as client:
        _seed(client.app.state.document_store, "vehicles", 12)
        resp = client.get("/api/v1/detections/vehicles?page_size=100")
        assert resp.status_code == 200
        assert len(resp.json()["items"]) == 5
        assert resp.headers.get("X-Page-Size") == "5"
        assert resp.headers.get("X-Total-Count") == "12"


def test_newest_first_and_second_page():
    with _client() as client:
        _seed(client.app.state.document_store, "vehicles", 3)
        resp = client.get("/api/v1/detections/Vehicle?page=2&page_size=2")
        items = resp.json()["items"]
        assert [item["timestamp"] for item in items] == ["2024-03-05 10:00:00"]
        assert resp.json()["category"] == "Vehicle"


def test_session_filter():
    with _client() as client:
        store = client.app.state.document_store
        _seed(store, "others", 2)
        _seed(store, "others", 1, sessionId="s2")
        resp = client.get("/api/v1/detections/others?session_id=s2")
        assert resp.json()["total"] == 1


def test_unknown_category_is_404():
    with _client() as client:
        resp = client.get("/api/v1/detections/users")
        assert resp.status_code == 404


def test_bus_images_list_omits_image_payload():
    with _client() as client:
        _seed(client.app.state.document_store, "bus_images", 2, imageData="abc", objectType="bus")
        resp = client.get("/api/v1/bus-images")
        assert resp.status_code == 200
        items = resp.json()["items"]
        assert len(items) == 2
        assert all("imageData" not in item for item in items)


def test_negative_page_rejected():
    with _client() as client:
        resp = client.get("/api/v1/detections/vehicles?page=-1")
        assert resp.status_code == 422
        resp = client.get("/api/v1/detections/vehicles?page_size=0")
        assert resp.status_code == 422
