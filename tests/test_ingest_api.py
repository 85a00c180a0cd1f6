import json
import os

# Lightweight DB setup; each test swaps in its own in-memory store.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:////tmp/roadwatch_test_ingest.db")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_CLEANUP_INCOMPLETE", "false")
os.environ.setdefault("ROADWATCH_AUTH_DISABLED", "true")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from roadwatch.core.errors import StorageError
from roadwatch.main import create_app
from roadwatch.services.dedup import DuplicateSuppressor
from roadwatch.services.normalizer import EventNormalizer
from roadwatch.storage import SqlDocumentStore


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _FailingStore(SqlDocumentStore):
    def insert(self, collection, record):
        raise StorageError("disk full", collection=collection)


def _memory_engine():
    return create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )


def _client(store=None, clock=None) -> TestClient:
    app = create_app()
    app.state.document_store = store or SqlDocumentStore(_memory_engine())
    if clock is not None:
        app.state.event_normalizer = EventNormalizer(DuplicateSuppressor(clock=clock))
    return TestClient(app)


def _payload(**overrides) -> dict:
    payload = {
        "sessionId": "sess-1",
        "device_id": "dev-1",
        "timestamp": "2024-03-05T10:20:30Z",
        "objectType": "car",
        "direction": "left",
        "gps_location": "12.9,77.6",
        "gps_latitude": 12.9,
        "gps_longitude": 77.6,
        "user_id": "user-1",
        "is_public": True,
    }
    payload.update(overrides)
    return payload


def test_log_stored_in_category_collection():
    with _client() as client:
        resp = client.post("/logs", json=_payload())
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "stored"
        assert body["collection"] == "vehicles"
        assert body["message"] == "Log stored successfully in vehicles"
        store = client.app.state.document_store
        doc = store.find_one("vehicles", {"sessionId": "sess-1"})
        assert doc["timestamp"] == "2024-03-05 10:20:30"
        assert doc["isPublic"] is True


def test_duplicate_log_is_skipped():
    with _client() as client:
        client.post("/logs", json=_payload())
        resp = client.post("/logs", json=_payload())
        assert resp.status_code == 200
        assert resp.json() == {"status": "skipped", "message": "Duplicate log detected, ignoring"}
        assert client.app.state.document_store.count("vehicles") == 1


def test_repeat_after_window_is_stored_again():
    clock = _Clock()
    with _client(clock=clock) as client:
        assert client.post("/tracking", json=_payload()).json()["status"] == "stored"
        clock.now += 5
        assert client.post("/tracking", json=_payload()).json()["status"] == "skipped"
        clock.now += 10
        assert client.post("/tracking", json=_payload()).json()["status"] == "stored"
        assert client.app.state.document_store.count("vehicles") == 2


def test_bus_on_logs_is_handled_separately():
    with _client() as client:
        resp = client.post("/logs", json=_payload(objectType="bus"))
        assert resp.json() == {"status": "skipped", "message": "Bus logs are handled separately"}
        assert client.app.state.document_store.count("buses") == 0


def test_bus_on_logs_merged_when_configured(monkeypatch):
    monkeypatch.setenv("BUS_LOG_POLICY", "merge")
    with _client() as client:
        resp = client.post("/logs", json=_payload(objectType="bus"))
        assert resp.json()["collection"] == "buses"


def test_tracking_requires_gps_and_user():
    with _client() as client:
        resp = client.post("/tracking", json=_payload(user_id=None))
        assert resp.status_code == 200
        assert resp.json() == {"status": "skipped", "message": "Missing GPS data or user ID, skipping"}
        resp = client.post("/tracking", json=_payload(gps_location="unknown,unknown"))
        assert resp.json()["status"] == "skipped"


def test_tracking_accepts_zero_coordinates():
    with _client() as client:
        resp = client.post(
            "/tracking",
            json=_payload(objectType="person", gps_location="0,0", gps_latitude=0, gps_longitude=0),
        )
        assert resp.json()["message"] == "Tracking data stored successfully"
        doc = client.app.state.document_store.find_one("others", {"sessionId": "sess-1"})
        assert doc["gpsLatitude"] == 0.0


def test_upload_image_form_is_never_deduplicated():
    with _client() as client:
        data = json.dumps(_payload(objectType="truck"))
        for _ in range(2):
            resp = client.post("/upload-image", data={"data": data})
            assert resp.status_code == 200
            assert resp.json()["message"] == "Image data stored successfully"
        assert client.app.state.document_store.count("vehicles") == 2


def test_upload_image_with_invalid_json_stores_defaults():
    with _client() as client:
        resp = client.post("/upload-image", data={"data": "{not json"})
        assert resp.status_code == 200
        doc = client.app.state.document_store.find_one("others", {"sessionId": "unknown"})
        assert doc["objectType"] == "unknown"


def test_bus_image_stores_image_and_tracking_record():
    with _client() as client:
        resp = client.post("/bus-image", json=_payload(imageData="aGVsbG8=", eventType="exit"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Bus image stored successfully"
        assert body["eventType"] == "exit"
        assert body["trackingStored"] is True
        store = client.app.state.document_store
        image = store.find_one("bus_images", {"sessionId": "sess-1"})
        assert image["imageData"] == "aGVsbG8="
        assert image["objectType"] == "bus"
        tracking = store.find_one("buses", {"sessionId": "sess-1"})
        assert tracking["direction"] == "outbound"


def test_bus_image_exact_repeat_is_skipped():
    with _client() as client:
        client.post("/bus-image", json=_payload(imageData="abc", eventType="entry"))
        resp = client.post("/bus-image", json=_payload(imageData="abc", eventType="entry"))
        assert resp.json()["message"] == "Bus image already exists"
        store = client.app.state.document_store
        assert store.count("bus_images") == 1
        assert store.count("buses") == 1


def test_bus_image_in_same_hour_stores_image_without_second_tracking_record():
    with _client() as client:
        client.post("/bus-image", json=_payload(imageData="abc"))
        resp = client.post("/bus-image", json=_payload(imageData="abc", timestamp="2024-03-05T10:25:00Z"))
        assert resp.json()["trackingStored"] is False
        store = client.app.state.document_store
        assert store.count("bus_images") == 2
        assert store.count("buses") == 1


def test_bus_image_requires_image_data():
    with _client() as client:
        resp = client.post("/bus-image", json=_payload())
        assert resp.status_code == 400
        assert resp.json() == {"error": "No image data provided"}


def test_bus_image_gate_runs_before_image_check():
    with _client() as client:
        resp = client.post("/bus-image", json=_payload(user_id=None))
        assert resp.status_code == 200
        assert resp.json()["status"] == "skipped"


def test_storage_failure_returns_generic_error():
    with _client(store=_FailingStore(_memory_engine())) as client:
        resp = client.post("/logs", json=_payload())
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to store log"}
        resp = client.post("/tracking", json=_payload(sessionId="sess-2"))
        assert resp.json() == {"error": "Failed to store tracking data"}


def test_oversized_json_rejected(monkeypatch):
    monkeypatch.setenv("MAX_JSON_BODY_BYTES", "2048")
    with _client() as client:
        resp = client.post("/logs", json=_payload(direction="x" * 4096))
        assert resp.status_code == 413


def test_root_and_test_db():
    with _client() as client:
        resp = client.get("/")
        assert resp.status_code == 200
        assert "Server is running" in resp.text
        client.post("/login", json={"email": "a@example.com"})
        resp = client.get("/test-db")
        body = resp.json()
        assert body["status"] == "success"
        assert body["dbConnection"] == "connected"
        assert body["userCount"] == 1
        assert body["users"][0]["email"] == "a@example.com"


def test_tracking_with_legacy_field_names():
    with _client() as client:
        legacy = {"session_id": "s1", "vehicle_type": "car", "position_x": 3, "position_y": 4}
        resp = client.post("/tracking", json=legacy)
        assert resp.json()["status"] == "skipped"
        assert client.app.state.document_store.count("vehicles") == 0

        legacy.update({"gps_latitude": 12.5, "gps_longitude": 77.1, "user_id": "u1"})
        resp = client.post("/tracking", json=legacy)
        assert resp.json()["status"] == "stored"
        doc = client.app.state.document_store.find_one("vehicles", {"sessionId": "s1"})
        assert doc["location"] == "3,4"
        assert doc["objectType"] == "car"
        assert doc["gpsLocation"] == "12.5,77.1"


class _FlakyStore(SqlDocumentStore):
    """Fails the next ``failures`` inserts into ``collections``, then recovers."""

    def __init__(self, engine, *, failures: int = 1, collections=None) -> None:
        super().__init__(engine)
        self.failures = failures
        self.collections = collections

    def insert(self, collection, record):
        if self.failures and (self.collections is None or collection in self.collections):
            self.failures -= 1
            raise StorageError("down", collection=collection)
        return super().insert(collection, record)


def test_resubmission_after_storage_failure_is_stored():
    with _client(store=_FlakyStore(_memory_engine(), failures=2)) as client:
        assert client.post("/tracking", json=_payload()).status_code == 500
        assert client.post("/logs", json=_payload(sessionId="sess-2")).status_code == 500
        resp = client.post("/tracking", json=_payload())
        assert resp.json()["message"] == "Tracking data stored successfully"
        resp = client.post("/logs", json=_payload(sessionId="sess-2"))
        assert resp.json()["status"] == "stored"
        assert client.app.state.document_store.count("vehicles") == 2


def test_bus_image_kept_when_tracking_entry_fails():
    store = _FlakyStore(_memory_engine(), failures=1, collections={"buses"})
    with _client(store=store) as client:
        resp = client.post("/bus-image", json=_payload(imageData="abc", eventType="entry"))
        assert resp.status_code == 200
        assert resp.json()["status"] == "stored"
        assert resp.json()["trackingStored"] is False
        assert store.count("bus_images") == 1
        assert store.count("buses") == 0
        suppressor = client.app.state.event_normalizer.suppressor
        assert "busimg-sess-1-dev-1-2024-03-05 10" not in suppressor

        resp = client.post("/bus-image", json=_payload(imageData="abc", timestamp="2024-03-05T10:40:00Z"))
        assert resp.json()["trackingStored"] is True
        assert store.count("buses") == 1
