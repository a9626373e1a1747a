from fastapi.testclient import TestClient

from database import Database
from main import create_app


def test_root(client):
    assert client.get("/").json() == {"message": "Gymwear API running"}


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "database": True}


def test_diagnostics_list_collections(client, db, user_id):
    data = client.get("/test").json()
    assert data["database"] == "✅ Connected & Working"
    assert data["stripe"] == "✅ Configured"
    assert "user" in data["collections"]


def test_health_without_database(settings):
    app = create_app(settings=settings, database=Database(url=None))
    # no lifespan: the database is never connected
    c = TestClient(app)
    res = c.get("/health")
    assert res.status_code == 503
    assert res.json()["database"] is False
    assert c.get("/test").json()["connection_status"] == "Not Connected"


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/nothing-here")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Not Found"}


def test_uploaded_files_are_served(client, settings, admin_headers):
    files = [("logo", ("logo.png", b"\x89PNG served", "image/png"))]
    url = client.post("/settings/logo", files=files, headers=admin_headers).json()["data"]["logo_url"]
    res = client.get(url)
    assert res.status_code == 200
    assert res.content == b"\x89PNG served"
