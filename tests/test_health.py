from app.db.session import Database
from app.core.deps import get_database
from app.main import app as fastapi_app


def test_health_ok(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_db_ping_ok(client):
    res = client.get("/db-ping")
    assert res.status_code == 200
    assert res.json() == {"db": "ok", "value": 1}


def test_db_ping_store_unavailable_is_503(client, tmp_path):
    broken = Database(f"sqlite:///{tmp_path}/missing/dir/app.db").open()
    fastapi_app.dependency_overrides[get_database] = lambda: broken
    try:
        res = client.get("/db-ping")
    finally:
        fastapi_app.dependency_overrides.clear()
        broken.close()

    assert res.status_code == 503
    assert res.json()["detail"] == "Store unavailable"
