import inspect
from pathlib import Path

from fastapi.testclient import TestClient
import pytest

from app.bootstrap import bootstrap
from app.config import load_settings
from app import main as main_module
from app.main import create_app


@pytest.fixture()
def client(tmp_path: Path):
    settings = load_settings(
        {
            "ENV": "test",
            "SQLITE_PATH": str(tmp_path / "challenge-api.db"),
            "SECRET_KEY": "test-secret-with-adequate-length-123456",
        }
    )
    database = bootstrap(settings)
    try:
        yield TestClient(create_app(database, settings))
    finally:
        database.dispose()


def _admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"login": "admin", "password": "changeme"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_healthcheck_reports_backend(client):
    for path in ("/health", "/api/health"):
        response = client.get(path)
        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "ok"
        assert payload["db_backend"] == "sqlite"


def test_seeded_admin_can_log_in(client):
    response = client.post("/api/auth/login", json={"login": "admin", "password": "changeme"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["login"] == "admin"
    assert payload["token_type"] == "bearer"
    assert payload["access_token"]


def test_login_rejects_wrong_password(client):
    response = client.post("/api/auth/login", json={"login": "admin", "password": "nope"})
    assert response.status_code == 401

    response = client.post("/api/auth/login", json={"login": "ghost", "password": "changeme"})
    assert response.status_code == 401


def test_listing_users_requires_auth(client):
    assert client.get("/api/users").status_code == 401
    assert client.get("/api/users", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_listing_users_hides_passwords(client):
    response = client.get("/api/users", headers=_admin_headers(client))

    assert response.status_code == 200
    users = response.json()
    assert [user["login"] for user in users] == ["admin"]
    assert "password" not in users[0]
    assert users[0]["firstname"] == "Admin"
    assert users[0]["lastname"] == "Istrator"


def test_create_user_and_fetch_it(client):
    headers = _admin_headers(client)

    response = client.post(
        "/api/users",
        headers=headers,
        json={"firstname": "Jane", "lastname": "Doe", "login": "jane", "password": "correct-horse"},
    )
    assert response.status_code == 201
    created = response.json()
    assert created["login"] == "jane"

    response = client.get(f"/api/users/{created['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["lastname"] == "Doe"

    login = client.post("/api/auth/login", json={"login": "jane", "password": "correct-horse"})
    assert login.status_code == 200


def test_duplicate_login_is_rejected(client):
    response = client.post(
        "/api/users",
        headers=_admin_headers(client),
        json={"login": "admin", "password": "another-password"},
    )

    assert response.status_code == 409


def test_unknown_user_returns_404(client):
    response = client.get("/api/users/999", headers=_admin_headers(client))
    assert response.status_code == 404


def test_metrics_exposes_request_counter(client):
    client.get("/health")

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "requests_total" in response.text


def test_admin_password_with_surrounding_spaces_logs_in(tmp_path: Path):
    settings = load_settings(
        {
            "ENV": "test",
            "SQLITE_PATH": str(tmp_path / "challenge-spaced.db"),
            "SECRET_KEY": "test-secret-with-adequate-length-123456",
            "ADMIN_PASSWORD": " pass phrase ",
        }
    )
    database = bootstrap(settings)
    try:
        client = TestClient(create_app(database, settings))

        response = client.post("/api/auth/login", json={"login": "admin", "password": " pass phrase "})
        assert response.status_code == 200

        response = client.post("/api/auth/login", json={"login": "admin", "password": "pass phrase"})
        assert response.status_code == 401
    finally:
        database.dispose()


def test_created_user_password_is_kept_verbatim(client):
    response = client.post(
        "/api/users",
        headers=_admin_headers(client),
        json={"login": "  spacey  ", "password": "  padded secret  "},
    )
    assert response.status_code == 201
    assert response.json()["login"] == "spacey"

    assert client.post("/api/auth/login", json={"login": "spacey", "password": "  padded secret  "}).status_code == 200
    assert client.post("/api/auth/login", json={"login": "spacey", "password": "padded secret"}).status_code == 401


def test_blocking_handlers_run_in_threadpool():
    for handler in (
        main_module.api_healthcheck,
        main_module.login,
        main_module.list_users,
        main_module.get_user,
        main_module.create_user,
    ):
        assert not inspect.iscoroutinefunction(handler)
