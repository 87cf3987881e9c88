import json

import pytest
from starlette import status


def _mount_all(app):
    """Mounts all routers for global checks."""
    from conftest import mount_router
    routers = [
        "routes.health_routes",
        "routes.homes_routes",
        "routes.users_routes",
        "routes.process_routes",
    ]
    for r in routers:
        mount_router(app, r)
    return app


# 1  Robustness and Error Handling
def test_invalid_route_returns_404(client, app):
    """Backend should return 404 for non-existent routes."""
    _mount_all(app)
    r = client.get("/api/thisdoesnotexist")
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_invalid_input_returns_400(client, app):
    _mount_all(app)
    r = client.post("/api/admin/users/create", json={"username": "x", "password": "", "role": ""})
    assert r.status_code == 400


# 2  Content-Type correctness
def test_content_type_is_json(client, app):
    _mount_all(app)
    for ep in ["/api/health", "/api/admin/homes", "/api/admin/roles", "/api/admin/users"]:
        r = client.get(ep)
        assert r.status_code == 200
        assert r.headers.get("Content-Type", "").startswith("application/json")
        json.loads(r.text)


# 3  Method not allowed -> 404/405
@pytest.mark.parametrize("endpoint, method", [
    ("/api/health", "DELETE"),
    ("/api/admin/homes", "POST"),
    ("/api/admin/process-behaviours", "GET"),
    ("/api/admin/users/create", "GET"),
])
def test_method_not_allowed_or_404(client, app, endpoint, method):
    _mount_all(app)
    response = getattr(client, method.lower())(endpoint)
    assert response.status_code in {
        status.HTTP_405_METHOD_NOT_ALLOWED,
        status.HTTP_404_NOT_FOUND
    }, f"Endpoint {endpoint} accepted {method}, expected 404/405 but got {response.status_code}"


# 4  Application wiring
def test_app_registers_all_routers(monkeypatch):
    for name in ["DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME"]:
        monkeypatch.delenv(name, raising=False)
    from app import app as application
    paths = {getattr(route, "path", None) for route in application.routes}
    assert {
        "/api/health",
        "/healthz",
        "/api/admin/homes",
        "/api/admin/roles",
        "/api/admin/users",
        "/api/admin/users/create",
        "/api/admin/process-behaviours",
    } <= paths
