import pytest
from fastapi.testclient import TestClient

from orgauthz.main import app
from orgauthz.db.database import get_db
from orgauthz.models.role_binding import Scope
from orgauthz.services.binding_service import BindingService
from orgauthz.services.organization_service import OrganizationService


def _headers(user_id=1):
    return {"X-User-ID": str(user_id)}


@pytest.fixture
def client(db, seeded):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db, seeded):
    """User 1 holds the global admin role."""
    BindingService(db).bind(Scope.GLOBAL, 1, seeded["admin"].id)
    return 1


def test_check_denied_is_not_an_error(client):
    response = client.post("/authz/check", json={"permission": "teams.read"}, headers=_headers(9))

    assert response.status_code == 200
    assert response.json() == {
        "allowed": False,
        "user_id": 9,
        "permission": "teams.read",
        "source": None,
        "roles": [],
    }


def test_check_reports_source_and_roles(client, db):
    organization = OrganizationService(db).create_organization("acme", user_id=3)

    response = client.post(
        "/authz/check",
        json={"permission": "teams.create", "organization_id": organization.id},
        headers=_headers(3),
    )

    body = response.json()
    assert body["allowed"] is True
    assert body["source"] == "organization"
    assert body["roles"] == ["admin"]


def test_my_permissions(client, db, seeded):
    BindingService(db).bind(Scope.GLOBAL, 4, seeded["user"].id)

    response = client.get("/authz/me/permissions", headers=_headers(4))

    assert response.status_code == 200
    permissions = response.json()["permissions"]
    assert permissions == sorted(permissions)
    assert "teams.read" in permissions
    assert "teams.create" not in permissions


def test_summary_requires_users_read(client, admin):
    assert client.get("/authz/users/2/summary", headers=_headers(2)).status_code == 403

    response = client.get("/authz/users/1/summary", headers=_headers(admin))

    assert response.status_code == 200
    assert response.json()["global_roles"][0]["role"] == "admin"


def test_bind_and_unbind_role(client, db, admin, seeded):
    response = client.post(
        "/authz/users/7/roles",
        json={"role_id": seeded["moderator"].id},
        headers=_headers(admin),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["scope"] == "global"
    assert body["scope_id"] is None
    assert body["assigned_by"] == admin
    assert BindingService(db).is_bound(Scope.GLOBAL, 7, seeded["moderator"].id)

    conflict = client.post(
        "/authz/users/7/roles",
        json={"role_id": seeded["moderator"].id},
        headers=_headers(admin),
    )
    assert conflict.status_code == 409
    assert conflict.json()["kind"] == "already_bound"

    removed = client.delete(f"/authz/users/7/roles/{seeded['moderator'].id}", headers=_headers(admin))
    assert removed.status_code == 204
    assert not BindingService(db).is_bound(Scope.GLOBAL, 7, seeded["moderator"].id)

    again = client.delete(f"/authz/users/7/roles/{seeded['moderator'].id}", headers=_headers(admin))
    assert again.status_code == 204


def test_bind_organization_scope(client, db, admin, seeded):
    organization = OrganizationService(db).create_organization("acme", user_id=2)

    response = client.post(
        "/authz/users/7/roles",
        json={"role_id": seeded["moderator"].id, "scope": "organization", "scope_id": organization.id},
        headers=_headers(admin),
    )

    assert response.status_code == 201
    assert response.json()["scope_id"] == organization.id


def test_bind_unknown_role(client, admin):
    response = client.post("/authz/users/7/roles", json={"role_id": 999}, headers=_headers(admin))

    assert response.status_code == 404
    assert response.json()["kind"] == "role_not_found"


def test_bind_requires_users_update(client, seeded):
    response = client.post("/authz/users/7/roles", json={"role_id": seeded["user"].id}, headers=_headers(5))

    assert response.status_code == 403
