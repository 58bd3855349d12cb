import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from orgauthz.auth import Permission, Role, require_level, require_permission, require_role, require_super_admin
from orgauthz.db.database import get_db
from orgauthz.models.role_binding import Scope
from orgauthz.services.binding_service import BindingService
from orgauthz.services.organization_service import OrganizationService


def _headers(user_id):
    return {"X-User-ID": str(user_id)}


@pytest.fixture
def client(db, seeded):
    app = FastAPI()

    @app.get("/organizations/{organization_id}/teams")
    def list_teams(organization_id: int, check=Depends(require_permission(Permission.READ_TEAMS))):
        return {"source": check.source}

    @app.post("/organizations/{organization_id}/teams")
    def create_team(organization_id: int, _=Depends(require_permission("teams.create"))):
        return {"ok": True}

    @app.get("/moderation")
    def moderation(_=Depends(require_role(Role.MODERATOR))):
        return {"ok": True}

    @app.get("/stats")
    def stats(_=Depends(require_level(500))):
        return {"ok": True}

    @app.get("/organizations/{organization_id}/stats")
    def organization_stats(organization_id: int, _=Depends(require_level(500))):
        return {"ok": True}

    @app.get("/root")
    def root(_=Depends(require_super_admin())):
        return {"ok": True}

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def test_permission_is_scoped_by_path_organization(client, db):
    organization = OrganizationService(db).create_organization("acme", user_id=1)
    other = OrganizationService(db).create_organization("other", user_id=2)
    OrganizationService(db).add_member(organization.id, 3)

    response = client.get(f"/organizations/{organization.id}/teams", headers=_headers(3))
    assert response.status_code == 200
    assert response.json() == {"source": "organization"}

    assert client.get(f"/organizations/{other.id}/teams", headers=_headers(3)).status_code == 403


def test_permission_denied_message(client, db):
    organization = OrganizationService(db).create_organization("acme", user_id=1)
    OrganizationService(db).add_member(organization.id, 3)

    response = client.post(f"/organizations/{organization.id}/teams", headers=_headers(3))

    assert response.status_code == 403
    assert response.json()["detail"] == "Permission denied. Required permission: teams.create"


def test_missing_identity_is_unauthorized(client):
    assert client.get("/stats").status_code == 401


def test_require_role(client, db, seeded):
    assert client.get("/moderation", headers=_headers(4)).status_code == 403

    BindingService(db).bind(Scope.GLOBAL, 4, seeded["moderator"].id)

    assert client.get("/moderation", headers=_headers(4)).status_code == 200


def test_require_level(client, db, seeded):
    BindingService(db).bind(Scope.GLOBAL, 4, seeded["user"].id)
    assert client.get("/stats", headers=_headers(4)).status_code == 403

    BindingService(db).bind(Scope.GLOBAL, 4, seeded["moderator"].id)
    assert client.get("/stats", headers=_headers(4)).status_code == 200


def test_require_level_uses_path_organization(client, db, seeded):
    organization = OrganizationService(db).create_organization("acme", user_id=1)
    other = OrganizationService(db).create_organization("other", user_id=2)

    assert client.get(f"/organizations/{organization.id}/stats", headers=_headers(1)).status_code == 403

    BindingService(db).bind(Scope.ORGANIZATION, 4, seeded["moderator"].id, scope_id=organization.id)

    assert client.get(f"/organizations/{organization.id}/stats", headers=_headers(4)).status_code == 200
    assert client.get(f"/organizations/{other.id}/stats", headers=_headers(4)).status_code == 403
    assert client.get("/stats", headers=_headers(4)).status_code == 403


def test_super_admin_passes_everything(client, db, seeded):
    organization = OrganizationService(db).create_organization("acme", user_id=1)
    BindingService(db).bind(Scope.GLOBAL, 9, seeded["super_admin"].id)

    assert client.get("/root", headers=_headers(9)).status_code == 200
    assert client.get("/moderation", headers=_headers(9)).status_code == 200
    assert client.get("/stats", headers=_headers(9)).status_code == 200
    assert client.post(f"/organizations/{organization.id}/teams", headers=_headers(9)).status_code == 200

    assert client.get("/root", headers=_headers(1)).status_code == 403
