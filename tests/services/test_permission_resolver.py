from datetime import timedelta

import pytest

from orgauthz.models.base_model import Status
from orgauthz.models.role_binding import Scope
from orgauthz.repositories import OrganizationRepository, TeamRepository
from orgauthz.services.binding_service import BindingService
from orgauthz.services.organization_service import OrganizationService
from orgauthz.services.permission_resolver import PermissionCheck, PermissionResolver
from orgauthz.services.role_registry_service import RoleRegistryService
from orgauthz.utils.time_utils import utcnow


def _create_organization(db, name="acme"):
    organization = OrganizationRepository.create(db, name=name)
    db.commit()
    return organization


def _create_team(db, organization_id, name="core"):
    team = TeamRepository.create(db, organization_id=organization_id, name=name)
    db.commit()
    return team


def _role_with(db, name, permission_names, organization_id=None, level=0):
    registry = RoleRegistryService(db)
    ids = []
    for permission_name in permission_names:
        try:
            ids.append(registry.get_permission_by_name(permission_name).id)
        except ValueError:
            ids.append(registry.create_permission(permission_name).id)
    return registry.create_role(name, organization_id=organization_id, level=level, permission_ids=ids)


@pytest.fixture
def resolver(db):
    return PermissionResolver(db)


@pytest.fixture
def bindings(db):
    return BindingService(db)


def test_unknown_user_is_denied_without_error(resolver):
    result = resolver.check_permission(42, "teams.read")

    assert isinstance(result, PermissionCheck)
    assert result.allowed is False
    assert result.source is None
    assert not result


def test_global_binding_grants_with_global_source(db, resolver, bindings):
    role = _role_with(db, "reader", ["teams.read"])
    bindings.bind(Scope.GLOBAL, 1, role.id)

    result = resolver.check_permission(1, "teams.read")

    assert result.allowed is True
    assert result.source == "global"
    assert result.roles == ["reader"]
    assert resolver.has_permission(1, "teams.read")
    assert not resolver.has_permission(1, "teams.delete")


def test_organization_role_grants_only_when_organization_is_given(db, resolver, bindings):
    organization = _create_organization(db)
    role = _role_with(db, "org-reader", ["teams.read"], organization_id=organization.id)
    bindings.bind(Scope.ORGANIZATION, 1, role.id, scope_id=organization.id)

    scoped = resolver.check_permission(1, "teams.read", organization_id=organization.id)
    unscoped = resolver.check_permission(1, "teams.read")

    assert scoped.allowed is True
    assert scoped.source == "organization"
    assert unscoped.allowed is False


def test_organization_binding_does_not_leak_into_other_organization(db, resolver, bindings):
    first = _create_organization(db, "first")
    second = _create_organization(db, "second")
    role = _role_with(db, "reader", ["teams.read"])
    bindings.bind(Scope.ORGANIZATION, 1, role.id, scope_id=first.id)

    assert resolver.check_permission(1, "teams.read", organization_id=first.id).allowed
    assert not resolver.check_permission(1, "teams.read", organization_id=second.id).allowed


def test_global_scope_takes_precedence(db, resolver, bindings):
    organization = _create_organization(db)
    global_role = _role_with(db, "global-reader", ["teams.read"])
    org_role = _role_with(db, "org-reader", ["teams.read"], organization_id=organization.id)
    bindings.bind(Scope.GLOBAL, 1, global_role.id)
    bindings.bind(Scope.ORGANIZATION, 1, org_role.id, scope_id=organization.id)

    result = resolver.check_permission(1, "teams.read", organization_id=organization.id)

    assert result.source == "global"
    assert result.roles == ["global-reader"]


def test_team_scope_is_consulted_last(db, resolver, bindings):
    organization = _create_organization(db)
    team = _create_team(db, organization.id)
    role = _role_with(db, "team-writer", ["teams.update"])
    bindings.bind(Scope.TEAM, 1, role.id, scope_id=team.id)

    result = resolver.check_permission(1, "teams.update", organization_id=organization.id, team_id=team.id)

    assert result.allowed is True
    assert result.source == "team"
    assert not resolver.check_permission(1, "teams.update", organization_id=organization.id).allowed


def test_wildcard_role_satisfies_any_permission_at_its_scope(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    bindings.bind(Scope.ORGANIZATION, 1, seeded["admin"].id, scope_id=organization.id)

    for name in ("teams.create", "users.delete", "anything.at_all"):
        result = resolver.check_permission(1, name, organization_id=organization.id)
        assert result.allowed is True
        assert result.source == "organization"

    assert not resolver.check_permission(1, "teams.create").allowed


def test_membership_role_counts_at_organization_scope(db, resolver, seeded):
    organization = _create_organization(db)
    OrganizationService(db).add_member(organization.id, 5)

    result = resolver.check_permission(5, "teams.read", organization_id=organization.id)

    assert result.allowed is True
    assert result.source == "organization"
    assert result.roles == ["member"]
    assert not resolver.check_permission(5, "teams.delete", organization_id=organization.id).allowed


def test_team_pinned_membership_counts_at_team_scope(db, resolver, seeded):
    organization = _create_organization(db)
    team = _create_team(db, organization.id)
    other_team = _create_team(db, organization.id, "other")
    OrganizationService(db).add_member(organization.id, 5, team_id=team.id)

    assert resolver.has_team_permission(5, team.id, "teams.read")
    assert not resolver.has_team_permission(5, other_team.id, "teams.read")


def test_removed_member_loses_membership_permissions(db, resolver, seeded):
    organization = _create_organization(db)
    service = OrganizationService(db)
    service.add_member(organization.id, 5)

    service.remove_member(organization.id, 5)

    assert not resolver.check_permission(5, "teams.read", organization_id=organization.id).allowed


def test_expired_binding_grants_nothing(db, resolver, bindings):
    role = _role_with(db, "reader", ["teams.read"])
    bindings.bind(Scope.GLOBAL, 1, role.id, expires_at=utcnow() - timedelta(seconds=1))

    assert not resolver.check_permission(1, "teams.read").allowed


def test_future_expiry_still_grants(db, resolver, bindings):
    role = _role_with(db, "reader", ["teams.read"])
    bindings.bind(Scope.GLOBAL, 1, role.id, expires_at=utcnow() + timedelta(hours=1))

    assert resolver.check_permission(1, "teams.read").allowed


def test_disabled_role_grants_nothing(db, resolver, bindings):
    role = _role_with(db, "reader", ["teams.read"])
    bindings.bind(Scope.GLOBAL, 1, role.id)

    RoleRegistryService(db).update_role(role.id, status=Status.DISABLED)

    assert not resolver.check_permission(1, "teams.read").allowed


def test_disabled_permission_grants_nothing(db, resolver, bindings):
    role = _role_with(db, "reader", ["docs.read"])
    bindings.bind(Scope.GLOBAL, 1, role.id)
    registry = RoleRegistryService(db)

    registry.update_permission(registry.get_permission_by_name("docs.read").id, status=Status.DISABLED)

    assert not resolver.check_permission(1, "docs.read").allowed


@pytest.mark.parametrize("name", ["", "   ", None])
def test_empty_permission_name_is_denied(db, resolver, bindings, seeded, name):
    bindings.bind(Scope.GLOBAL, 1, seeded["super_admin"].id)

    assert resolver.check_permission(1, name).allowed is False


def test_super_admin_overrides_every_check(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    team = _create_team(db, organization.id)
    bindings.bind(Scope.GLOBAL, 1, seeded["super_admin"].id)

    result = resolver.check_permission(1, "something.unheard_of", organization_id=organization.id, team_id=team.id)

    assert result.allowed is True
    assert result.source == "global"
    assert result.roles == ["super_admin"]
    assert resolver.has_organization_permission(1, organization.id, "teams.delete")
    assert resolver.has_team_permission(1, team.id, "teams.delete")
    assert resolver.require_level(1, 10 ** 6)
    assert resolver.has_role(1, "no-such-role")


def test_super_admin_bound_at_organization_scope_is_not_an_override(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    bindings.bind(Scope.ORGANIZATION, 1, seeded["super_admin"].id, scope_id=organization.id)

    assert not resolver.is_super_admin(1)
    assert not resolver.check_permission(1, "teams.read").allowed
    assert not resolver.require_level(1, 10 ** 6)


def test_expired_super_admin_binding_is_not_an_override(db, resolver, bindings, seeded):
    bindings.bind(Scope.GLOBAL, 1, seeded["super_admin"].id, expires_at=utcnow() - timedelta(minutes=5))

    assert not resolver.is_super_admin(1)
    assert not resolver.check_permission(1, "teams.read").allowed


def test_scoped_helpers_do_not_consult_global_roles(db, resolver, bindings):
    organization = _create_organization(db)
    role = _role_with(db, "reader", ["teams.read"])
    bindings.bind(Scope.GLOBAL, 1, role.id)

    assert resolver.has_permission(1, "teams.read")
    assert not resolver.has_organization_permission(1, organization.id, "teams.read")


def test_all_permissions_is_per_scope(db, resolver, bindings):
    organization = _create_organization(db)
    team = _create_team(db, organization.id)
    bindings.bind(Scope.GLOBAL, 1, _role_with(db, "g", ["users.read", "teams.read"]).id)
    bindings.bind(Scope.ORGANIZATION, 1, _role_with(db, "o", ["teams.read", "teams.update"]).id, scope_id=organization.id)
    bindings.bind(Scope.TEAM, 1, _role_with(db, "t", ["teams.delete"]).id, scope_id=team.id)

    assert resolver.all_permissions(1) == {"users.read", "teams.read"}
    assert resolver.all_permissions(1, organization_id=organization.id) == {"teams.read", "teams.update"}
    assert resolver.all_permissions(1, team_id=team.id) == {"teams.delete"}


def test_all_permissions_reports_wildcard(db, resolver, bindings, seeded):
    bindings.bind(Scope.GLOBAL, 1, seeded["admin"].id)

    assert resolver.all_permissions(1) == {"*"}


def test_max_level_counts_bindings_for_the_requested_scope(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    team = _create_team(db, organization.id)

    assert resolver.max_level(1) == 0

    bindings.bind(Scope.GLOBAL, 1, seeded["user"].id)
    assert resolver.max_level(1) == 100

    bindings.bind(Scope.TEAM, 1, seeded["moderator"].id, scope_id=team.id)
    assert resolver.max_level(1) == 100
    assert resolver.max_level(1, organization_id=organization.id) == 100
    assert resolver.max_level(1, team_id=team.id) == 500

    assert not resolver.require_level(1, 500)
    assert resolver.require_level(1, 500, team_id=team.id)
    assert not resolver.require_level(1, 501, team_id=team.id)


def test_max_level_ignores_other_organizations(db, resolver, bindings, seeded):
    first = _create_organization(db, "first")
    second = _create_organization(db, "second")
    bindings.bind(Scope.ORGANIZATION, 1, seeded["moderator"].id, scope_id=first.id)

    assert resolver.max_level(1, organization_id=first.id) == 500
    assert resolver.max_level(1, organization_id=second.id) == 0


def test_membership_role_does_not_raise_level(db, resolver, seeded):
    OrganizationService(db).create_organization("acme", user_id=42)

    assert resolver.max_level(42) == 0
    assert not resolver.require_level(42, 900)
    assert not resolver.require_level(42, 1)


def test_soft_deleted_organization_grants_nothing(db, resolver, bindings, seeded):
    service = OrganizationService(db)
    organization = service.create_organization("acme", user_id=3)
    bindings.bind(Scope.ORGANIZATION, 4, seeded["moderator"].id, scope_id=organization.id)

    assert resolver.check_permission(3, "teams.create", organization_id=organization.id).allowed
    assert resolver.max_level(4, organization_id=organization.id) == 500

    service.delete_organization(organization.id, deleted_by=3)

    assert not resolver.check_permission(3, "teams.create", organization_id=organization.id).allowed
    assert not resolver.has_organization_permission(4, organization.id, "teams.read")
    assert resolver.all_permissions(3, organization_id=organization.id) == set()
    assert resolver.max_level(4, organization_id=organization.id) == 0


def test_soft_deleted_team_grants_nothing(db, resolver, bindings, seeded):
    service = OrganizationService(db)
    organization = service.create_organization("acme", user_id=3)
    team = service.create_team(organization.id, "core")
    service.add_member(organization.id, 5, team_id=team.id)
    bindings.bind(Scope.TEAM, 6, seeded["moderator"].id, scope_id=team.id)

    assert resolver.has_team_permission(5, team.id, "teams.read")
    assert resolver.check_permission(6, "teams.read", organization_id=organization.id, team_id=team.id).source == "team"

    service.delete_team(team.id, deleted_by=3)

    assert not resolver.has_team_permission(5, team.id, "teams.read")
    assert not resolver.has_team_permission(6, team.id, "teams.read")
    assert resolver.max_level(6, team_id=team.id) == 0


def test_team_in_deleted_organization_grants_nothing(db, resolver, bindings, seeded):
    service = OrganizationService(db)
    organization = service.create_organization("acme", user_id=3)
    team = service.create_team(organization.id, "core")
    bindings.bind(Scope.TEAM, 6, seeded["moderator"].id, scope_id=team.id)

    service.delete_organization(organization.id, deleted_by=3)

    assert not resolver.has_team_permission(6, team.id, "teams.read")
    assert resolver.max_level(6, team_id=team.id) == 0


def test_disabled_organization_grants_nothing(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    bindings.bind(Scope.ORGANIZATION, 4, seeded["moderator"].id, scope_id=organization.id)

    organization.status = Status.DISABLED
    db.commit()

    assert not resolver.has_organization_permission(4, organization.id, "teams.read")


def test_has_role_checks_global_bindings_only(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    bindings.bind(Scope.ORGANIZATION, 1, seeded["moderator"].id, scope_id=organization.id)
    bindings.bind(Scope.GLOBAL, 1, seeded["user"].id)

    assert resolver.has_role(1, "user")
    assert not resolver.has_role(1, "moderator")


def test_permissions_summary(db, resolver, bindings, seeded):
    organization = _create_organization(db)
    bindings.bind(Scope.GLOBAL, 1, seeded["user"].id)
    bindings.bind(Scope.ORGANIZATION, 1, seeded["moderator"].id, scope_id=organization.id)

    summary = resolver.permissions_summary(1)

    assert summary["user_id"] == 1
    assert summary["is_super_admin"] is False
    assert [r["role"] for r in summary["global_roles"]] == ["user"]
    assert summary["organization_roles"][0]["role"] == "moderator"
    assert summary["organization_roles"][0]["organization_id"] == organization.id
    assert summary["team_roles"] == []
    assert "teams.read" in summary["global_permissions"]
    assert summary["max_level"] == 100
