from datetime import timedelta

from orgauthz.models.base_model import Status
from orgauthz.models.organization_member import MemberStatus
from orgauthz.models.role_binding import Scope
from orgauthz.repositories import (
    BindingRepository,
    GrantRepository,
    MemberRepository,
    OrganizationRepository,
    PermissionRepository,
    RoleRepository,
    TeamRepository,
)
from orgauthz.utils.time_utils import utcnow


def _role(db, name, permission_names, level=0, organization_id=None):
    role = RoleRepository.create(db, name=name, level=level, organization_id=organization_id)
    for permission_name in permission_names:
        permission = PermissionRepository.get_by_name(db, permission_name) or PermissionRepository.create(
            db, name=permission_name
        )
        PermissionRepository.add_role_permission(db, role.id, permission.id)
    db.commit()
    return role


def test_binding_pairs_only_include_effective_bindings(db):
    now = utcnow()
    live = _role(db, "live", ["docs.read"])
    stale = _role(db, "stale", ["docs.write"])
    BindingRepository.create(db, Scope.GLOBAL, user_id=1, role_id=live.id)
    BindingRepository.create(db, Scope.GLOBAL, user_id=1, role_id=stale.id, expires_at=now - timedelta(seconds=1))
    db.commit()

    pairs = GrantRepository.role_permission_pairs(db, 1, Scope.GLOBAL, now)

    assert pairs == {("live", "docs.read")}


def test_membership_pairs_follow_scope(db):
    now = utcnow()
    organization = OrganizationRepository.create(db, name="acme")
    team = TeamRepository.create(db, organization_id=organization.id, name="core")
    role = _role(db, "member", ["teams.read"])
    MemberRepository.create(db, organization_id=organization.id, user_id=3, role_id=role.id, team_id=team.id)
    db.commit()

    assert GrantRepository.role_permission_pairs(db, 3, Scope.ORGANIZATION, now, organization.id) == {("member", "teams.read")}
    assert GrantRepository.role_permission_pairs(db, 3, Scope.TEAM, now, team.id) == {("member", "teams.read")}
    assert GrantRepository.role_permission_pairs(db, 3, Scope.GLOBAL, now) == set()


def test_disabled_membership_grants_nothing(db):
    now = utcnow()
    organization = OrganizationRepository.create(db, name="acme")
    role = _role(db, "member", ["teams.read"])
    MemberRepository.create(
        db, organization_id=organization.id, user_id=3, role_id=role.id, status=MemberStatus.DISABLED
    )
    db.commit()

    assert GrantRepository.role_permission_pairs(db, 3, Scope.ORGANIZATION, now, organization.id) == set()


def test_has_global_role_ignores_scoped_and_disabled(db):
    now = utcnow()
    organization = OrganizationRepository.create(db, name="acme")
    boss = _role(db, "boss", [])
    BindingRepository.create(db, Scope.ORGANIZATION, user_id=1, role_id=boss.id, scope_id=organization.id)
    db.commit()

    assert not GrantRepository.has_global_role(db, 1, "boss", now)

    BindingRepository.create(db, Scope.GLOBAL, user_id=1, role_id=boss.id)
    db.commit()
    assert GrantRepository.has_global_role(db, 1, "boss", now)

    RoleRepository.update(db, boss, status=Status.DISABLED)
    db.commit()
    assert not GrantRepository.has_global_role(db, 1, "boss", now)


def test_max_level_defaults_to_zero(db):
    assert GrantRepository.max_level(db, 1, utcnow()) == 0


def test_max_level_takes_highest_grant_in_scope(db):
    now = utcnow()
    organization = OrganizationRepository.create(db, name="acme")
    low = _role(db, "low", [], level=10)
    mid = _role(db, "mid", [], level=100)
    high = _role(db, "high", [], level=700)
    BindingRepository.create(db, Scope.GLOBAL, user_id=1, role_id=low.id)
    BindingRepository.create(db, Scope.ORGANIZATION, user_id=1, role_id=high.id, scope_id=organization.id)
    MemberRepository.create(db, organization_id=organization.id, user_id=1, role_id=mid.id)
    db.commit()

    assert GrantRepository.max_level(db, 1, now) == 10
    assert GrantRepository.max_level(db, 1, now, organization_id=organization.id) == 700


def test_max_level_ignores_memberships(db):
    now = utcnow()
    organization = OrganizationRepository.create(db, name="acme")
    boss = _role(db, "boss", [], level=900)
    MemberRepository.create(db, organization_id=organization.id, user_id=1, role_id=boss.id)
    db.commit()

    assert GrantRepository.max_level(db, 1, now) == 0
    assert GrantRepository.max_level(db, 1, now, organization_id=organization.id) == 0


def test_soft_deleted_scopes_grant_nothing(db):
    now = utcnow()
    organization = OrganizationRepository.create(db, name="acme")
    team = TeamRepository.create(db, organization_id=organization.id, name="core")
    role = _role(db, "reader", ["teams.read"], level=50)
    BindingRepository.create(db, Scope.ORGANIZATION, user_id=1, role_id=role.id, scope_id=organization.id)
    BindingRepository.create(db, Scope.TEAM, user_id=2, role_id=role.id, scope_id=team.id)
    MemberRepository.create(db, organization_id=organization.id, user_id=3, role_id=role.id, team_id=team.id)
    db.commit()

    TeamRepository.soft_delete(db, team)
    db.commit()

    assert GrantRepository.role_permission_pairs(db, 2, Scope.TEAM, now, team.id) == set()
    assert GrantRepository.role_permission_pairs(db, 3, Scope.TEAM, now, team.id) == set()
    assert GrantRepository.max_level(db, 2, now, team_id=team.id) == 0
    assert GrantRepository.role_permission_pairs(db, 3, Scope.ORGANIZATION, now, organization.id) == {
        ("reader", "teams.read")
    }

    OrganizationRepository.soft_delete(db, organization)
    db.commit()

    assert GrantRepository.role_permission_pairs(db, 1, Scope.ORGANIZATION, now, organization.id) == set()
    assert GrantRepository.role_permission_pairs(db, 3, Scope.ORGANIZATION, now, organization.id) == set()
    assert GrantRepository.max_level(db, 1, now, organization_id=organization.id) == 0


def test_binding_delete_returns_count(db):
    role = _role(db, "reader", [])
    BindingRepository.create(db, Scope.GLOBAL, user_id=1, role_id=role.id)
    db.commit()

    assert BindingRepository.delete(db, Scope.GLOBAL, 1, role.id) == 1
    assert BindingRepository.delete(db, Scope.GLOBAL, 1, role.id) == 0
    assert BindingRepository.count_for_role(db, role.id) == 0
