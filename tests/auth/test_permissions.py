import pytest

from orgauthz.auth.permissions import (
    ROLE_LEVELS,
    ROLE_PERMISSIONS,
    Permission,
    Role,
    permission_display_name,
    split_permission_name,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("teams.read", ("teams", "read")),
        ("users.reset_password", ("users", "reset_password")),
        ("*", (None, None)),
        ("plain", (None, None)),
    ],
)
def test_split_permission_name(name, expected):
    assert split_permission_name(name) == expected


def test_permission_display_name():
    assert permission_display_name("teams.read") == "Read Teams"
    assert permission_display_name("users.reset_password") == "Reset Password Users"
    assert permission_display_name("*") == "All Permissions"
    assert permission_display_name("teams.") == "teams."


def test_role_levels_are_ordered():
    levels = [ROLE_LEVELS[role] for role in (Role.SUPER_ADMIN, Role.ADMIN, Role.MODERATOR, Role.USER, Role.MEMBER)]

    assert levels == sorted(levels, reverse=True)


def test_every_role_has_a_permission_set():
    assert set(ROLE_PERMISSIONS) == set(Role)
    assert ROLE_PERMISSIONS[Role.ADMIN] == {Permission.ALL}
    assert Permission.CREATE_TEAMS not in ROLE_PERMISSIONS[Role.USER]
