"""
Role and permission registry.

Handles:
- Role CRUD inside the global namespace or one organization's namespace
- Permission CRUD (names are globally unique)
- Role -> permission links, with replace-not-merge assignment
- Import of legacy JSON permission maps ({"*": true, "teams.read": true})

System roles and permissions are immutable here; only the seeder writes them.
"""
import json
import logging
import threading
from typing import Any, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from orgauthz.auth.permissions import RESOURCE_CATEGORIES, permission_display_name, split_permission_name
from orgauthz.db.database import transaction
from orgauthz.errors import (
    DuplicateName,
    Immutable,
    InUse,
    InvalidPermissionFormat,
    OrganizationNotFound,
    PermissionNotFound,
    RoleNotFound,
)
from orgauthz.models.base_model import Status
from orgauthz.models.permission import WILDCARD_PERMISSION, Permission
from orgauthz.models.role import Role
from orgauthz.repositories import (
    BindingRepository,
    InvitationRepository,
    MemberRepository,
    OrganizationRepository,
    PermissionRepository,
    RoleRepository,
)

logger = logging.getLogger(__name__)

ROLE_UPDATABLE_FIELDS = {"display_name", "description", "level", "status", "is_default"}
PERMISSION_UPDATABLE_FIELDS = {"display_name", "description", "category", "status"}


def _clean_name(name: Optional[str], what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError(f"{what} name is required")
    return name


class RoleRegistryService:
    """Service for managing roles, permissions and the links between them."""

    def __init__(self, db: Session, cancel_event: Optional[threading.Event] = None):
        self.db = db
        self.cancel_event = cancel_event

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def create_role(
        self,
        name: str,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        organization_id: Optional[int] = None,
        level: int = 0,
        is_default: bool = False,
        status: int = Status.ACTIVE,
        permission_ids: Optional[Iterable[int]] = None,
        created_by: Optional[int] = None,
    ) -> Role:
        """
        Create a non-system role.

        Args:
            name: Role name, unique within its namespace
            display_name: Human readable name (defaults to name)
            description: Free text
            organization_id: Owning organization, None for a global template
            level: Numeric level used by require_level checks
            is_default: Handed to new members when no role is given
            status: 1 active, 0 disabled
            permission_ids: Optional initial permission set
            created_by: User id of the creator

        Returns:
            Role object

        Raises:
            DuplicateName: If the namespace already holds a role of that name
            OrganizationNotFound: If organization_id does not exist
            PermissionNotFound: If any permission id does not exist
        """
        name = _clean_name(name, "Role")

        with transaction(self.db, self.cancel_event):
            if organization_id is not None and not OrganizationRepository.get_by_id(self.db, organization_id):
                raise OrganizationNotFound(f"Organization {organization_id} not found")

            if RoleRepository.get_by_name(self.db, name, organization_id):
                raise DuplicateName(f"Role {name!r} already exists in this scope")

            role = RoleRepository.create(
                self.db,
                name=name,
                display_name=display_name or name,
                description=description,
                organization_id=organization_id,
                level=level,
                is_system=False,
                is_default=is_default,
                status=status,
                created_by=created_by,
            )

            if permission_ids:
                ids = self._require_permissions(permission_ids)
                PermissionRepository.replace_role_permissions(self.db, role.id, ids, granted_by=created_by)

        self.db.refresh(role)
        logger.info(f"Created role {name} (org={organization_id})")
        return role

    def get_role(self, role_id: int) -> Role:
        role = RoleRepository.get_by_id(self.db, role_id)
        if not role:
            raise RoleNotFound(f"Role {role_id} not found")
        return role

    def get_role_by_name(self, name: str, organization_id: Optional[int] = None) -> Role:
        role = RoleRepository.get_by_name(self.db, name, organization_id)
        if not role:
            raise RoleNotFound(f"Role {name!r} not found")
        return role

    def list_roles(self, organization_id: Optional[int] = None, include_global: bool = True) -> List[Role]:
        return RoleRepository.list_roles(self.db, organization_id, include_global)

    def update_role(self, role_id: int, updated_by: Optional[int] = None, **patch: Any) -> Role:
        """
        Partially update a role. Keys absent from ``patch`` are left untouched.

        Raises:
            RoleNotFound: If the role does not exist
            Immutable: If the role is a system role
            ValueError: If the patch names a field that cannot be changed
        """
        unknown = set(patch) - ROLE_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update role fields: {', '.join(sorted(unknown))}")

        with transaction(self.db, self.cancel_event):
            role = self.get_role(role_id)
            if role.is_system:
                raise Immutable(f"System role {role.name} cannot be modified")

            RoleRepository.update(self.db, role, updated_by_user_id=updated_by, **patch)

        self.db.refresh(role)
        logger.info(f"Updated role {role.name}: {sorted(patch)}")
        return role

    def delete_role(self, role_id: int) -> None:
        """
        Delete a role and its permission links.

        Raises:
            RoleNotFound: If the role does not exist
            Immutable: If the role is a system role
            InUse: If the role is a default role, or memberships, bindings or
                invitations still reference it
        """
        with transaction(self.db, self.cancel_event):
            role = self.get_role(role_id)
            if role.is_system:
                raise Immutable(f"System role {role.name} cannot be deleted")
            if role.is_default:
                raise InUse(f"Role {role.name} is a default role")

            self.ensure_role_unreferenced(role)

            name = role.name
            PermissionRepository.delete_links_for_role(self.db, role.id)
            RoleRepository.delete(self.db, role)

        logger.info(f"Deleted role {name} (id={role_id})")

    def ensure_role_unreferenced(self, role: Role) -> None:
        """Raise InUse if any membership, binding or invitation points at the role."""
        references = {
            "memberships": MemberRepository.count_for_role(self.db, role.id),
            "bindings": BindingRepository.count_for_role(self.db, role.id),
            "invitations": InvitationRepository.count_for_role(self.db, role.id),
        }
        in_use = {kind: count for kind, count in references.items() if count}
        if in_use:
            detail = ", ".join(f"{count} {kind}" for kind, count in in_use.items())
            raise InUse(f"Role {role.name} is still referenced by {detail}")

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def create_permission(
        self,
        name: str,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        resource: Optional[str] = None,
        action: Optional[str] = None,
        category: Optional[str] = None,
        status: int = Status.ACTIVE,
        created_by: Optional[int] = None,
    ) -> Permission:
        """
        Create a non-system permission.

        resource, action and category default from the "resource.action" name.

        Raises:
            InvalidPermissionFormat: If the name is empty or contains whitespace
            DuplicateName: If a permission of that name exists
        """
        name = (name or "").strip()
        if not name or any(ch.isspace() for ch in name):
            raise InvalidPermissionFormat(f"Invalid permission name {name!r}")

        parsed_resource, parsed_action = split_permission_name(name)
        resource = resource or parsed_resource
        action = action or parsed_action

        with transaction(self.db, self.cancel_event):
            if PermissionRepository.get_by_name(self.db, name):
                raise DuplicateName(f"Permission {name!r} already exists")

            permission = PermissionRepository.create(
                self.db,
                name=name,
                display_name=display_name or permission_display_name(name),
                description=description,
                resource=resource,
                action=action,
                category=category or RESOURCE_CATEGORIES.get(resource),
                is_system=False,
                status=status,
                created_by=created_by,
            )

        self.db.refresh(permission)
        logger.info(f"Created permission {name}")
        return permission

    def get_permission(self, permission_id: int) -> Permission:
        permission = PermissionRepository.get_by_id(self.db, permission_id)
        if not permission:
            raise PermissionNotFound(f"Permission {permission_id} not found")
        return permission

    def get_permission_by_name(self, name: str) -> Permission:
        permission = PermissionRepository.get_by_name(self.db, name)
        if not permission:
            raise PermissionNotFound(f"Permission {name!r} not found")
        return permission

    def list_permissions(self, category: Optional[str] = None, resource: Optional[str] = None) -> List[Permission]:
        return PermissionRepository.list_permissions(self.db, category=category, resource=resource)

    def update_permission(self, permission_id: int, updated_by: Optional[int] = None, **patch: Any) -> Permission:
        unknown = set(patch) - PERMISSION_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update permission fields: {', '.join(sorted(unknown))}")

        with transaction(self.db, self.cancel_event):
            permission = self.get_permission(permission_id)
            if permission.is_system:
                raise Immutable(f"System permission {permission.name} cannot be modified")

            PermissionRepository.update(self.db, permission, updated_by_user_id=updated_by, **patch)

        self.db.refresh(permission)
        return permission

    def delete_permission(self, permission_id: int) -> None:
        """Delete a permission; its role links go with it."""
        with transaction(self.db, self.cancel_event):
            permission = self.get_permission(permission_id)
            if permission.is_system:
                raise Immutable(f"System permission {permission.name} cannot be deleted")

            name = permission.name
            PermissionRepository.delete(self.db, permission)

        logger.info(f"Deleted permission {name} (id={permission_id})")

    # ------------------------------------------------------------------
    # Role -> permission links
    # ------------------------------------------------------------------

    def _require_permissions(self, permission_ids: Iterable[int]) -> List[int]:
        ids = list(dict.fromkeys(permission_ids))
        found = {p.id for p in PermissionRepository.get_by_ids(self.db, ids)}
        missing = [pid for pid in ids if pid not in found]
        if missing:
            raise PermissionNotFound(f"Permissions not found: {missing}")
        return ids

    def _get_mutable_role(self, role_id: int) -> Role:
        role = self.get_role(role_id)
        if role.is_system:
            raise Immutable(f"Permissions of system role {role.name} cannot be changed")
        return role

    def assign_permissions_to_role(
        self,
        role_id: int,
        permission_ids: Iterable[int],
        granted_by: Optional[int] = None,
    ) -> List[Permission]:
        """
        Replace the role's permission set with exactly ``permission_ids``.

        An empty list clears the set. Nothing changes if the role or any
        permission id is missing.

        Returns:
            The role's new permission list
        """
        with transaction(self.db, self.cancel_event):
            role = self._get_mutable_role(role_id)
            ids = self._require_permissions(permission_ids)
            PermissionRepository.replace_role_permissions(self.db, role.id, ids, granted_by=granted_by)

        logger.info(f"Assigned {len(ids)} permissions to role {role.name}")
        return self.get_role_permissions(role_id)

    def remove_permissions_from_role(self, role_id: int, permission_ids: Iterable[int]) -> int:
        """Unlink the named permissions; links that do not exist are ignored."""
        with transaction(self.db, self.cancel_event):
            role = self._get_mutable_role(role_id)
            removed = PermissionRepository.remove_role_permissions(self.db, role.id, permission_ids)

        logger.info(f"Removed {removed} permissions from role {role.name}")
        return removed

    def get_role_permissions(self, role_id: int) -> List[Permission]:
        self.get_role(role_id)
        return PermissionRepository.get_role_permissions(self.db, role_id)

    def import_permission_map(
        self,
        role_id: int,
        permission_map: Union[str, dict],
        granted_by: Optional[int] = None,
    ) -> List[Permission]:
        """
        Replace a role's permissions from a legacy JSON permission map.

        Accepted shape: {"*": true, "teams.read": true, "teams.delete": false}.
        Keys mapped to true become links; "*" links the wildcard permission.
        A value of "*" under the "*" key is accepted as true.

        Raises:
            InvalidPermissionFormat: If the payload is not valid JSON, not an
                object, or holds non-boolean values
            PermissionNotFound: If a granted name is not a known permission
        """
        if isinstance(permission_map, str):
            try:
                permission_map = json.loads(permission_map)
            except json.JSONDecodeError as e:
                raise InvalidPermissionFormat(f"Permission map is not valid JSON: {e}") from e

        if not isinstance(permission_map, dict):
            raise InvalidPermissionFormat("Permission map must be a JSON object")

        granted = []
        for name, value in permission_map.items():
            if name == WILDCARD_PERMISSION and value == WILDCARD_PERMISSION:
                value = True
            if not isinstance(value, bool):
                raise InvalidPermissionFormat(f"Permission {name!r} must map to true or false")
            if value:
                granted.append(name)

        with transaction(self.db, self.cancel_event):
            role = self._get_mutable_role(role_id)
            permissions = {p.name: p.id for p in PermissionRepository.get_by_names(self.db, granted)}
            missing = [name for name in granted if name not in permissions]
            if missing:
                raise PermissionNotFound(f"Permissions not found: {missing}")

            PermissionRepository.replace_role_permissions(
                self.db, role.id, [permissions[name] for name in granted], granted_by=granted_by
            )

        logger.info(f"Imported {len(granted)} permissions into role {role.name}")
        return self.get_role_permissions(role_id)
