from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, Mapping, Optional, TypeVar

from povhub.core.errors import ConfigurationError, ForbiddenError
from povhub.core.logging_config import get_logger
from povhub.core.roles import ADMIN_ROLES, UserRole

if TYPE_CHECKING:
    from povhub.auth.store import PermissionGrant, PermissionStore

log = get_logger("auth")


class ResourceType(str, enum.Enum):
    POV = "pov"
    PHASE = "phase"
    TASK = "task"
    USER = "user"
    TEAM = "team"
    SETTINGS = "settings"
    ANALYTICS = "analytics"
    USER_MANAGEMENT = "user-management"
    PERMISSIONS = "permissions"
    JOB_TITLES = "job-titles"
    CRM = "crm"
    CRM_SETTINGS = "crm-settings"
    CRM_MAPPING = "crm-mapping"
    CRM_SYNC = "crm-sync"
    AUDIT = "audit"


class ResourceAction(str, enum.Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    ASSIGN = "assign"
    COMMENT = "comment"
    UPLOAD = "upload"


MUTATING_ACTIONS: FrozenSet[ResourceAction] = frozenset(
    {ResourceAction.CREATE, ResourceAction.EDIT, ResourceAction.DELETE}
)

# Whether a blanket grant is narrowed to owner / team members / admins.
# Every ResourceType must be listed; the check below fails at import otherwise.
OWNERSHIP_SCOPED: Mapping[ResourceType, bool] = {
    ResourceType.POV: True,
    ResourceType.PHASE: True,
    ResourceType.TASK: True,
    ResourceType.USER: False,
    ResourceType.TEAM: False,
    ResourceType.SETTINGS: False,
    ResourceType.ANALYTICS: False,
    ResourceType.USER_MANAGEMENT: False,
    ResourceType.PERMISSIONS: False,
    ResourceType.JOB_TITLES: False,
    ResourceType.CRM: False,
    ResourceType.CRM_SETTINGS: False,
    ResourceType.CRM_MAPPING: False,
    ResourceType.CRM_SYNC: False,
    ResourceType.AUDIT: False,
}

_unclassified = set(ResourceType) - set(OWNERSHIP_SCOPED)
if _unclassified:
    raise ConfigurationError(f"Ownership scope missing for: {sorted(t.value for t in _unclassified)}")


# Decision reasons (stable, machine readable)
SUPER_ADMIN_BYPASS = "SUPER_ADMIN_BYPASS"
ADMIN_PERMISSIONS_PROTECTED = "ADMIN_PERMISSIONS_PROTECTED"
PERMISSION_NOT_FOUND = "PERMISSION_NOT_FOUND"
PERMISSION_DISABLED = "PERMISSION_DISABLED"
NOT_OWNER_OR_MEMBER = "NOT_OWNER_OR_MEMBER"
GRANTED = "GRANTED"

_DENY_MESSAGES = {
    ADMIN_PERMISSIONS_PROTECTED: "Only super admins can modify admin permissions",
    PERMISSION_NOT_FOUND: "You do not have permission to perform this action.",
    PERMISSION_DISABLED: "You do not have permission to perform this action.",
    NOT_OWNER_OR_MEMBER: "Only the owner, team members or admins can access this resource.",
}

E = TypeVar("E", bound=enum.Enum)


def coerce_enum(enum_cls: type[E], value, what: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ConfigurationError(f"Unknown {what}: {value!r}") from None


@dataclass(frozen=True)
class Principal:
    id: str
    role: UserRole


@dataclass(frozen=True)
class ResourceRef:
    """
    What the engine needs to know about a target:
      - owner_id / team_member_ids for ownership narrowing
      - target_role when the resource is a permission grant
    id=None means the collection (create/list), which is never narrowed.
    """

    type: ResourceType
    id: Optional[str] = None
    owner_id: Optional[str] = None
    team_member_ids: FrozenSet[str] = field(default_factory=frozenset)
    target_role: Optional[UserRole] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str
    message: str = ""

    @classmethod
    def allow(cls, reason: str) -> "Decision":
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason, _DENY_MESSAGES[reason])


def is_owner_or_member(principal: Principal, resource: ResourceRef) -> bool:
    pid = str(principal.id)
    if resource.owner_id is not None and str(resource.owner_id) == pid:
        return True
    return pid in {str(m) for m in resource.team_member_ids}


class AuthorizationEngine:
    """
    ALLOW/DENY for (principal, resource, action).

    Order matters; earlier rules win:
      1. SUPER_ADMIN is always allowed
      2. non super admins never mutate ADMIN grants
      3. the stored matrix is a strict allow-list (missing row = deny)
      4. PoV/phase/task instances are narrowed to owner, team members and admins
    """

    def __init__(self, store: "PermissionStore"):
        self.store = store

    async def evaluate(self, principal: Principal, resource: ResourceRef, action) -> Decision:
        role = coerce_enum(UserRole, principal.role, "role")
        resource_type = coerce_enum(ResourceType, resource.type, "resource type")
        action = coerce_enum(ResourceAction, action, "action")
        target_role = (
            coerce_enum(UserRole, resource.target_role, "target role")
            if resource.target_role is not None
            else None
        )

        decision = await self._decide(principal, role, resource, resource_type, action, target_role)

        log.log(
            logging.DEBUG if decision.allowed else logging.INFO,
            "permission %s user=%s role=%s resource=%s:%s action=%s reason=%s",
            "granted" if decision.allowed else "denied",
            principal.id,
            role.value,
            resource_type.value,
            resource.id,
            action.value,
            decision.reason,
        )
        return decision

    async def _decide(
        self,
        principal: Principal,
        role: UserRole,
        resource: ResourceRef,
        resource_type: ResourceType,
        action: ResourceAction,
        target_role: Optional[UserRole],
    ) -> Decision:
        if role == UserRole.SUPER_ADMIN:
            return Decision.allow(SUPER_ADMIN_BYPASS)

        if (
            resource_type == ResourceType.PERMISSIONS
            and action in MUTATING_ACTIONS
            and target_role == UserRole.ADMIN
        ):
            return Decision.deny(ADMIN_PERMISSIONS_PROTECTED)

        grant = await self.store.get(role, resource_type, action)
        if grant is None:
            return Decision.deny(PERMISSION_NOT_FOUND)
        if not grant.enabled:
            return Decision.deny(PERMISSION_DISABLED)

        if (
            OWNERSHIP_SCOPED[resource_type]
            and resource.id is not None
            and action != ResourceAction.CREATE
            and role not in ADMIN_ROLES
            and not is_owner_or_member(principal, resource)
        ):
            return Decision.deny(NOT_OWNER_OR_MEMBER)

        return Decision.allow(GRANTED)

    async def check(self, principal: Principal, resource: ResourceRef, action) -> bool:
        return (await self.evaluate(principal, resource, action)).allowed

    async def require(self, principal: Principal, resource: ResourceRef, action) -> Decision:
        """Route-layer helper: raise ForbiddenError on DENY."""
        decision = await self.evaluate(principal, resource, action)
        if not decision.allowed:
            raise ForbiddenError(decision.message, reason=decision.reason)
        return decision


def permission_matrix(grants: Iterable["PermissionGrant"]) -> list[dict]:
    """
    Rows for the permission-management screen: stored USER/ADMIN grants plus
    a synthesized, read-only all-true SUPER_ADMIN block.
    """
    rows = [
        {
            "role": g.role,
            "resource_type": g.resource_type,
            "action": g.action,
            "enabled": g.enabled,
            "editable": True,
        }
        for g in grants
        if g.role != UserRole.SUPER_ADMIN.value
    ]
    rows.extend(
        {
            "role": UserRole.SUPER_ADMIN.value,
            "resource_type": t.value,
            "action": a.value,
            "enabled": True,
            "editable": False,
        }
        for t in ResourceType
        for a in ResourceAction
    )
    return rows
