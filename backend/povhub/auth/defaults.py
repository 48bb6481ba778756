from __future__ import annotations

from povhub.auth.permissions import ResourceAction, ResourceType
from povhub.auth.store import PermissionStore
from povhub.core.logging_config import get_logger
from povhub.core.roles import UserRole

log = get_logger("auth.defaults")

A = ResourceAction
T = ResourceType

_USER_GRANTS: dict[ResourceType, tuple[ResourceAction, ...]] = {
    T.POV: (A.VIEW, A.CREATE, A.EDIT, A.DELETE, A.COMMENT, A.UPLOAD),
    T.PHASE: (A.VIEW, A.CREATE, A.EDIT, A.DELETE),
    T.TASK: (A.VIEW, A.CREATE, A.EDIT, A.DELETE, A.ASSIGN, A.COMMENT),
    T.TEAM: (A.VIEW,),
}

# SUPER_ADMIN is implicit and never stored.
DEFAULT_GRANTS: tuple[tuple[UserRole, ResourceType, ResourceAction], ...] = (
    *((UserRole.ADMIN, t, a) for t in ResourceType for a in ResourceAction),
    *((UserRole.USER, t, a) for t, actions in _USER_GRANTS.items() for a in actions),
)


async def seed_default_permissions(store: PermissionStore) -> int:
    for role, resource_type, action in DEFAULT_GRANTS:
        await store.upsert(role, resource_type, action, True)
    log.info("seeded %d default permissions", len(DEFAULT_GRANTS))
    return len(DEFAULT_GRANTS)
