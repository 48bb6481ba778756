from __future__ import annotations

from fastapi import APIRouter, Depends

from povhub.api.deps.auth import (
    get_authorization_engine,
    get_permission_store,
    require_roles,
)
from povhub.auth.permissions import AuthorizationEngine, Principal, ResourceAction, permission_matrix
from povhub.auth.store import PermissionStore
from povhub.core.errors import ForbiddenError
from povhub.core.logging_config import get_logger
from povhub.core.roles import UserRole
from povhub.schemas.permission import PermissionMatrixOut, PermissionOut, PermissionUpdate
from povhub.services.resources import permissions_resource

router = APIRouter(prefix="/admin/permissions", tags=["permissions"])

log = get_logger("api.permissions")

admin_only = require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)


@router.get("", response_model=PermissionMatrixOut)
async def list_permissions(
    principal: Principal = Depends(admin_only),
    store: PermissionStore = Depends(get_permission_store),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    await engine.require(principal, permissions_resource(), ResourceAction.VIEW)

    rows = permission_matrix(await store.get_all())
    if principal.role != UserRole.SUPER_ADMIN:
        # admins see ADMIN grants but cannot toggle them
        for row in rows:
            if row["role"] == UserRole.ADMIN.value:
                row["editable"] = False

    return {"permissions": rows, "current_user_role": principal.role}


@router.put("", response_model=PermissionOut)
async def update_permission(
    payload: PermissionUpdate,
    principal: Principal = Depends(admin_only),
    store: PermissionStore = Depends(get_permission_store),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    if payload.role == UserRole.SUPER_ADMIN:
        raise ForbiddenError(
            "Super admin permissions are always enabled and cannot be modified.",
            reason="SUPER_ADMIN_IMMUTABLE",
        )

    await engine.require(principal, permissions_resource(payload.role), ResourceAction.EDIT)

    log.info(
        "permission update by=%s (%s) target=%s resource=%s action=%s value=%s",
        principal.id,
        principal.role.value,
        payload.role.value,
        payload.resource.value,
        payload.action.value,
        payload.value,
    )
    return await store.upsert(payload.role, payload.resource, payload.action, payload.value)
