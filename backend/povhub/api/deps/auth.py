from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from povhub.auth.permissions import AuthorizationEngine, Principal, coerce_enum
from povhub.auth.store import PermissionStore, SqlPermissionStore
from povhub.core.roles import UserRole
from povhub.core.security import bearer_scheme, decode_access_token
from povhub.db.session import get_db
from povhub.models.user import User
from povhub.services.launch import LaunchApprovalGate


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "UNAUTHORIZED", "message": message},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Session/identity resolver for protected endpoints.
    """
    user_id = decode_access_token(credentials.credentials if credentials else None)

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise _unauthorized("Invalid token subject")

    user = await db.get(User, user_uuid)
    if not user:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User inactive")
    return user


async def get_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal(id=str(user.id), role=coerce_enum(UserRole, user.role, "role"))


def get_permission_store(db: AsyncSession = Depends(get_db)) -> PermissionStore:
    return SqlPermissionStore(db)


def get_authorization_engine(
    store: PermissionStore = Depends(get_permission_store),
) -> AuthorizationEngine:
    return AuthorizationEngine(store)


def get_launch_gate(
    db: AsyncSession = Depends(get_db),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> LaunchApprovalGate:
    return LaunchApprovalGate(db, engine)


def require_roles(*allowed_roles: UserRole | str):
    """
    Route-level pre-filter (e.g. admin-only screens) before the engine runs.
    """
    allowed = {coerce_enum(UserRole, r, "role") for r in allowed_roles}

    async def _checker(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "FORBIDDEN",
                    "message": "Access denied. Only administrators can access this resource.",
                    "role": principal.role.value,
                },
            )
        return principal

    return _checker
