from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from povhub.core.errors import StorageError
from povhub.core.logging_config import get_logger
from povhub.models.common import utcnow
from povhub.models.role_permission import RolePermission

log = get_logger("auth.store")


@dataclass(frozen=True)
class PermissionGrant:
    role: str
    resource_type: str
    action: str
    enabled: bool


def _key(value) -> str:
    return getattr(value, "value", value)


class PermissionStore(Protocol):
    async def get_all(self) -> list[PermissionGrant]: ...

    async def get(self, role, resource_type, action) -> Optional[PermissionGrant]: ...

    async def upsert(self, role, resource_type, action, enabled: bool) -> PermissionGrant: ...


def _to_grant(row: RolePermission) -> PermissionGrant:
    return PermissionGrant(
        role=row.role,
        resource_type=row.resource_type,
        action=row.action,
        enabled=bool(row.enabled),
    )


class SqlPermissionStore:
    """
    role_permissions table. No caching: every read hits the database.
    Values are stored as given; validating them is the caller's job.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self) -> list[PermissionGrant]:
        stmt = select(RolePermission).order_by(
            RolePermission.role,
            RolePermission.resource_type,
            RolePermission.action,
        )
        try:
            rows = (await self.db.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError("Could not load permissions") from e
        return [_to_grant(r) for r in rows]

    async def get(self, role, resource_type, action) -> Optional[PermissionGrant]:
        stmt = select(RolePermission).where(
            RolePermission.role == _key(role),
            RolePermission.resource_type == _key(resource_type),
            RolePermission.action == _key(action),
        )
        try:
            row = (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError("Could not load permission") from e
        return _to_grant(row) if row is not None else None

    async def upsert(self, role, resource_type, action, enabled: bool) -> PermissionGrant:
        role, resource_type, action = _key(role), _key(resource_type), _key(action)
        try:
            await self._native_upsert(role, resource_type, action, enabled)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Could not save permission") from e

        log.info("permission upserted role=%s resource=%s action=%s enabled=%s", role, resource_type, action, enabled)
        grant = await self.get(role, resource_type, action)
        if grant is None:
            raise StorageError("Permission vanished after upsert")
        return grant

    async def _native_upsert(self, role: str, resource_type: str, action: str, enabled: bool) -> None:
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            await self._select_then_write(role, resource_type, action, enabled)
            return

        now = utcnow()
        stmt = insert(RolePermission).values(
            id=uuid.uuid4(),
            role=role,
            resource_type=resource_type,
            action=action,
            enabled=enabled,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RolePermission.role, RolePermission.resource_type, RolePermission.action],
            set_={"enabled": stmt.excluded.enabled, "updated_at": stmt.excluded.updated_at},
        )
        await self.db.execute(stmt)

    async def _select_then_write(self, role: str, resource_type: str, action: str, enabled: bool) -> None:
        # Dialects without ON CONFLICT: lock the row where supported.
        stmt = (
            select(RolePermission)
            .where(
                RolePermission.role == role,
                RolePermission.resource_type == resource_type,
                RolePermission.action == action,
            )
            .with_for_update()
        )
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        if row is None:
            self.db.add(RolePermission(role=role, resource_type=resource_type, action=action, enabled=enabled))
        else:
            row.enabled = enabled
        await self.db.flush()
