# backend/povhub/services/resources.py
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from povhub.auth.permissions import ResourceRef, ResourceType
from povhub.core.errors import NotFoundError
from povhub.core.roles import TeamRole, UserRole
from povhub.models.pov import Pov
from povhub.models.team import TeamMember


async def team_member_ids(db: AsyncSession, team_id: Optional[uuid.UUID]) -> frozenset[str]:
    if team_id is None:
        return frozenset()
    stmt = select(TeamMember.user_id).where(
        TeamMember.team_id == team_id,
        TeamMember.role.in_([TeamRole.OWNER.value, TeamRole.MEMBER.value]),
    )
    rows = (await db.execute(stmt)).scalars().all()
    return frozenset(str(r) for r in rows)


async def get_pov_or_404(db: AsyncSession, pov_id: uuid.UUID) -> Pov:
    pov = await db.get(Pov, pov_id)
    if pov is None:
        raise NotFoundError("PoV not found")
    return pov


def pov_ref(pov: Pov, members: frozenset[str]) -> ResourceRef:
    return ResourceRef(
        type=ResourceType.POV,
        id=str(pov.id),
        owner_id=str(pov.owner_id),
        team_member_ids=members,
    )


async def resolve_pov(db: AsyncSession, pov_id: uuid.UUID) -> ResourceRef:
    """Owner and team members of a PoV, for ownership narrowing."""
    pov = await get_pov_or_404(db, pov_id)
    return pov_ref(pov, await team_member_ids(db, pov.team_id))


def permissions_resource(target_role: UserRole | str | None = None) -> ResourceRef:
    return ResourceRef(
        type=ResourceType.PERMISSIONS,
        id="permissions",
        target_role=UserRole(target_role) if target_role is not None else None,
    )


