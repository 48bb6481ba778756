from __future__ import annotations

import uuid
from typing import Optional

from povhub.auth.store import PermissionGrant
from povhub.core.roles import TeamRole, UserRole
from povhub.core.security import create_access_token
from povhub.models.pov import Pov
from povhub.models.role_permission import RolePermission
from povhub.models.team import Team, TeamMember
from povhub.models.user import User


def _key(value) -> str:
    return getattr(value, "value", value)


class InMemoryPermissionStore:
    def __init__(self, grants=()):
        self.rows: dict[tuple[str, str, str], bool] = {}
        self.lookups = 0
        for role, resource_type, action, enabled in grants:
            self.rows[(_key(role), _key(resource_type), _key(action))] = enabled

    async def get_all(self) -> list[PermissionGrant]:
        return [PermissionGrant(*k, enabled=v) for k, v in sorted(self.rows.items())]

    async def get(self, role, resource_type, action) -> Optional[PermissionGrant]:
        self.lookups += 1
        k = (_key(role), _key(resource_type), _key(action))
        if k not in self.rows:
            return None
        return PermissionGrant(*k, enabled=self.rows[k])

    async def upsert(self, role, resource_type, action, enabled: bool) -> PermissionGrant:
        k = (_key(role), _key(resource_type), _key(action))
        self.rows[k] = enabled
        return PermissionGrant(*k, enabled=enabled)



async def create_user(db, email: Optional[str] = None, role: UserRole = UserRole.USER) -> User:
    user = User(
        email=(email or f"user-{uuid.uuid4().hex[:8]}@example.com").lower(),
        role=role.value,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    return user


async def create_team(db, *member_ids: uuid.UUID) -> Team:
    team = Team(name=f"Team {uuid.uuid4().hex[:6]}")
    db.add(team)
    await db.flush()
    for i, user_id in enumerate(member_ids):
        role = TeamRole.OWNER if i == 0 else TeamRole.MEMBER
        db.add(TeamMember(team_id=team.id, user_id=user_id, role=role.value))
    await db.flush()
    return team


async def create_pov(db, owner: User, team: Optional[Team] = None, title: str = "Acme PoV") -> Pov:
    pov = Pov(title=title, owner_id=owner.id, team_id=team.id if team else None)
    db.add(pov)
    await db.flush()
    return pov


async def grant(db, role, resource_type, action, enabled: bool = True) -> RolePermission:
    row = RolePermission(role=_key(role), resource_type=_key(resource_type), action=_key(action), enabled=enabled)
    db.add(row)
    await db.flush()
    return row


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(subject=str(user.id), role=user.role)
    return {"Authorization": f"Bearer {token}"}
