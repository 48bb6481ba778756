# backend/povhub/core/roles.py

import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"  # always fully enabled, never editable


class TeamRole(str, enum.Enum):
    OWNER = "OWNER"
    MEMBER = "MEMBER"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})
