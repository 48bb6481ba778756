# backend/povhub/schemas/permission.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict

from povhub.auth.permissions import ResourceAction, ResourceType
from povhub.core.roles import UserRole


class PermissionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: UserRole
    resource: ResourceType
    action: ResourceAction
    value: bool


class PermissionOut(BaseModel):
    role: str
    resource_type: str
    action: str
    enabled: bool

    model_config = {"from_attributes": True}


class PermissionMatrixRow(PermissionOut):
    editable: bool


class PermissionMatrixOut(BaseModel):
    permissions: List[PermissionMatrixRow]
    current_user_role: UserRole
