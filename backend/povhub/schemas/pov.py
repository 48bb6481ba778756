# backend/povhub/schemas/pov.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PovCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    team_id: Optional[uuid.UUID] = None


class PovUpdate(BaseModel):
    # omitted fields are left unchanged
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(None, max_length=30)
    team_id: Optional[uuid.UUID] = None

    @field_validator("title", "status")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("cannot be null")
        return v


class PovOut(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: str
    owner_id: uuid.UUID
    team_id: Optional[uuid.UUID] = None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
