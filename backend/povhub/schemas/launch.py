# backend/povhub/schemas/launch.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChecklistItem(BaseModel):
    key: str
    label: str
    completed: bool = False


class ChecklistUpdate(BaseModel):
    key: str = Field(..., min_length=1, max_length=64)
    completed: bool


class LaunchOut(BaseModel):
    id: uuid.UUID
    pov_id: uuid.UUID
    confirmed: bool
    checklist: List[ChecklistItem]
    launched_at: Optional[datetime] = None
    launched_by: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LaunchValidationOut(BaseModel):
    valid: bool
    errors: List[str]


class LaunchConfirm(BaseModel):
    launch_id: uuid.UUID


class LaunchProgress(BaseModel):
    completed: int
    total: int


class LaunchStatusOut(BaseModel):
    status: Literal["NOT_INITIATED", "IN_PROGRESS", "LAUNCHED"]
    launch_id: Optional[uuid.UUID] = None
    checklist: List[ChecklistItem]
    progress: LaunchProgress
    launched_at: Optional[datetime] = None
    launched_by: Optional[uuid.UUID] = None
