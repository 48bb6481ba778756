# backend/povhub/schemas/workflow.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from povhub.models.workflow import WorkflowStatus, WorkflowType


class WorkflowCreate(BaseModel):
    type: WorkflowType = WorkflowType.PHASE_APPROVAL


class WorkflowUpdate(BaseModel):
    status: WorkflowStatus


class WorkflowOut(BaseModel):
    id: uuid.UUID
    pov_id: uuid.UUID
    type: WorkflowType
    status: WorkflowStatus
    updated_at: datetime

    model_config = {"from_attributes": True}
