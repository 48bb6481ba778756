# backend/povhub/models/workflow.py

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from povhub.db.base import Base
from povhub.models.common import utcnow


class WorkflowType(str, enum.Enum):
    PHASE_APPROVAL = "PHASE_APPROVAL"
    POV_APPROVAL = "POV_APPROVAL"


class WorkflowStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


# COMPLETED and REJECTED are terminal
WORKFLOW_TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    WorkflowStatus.PENDING: frozenset({WorkflowStatus.IN_PROGRESS, WorkflowStatus.COMPLETED, WorkflowStatus.REJECTED}),
    WorkflowStatus.IN_PROGRESS: frozenset({WorkflowStatus.COMPLETED, WorkflowStatus.REJECTED}),
    WorkflowStatus.COMPLETED: frozenset(),
    WorkflowStatus.REJECTED: frozenset(),
}


class Workflow(Base):
    __tablename__ = "workflows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    pov_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("povs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(30), nullable=False, default=WorkflowType.PHASE_APPROVAL.value)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default=WorkflowStatus.PENDING.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
