# backend/povhub/models/pov_launch.py

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from povhub.db.base import Base
from povhub.models.common import utcnow


class PovLaunch(Base):
    __tablename__ = "pov_launches"
    __table_args__ = (
        # at most one confirmed launch per PoV
        Index(
            "uq_pov_launches_confirmed_pov",
            "pov_id",
            unique=True,
            postgresql_where=text("confirmed"),
            sqlite_where=text("confirmed = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    pov_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("povs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # JSON array of {"key", "label", "completed"}; replaced wholesale on update
    checklist: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)

    launched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    launched_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
