# backend/povhub/services/launch.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from povhub.auth.permissions import AuthorizationEngine, Principal, ResourceAction
from povhub.core.errors import LaunchConflictError, LaunchValidationError, NotFoundError, StorageError
from povhub.core.logging_config import get_logger
from povhub.models.common import utcnow
from povhub.models.pov_launch import PovLaunch
from povhub.models.workflow import Workflow, WorkflowStatus, WorkflowType
from povhub.services.resources import get_pov_or_404, resolve_pov

log = get_logger("launch")

DEFAULT_CHECKLIST: tuple[tuple[str, str], ...] = (
    ("teamConfirmed", "Team members confirmed"),
    ("phasesReviewed", "All phases reviewed"),
    ("budgetApproved", "Budget approved"),
    ("resourcesAllocated", "Resources allocated"),
    ("detailsConfirmed", "Details confirmed"),
)

NOT_INITIATED = "NOT_INITIATED"
IN_PROGRESS = "IN_PROGRESS"
LAUNCHED = "LAUNCHED"


@dataclass
class LaunchValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)


def default_checklist() -> list[dict]:
    return [{"key": key, "label": label, "completed": False} for key, label in DEFAULT_CHECKLIST]


class LaunchApprovalGate:
    """
    Launch lifecycle for a PoV: initiate -> tick checklist -> validate -> confirm.

    A PoV has one current launch: the confirmed one if it has been launched,
    otherwise the newest. initiate() reuses a pending launch instead of
    opening a second one.

    confirm() checks completeness first (so callers get actionable errors),
    then APPROVE permission, and only then writes. The write is a conditional
    UPDATE that only matches while no launch of the PoV is confirmed, and the
    partial unique index on pov_launches backs it up, so racing confirms
    cannot both win.
    """

    def __init__(self, db: AsyncSession, engine: AuthorizationEngine):
        self.db = db
        self.engine = engine

    async def _commit(self, what: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Could not save {what}") from e

    async def current_launch(self, pov_id: uuid.UUID) -> Optional[PovLaunch]:
        stmt = (
            select(PovLaunch)
            .where(PovLaunch.pov_id == pov_id)
            .order_by(PovLaunch.confirmed.desc(), PovLaunch.created_at.desc())
            .limit(1)
        )
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError("Could not load launch") from e

    async def initiate(self, pov_id: uuid.UUID) -> PovLaunch:
        await get_pov_or_404(self.db, pov_id)

        current = await self.current_launch(pov_id)
        if current is not None:
            if current.confirmed:
                raise LaunchConflictError("PoV has already been launched")
            return current

        launch = PovLaunch(pov_id=pov_id, confirmed=False, checklist=default_checklist())
        self.db.add(launch)
        await self._commit("launch")
        await self.db.refresh(launch)

        log.info("launch initiated pov=%s launch=%s", pov_id, launch.id)
        return launch

    async def update_checklist(self, pov_id: uuid.UUID, updates: Iterable[tuple[str, bool]]) -> PovLaunch:
        launch = await self.current_launch(pov_id)
        if launch is None:
            raise NotFoundError("Launch not found")
        if launch.confirmed:
            raise LaunchConflictError("Launch already confirmed; checklist is read-only")

        changes = dict(updates)
        # reassign the list so the JSON column is flagged dirty
        launch.checklist = [
            {**item, "completed": bool(changes[item["key"]])} if item.get("key") in changes else dict(item)
            for item in (launch.checklist or [])
        ]
        await self._commit("checklist")
        await self.db.refresh(launch)
        return launch

    async def _collect_errors(self, pov_id: uuid.UUID, launch: Optional[PovLaunch]) -> list[str]:
        errors: list[str] = []

        if launch is None:
            errors.append("Launch has not been initiated")
        else:
            for item in launch.checklist or []:
                if not item.get("completed"):
                    errors.append(f'Checklist item "{item.get("label", item.get("key"))}" not completed')

        stmt = select(func.count(Workflow.id)).where(
            Workflow.pov_id == pov_id,
            Workflow.type == WorkflowType.PHASE_APPROVAL.value,
            Workflow.status != WorkflowStatus.COMPLETED.value,
        )
        try:
            pending = int((await self.db.execute(stmt)).scalar() or 0)
        except SQLAlchemyError as e:
            raise StorageError("Could not load workflows") from e
        if pending:
            errors.append(f"{pending} phases need approval workflow completion")

        return errors

    async def validate(self, pov_id: uuid.UUID) -> LaunchValidation:
        errors = await self._collect_errors(pov_id, await self.current_launch(pov_id))
        return LaunchValidation(valid=not errors, errors=errors)

    async def _claim(self, pov_id: uuid.UUID, launch_id: uuid.UUID, principal: Principal) -> bool:
        """Mark the launch confirmed unless any launch of the PoV already is."""
        other = aliased(PovLaunch)
        already_launched = (
            select(other.id).where(other.pov_id == pov_id, other.confirmed.is_(True)).exists()
        )

        now = utcnow()
        stmt = (
            update(PovLaunch)
            .where(
                PovLaunch.id == launch_id,
                PovLaunch.confirmed.is_(False),
                ~already_launched,
            )
            .values(
                confirmed=True,
                launched_at=now,
                launched_by=uuid.UUID(str(principal.id)),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
        except IntegrityError:
            # unique index on confirmed launches: a concurrent confirm won
            await self.db.rollback()
            return False
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Could not confirm launch") from e

        if result.rowcount != 1:
            await self.db.rollback()
            return False
        return True

    async def confirm(self, pov_id: uuid.UUID, launch_id: uuid.UUID, principal: Principal) -> PovLaunch:
        try:
            launch = await self.db.get(PovLaunch, launch_id)
        except SQLAlchemyError as e:
            raise StorageError("Could not load launch") from e
        if launch is None or launch.pov_id != pov_id:
            raise NotFoundError("Launch not found")
        if launch.confirmed:
            raise LaunchConflictError("Launch already confirmed")

        current = await self.current_launch(pov_id)
        if current is not None and current.confirmed:
            raise LaunchConflictError("PoV has already been launched")
        if current is None or current.id != launch.id:
            raise LaunchConflictError("Launch has been superseded by a newer launch")

        errors = await self._collect_errors(pov_id, launch)
        if errors:
            raise LaunchValidationError(errors)

        resource = await resolve_pov(self.db, pov_id)
        await self.engine.require(principal, resource, ResourceAction.APPROVE)

        if not await self._claim(pov_id, launch_id, principal):
            raise LaunchConflictError("PoV has already been launched")
        await self._commit("launch")
        await self.db.refresh(launch)

        log.info("launch confirmed pov=%s launch=%s by=%s", pov_id, launch_id, principal.id)
        return launch

    async def status(self, pov_id: uuid.UUID) -> dict:
        launch = await self.current_launch(pov_id)
        if launch is None:
            return {
                "status": NOT_INITIATED,
                "launch_id": None,
                "checklist": [],
                "progress": {"completed": 0, "total": 0},
                "launched_at": None,
                "launched_by": None,
            }

        items = list(launch.checklist or [])
        return {
            "status": LAUNCHED if launch.confirmed else IN_PROGRESS,
            "launch_id": launch.id,
            "checklist": items,
            "progress": {
                "completed": sum(1 for i in items if i.get("completed")),
                "total": len(items),
            },
            "launched_at": launch.launched_at,
            "launched_by": launch.launched_by,
        }
