from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from povhub.api.deps.auth import get_authorization_engine, get_principal
from povhub.auth.permissions import AuthorizationEngine, Principal, ResourceAction, ResourceRef, ResourceType
from povhub.core.errors import ConflictError, NotFoundError
from povhub.core.roles import ADMIN_ROLES
from povhub.db.session import get_db
from povhub.models.pov import Pov
from povhub.models.team import TeamMember
from povhub.models.workflow import WORKFLOW_TRANSITIONS, Workflow, WorkflowStatus
from povhub.schemas.pov import PovCreate, PovOut, PovUpdate
from povhub.schemas.workflow import WorkflowCreate, WorkflowOut, WorkflowUpdate
from povhub.services.resources import get_pov_or_404, pov_ref, resolve_pov, team_member_ids

router = APIRouter(prefix="/povs", tags=["povs"])

POV_COLLECTION = ResourceRef(type=ResourceType.POV)


@router.get("", response_model=List[PovOut])
async def list_povs(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    await engine.require(principal, POV_COLLECTION, ResourceAction.VIEW)

    stmt = select(Pov).order_by(Pov.created_at.desc())
    if principal.role not in ADMIN_ROLES:
        # same narrowing the engine applies per instance
        user_id = uuid.UUID(principal.id)
        member_teams = select(TeamMember.team_id).where(TeamMember.user_id == user_id)
        stmt = stmt.where(or_(Pov.owner_id == user_id, Pov.team_id.in_(member_teams)))

    return (await db.execute(stmt)).scalars().all()


@router.post("", response_model=PovOut, status_code=status.HTTP_201_CREATED)
async def create_pov(
    payload: PovCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    await engine.require(principal, POV_COLLECTION, ResourceAction.CREATE)

    pov = Pov(
        title=payload.title,
        description=payload.description,
        team_id=payload.team_id,
        owner_id=uuid.UUID(principal.id),
    )
    db.add(pov)
    await db.commit()
    await db.refresh(pov)
    return pov


@router.get("/{pov_id}", response_model=PovOut)
async def get_pov(
    pov_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    pov = await get_pov_or_404(db, pov_id)
    await engine.require(principal, pov_ref(pov, await team_member_ids(db, pov.team_id)), ResourceAction.VIEW)
    return pov


@router.patch("/{pov_id}", response_model=PovOut)
async def update_pov(
    pov_id: uuid.UUID,
    payload: PovUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    pov = await get_pov_or_404(db, pov_id)
    await engine.require(principal, pov_ref(pov, await team_member_ids(db, pov.team_id)), ResourceAction.EDIT)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(pov, field, value)

    await db.commit()
    await db.refresh(pov)
    return pov


@router.delete("/{pov_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pov(
    pov_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    pov = await get_pov_or_404(db, pov_id)
    await engine.require(principal, pov_ref(pov, await team_member_ids(db, pov.team_id)), ResourceAction.DELETE)

    await db.delete(pov)
    await db.commit()
    return None


# -----------------------------
# Approval workflows
# -----------------------------
@router.get("/{pov_id}/workflows", response_model=List[WorkflowOut])
async def list_workflows(
    pov_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    await engine.require(principal, await resolve_pov(db, pov_id), ResourceAction.VIEW)
    stmt = select(Workflow).where(Workflow.pov_id == pov_id).order_by(Workflow.created_at)
    return (await db.execute(stmt)).scalars().all()


@router.post("/{pov_id}/workflows", response_model=WorkflowOut, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    pov_id: uuid.UUID,
    payload: WorkflowCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    await engine.require(principal, await resolve_pov(db, pov_id), ResourceAction.EDIT)

    workflow = Workflow(pov_id=pov_id, type=payload.type.value)
    db.add(workflow)
    await db.commit()
    await db.refresh(workflow)
    return workflow


@router.patch("/{pov_id}/workflows/{workflow_id}", response_model=WorkflowOut)
async def update_workflow(
    pov_id: uuid.UUID,
    workflow_id: uuid.UUID,
    payload: WorkflowUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    workflow = await db.get(Workflow, workflow_id)
    if workflow is None or workflow.pov_id != pov_id:
        raise NotFoundError("Workflow not found")

    action = ResourceAction.REJECT if payload.status == WorkflowStatus.REJECTED else ResourceAction.APPROVE
    await engine.require(principal, await resolve_pov(db, pov_id), action)

    current = WorkflowStatus(workflow.status)
    if payload.status not in WORKFLOW_TRANSITIONS[current]:
        raise ConflictError(f"Workflow cannot move from {current.value} to {payload.status.value}")

    workflow.status = payload.status.value
    await db.commit()
    await db.refresh(workflow)
    return workflow
