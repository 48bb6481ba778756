from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from povhub.api.deps.auth import get_authorization_engine, get_launch_gate, get_principal
from povhub.auth.permissions import AuthorizationEngine, Principal, ResourceAction
from povhub.db.session import get_db
from povhub.schemas.launch import (
    ChecklistUpdate,
    LaunchConfirm,
    LaunchOut,
    LaunchStatusOut,
    LaunchValidationOut,
)
from povhub.services.launch import LaunchApprovalGate
from povhub.services.resources import resolve_pov

router = APIRouter(prefix="/povs/{pov_id}/launch", tags=["launch"])


@router.get("", response_model=LaunchStatusOut)
async def launch_status(
    pov_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
    gate: LaunchApprovalGate = Depends(get_launch_gate),
):
    await engine.require(principal, await resolve_pov(db, pov_id), ResourceAction.VIEW)
    return await gate.status(pov_id)


@router.post("", response_model=LaunchOut, status_code=status.HTTP_201_CREATED)
async def initiate_launch(
    pov_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
    gate: LaunchApprovalGate = Depends(get_launch_gate),
):
    await engine.require(principal, await resolve_pov(db, pov_id), ResourceAction.EDIT)
    return await gate.initiate(pov_id)


@router.put("/checklist", response_model=LaunchOut)
async def update_checklist(
    pov_id: uuid.UUID,
    payload: List[ChecklistUpdate],
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
    gate: LaunchApprovalGate = Depends(get_launch_gate),
):
    await engine.require(principal, await resolve_pov(db, pov_id), ResourceAction.EDIT)
    return await gate.update_checklist(pov_id, [(u.key, u.completed) for u in payload])


@router.get("/validation", response_model=LaunchValidationOut)
async def validate_launch(
    pov_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
    gate: LaunchApprovalGate = Depends(get_launch_gate),
):
    await engine.require(principal, await resolve_pov(db, pov_id), ResourceAction.VIEW)
    result = await gate.validate(pov_id)
    return {"valid": result.valid, "errors": result.errors}


@router.post("/confirm", response_model=LaunchOut)
async def confirm_launch(
    pov_id: uuid.UUID,
    payload: LaunchConfirm,
    principal: Principal = Depends(get_principal),
    gate: LaunchApprovalGate = Depends(get_launch_gate),
):
    # completeness first, then APPROVE permission; see LaunchApprovalGate.confirm
    return await gate.confirm(pov_id, payload.launch_id, principal)
