# backend/povhub/api/v1/auth.py
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from povhub.api.deps.auth import get_current_user
from povhub.core.config import settings
from povhub.core.logging_config import get_logger
from povhub.core.security import create_access_token
from povhub.db.session import get_db
from povhub.models.user import User
from povhub.schemas.auth import MagicCodeRequest, MagicCodeVerify, MeResponse, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])

log = get_logger("auth.login")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def purge_expired_magic_codes(db: AsyncSession) -> None:
    stmt = (
        update(User)
        .where(User.magic_code_expires_at.is_not(None))
        .where(User.magic_code_expires_at < _utcnow())
        .values(magic_code=None, magic_code_expires_at=None)
    )
    await db.execute(stmt)


@router.post("/request-code")
async def request_code(payload: MagicCodeRequest, db: AsyncSession = Depends(get_db)):
    """
    Body: {"email": "user@example.com"}
    Only existing, active users can sign in; accounts are provisioned by admins.
    """
    email = payload.email.strip().lower()

    await purge_expired_magic_codes(db)

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()

    resp = {"status": "ok", "expires_in_minutes": settings.MAGIC_CODE_EXPIRY_MINUTES}
    if user is None or not user.is_active:
        # same response either way; don't reveal which emails exist
        await db.commit()
        return resp

    code = str(secrets.randbelow(900000) + 100000)  # 6 digits
    user.magic_code = code
    user.magic_code_expires_at = _utcnow() + timedelta(minutes=settings.MAGIC_CODE_EXPIRY_MINUTES)
    await db.commit()

    log.info("magic code issued user=%s", user.id)
    if settings.RETURN_MAGIC_CODE_IN_RESPONSE:
        resp["code"] = code
    return resp


@router.post("/verify-code", response_model=TokenResponse)
async def verify_code(payload: MagicCodeVerify, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    email = payload.email.strip().lower()
    code = payload.code.strip()

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()

    if not user or not user.magic_code or not user.magic_code_expires_at or user.magic_code != code:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHORIZED", "message": "Invalid code"},
        )

    if _as_aware(user.magic_code_expires_at) < _utcnow():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "TOKEN_EXPIRED", "message": "Code expired"},
        )

    # One-time use
    user.magic_code = None
    user.magic_code_expires_at = None
    await db.commit()

    return TokenResponse(access_token=create_access_token(subject=str(user.id), role=user.role))


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=str(user.id),
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        is_active=user.is_active,
    )
