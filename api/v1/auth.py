# api/v1/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import TOKEN_COOKIE
from api.v1.schemas import LoginIn, MessageOut, RegisterIn, TokenOut
from config import settings
from core.errors import Conflict, Unauthenticated
from services.auth import check_password, create_token, hash_password
from services.db import User, get_session

router = APIRouter()
_LOG = logging.getLogger(__name__)


def _set_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        max_age=settings.jwt_ttl_minutes * 60,
        samesite="lax",
    )


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterIn,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> TokenOut:
    existing = (
        await db.execute(
            select(User.id).where(
                or_(User.email == body.email, User.username == body.username)
            )
        )
    ).first()
    if existing:
        raise Conflict()

    user = User(
        username=body.username,
        email=body.email,
        password=await run_in_threadpool(hash_password, body.password),
        is_active=1,
        profiling_form=0,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict() from e

    _LOG.info("registered user %s", user.id)
    token = create_token(user.id)
    _set_cookie(response, token)
    return TokenOut(message="User registered successfully", token=token)


@router.post("/login", response_model=TokenOut)
async def login(
    body: LoginIn,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> TokenOut:
    user = (
        await db.execute(select(User).where(User.email == body.email))
    ).scalar_one_or_none()
    if user is None or not await run_in_threadpool(
        check_password, body.password, user.password
    ):
        raise Unauthenticated("Invalid credentials")

    token = create_token(user.id)
    _set_cookie(response, token)
    return TokenOut(message="Login successful", token=token)


@router.post("/logout", response_model=MessageOut)
async def logout(response: Response) -> MessageOut:
    response.delete_cookie(TOKEN_COOKIE)
    return MessageOut(message="Logout successful")
