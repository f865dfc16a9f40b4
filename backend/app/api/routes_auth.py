# app/api/routes_auth.py
# 회원가입 / 로그인 / 프로필 / 계정 삭제

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from app.core.deps import CurrentUser, get_current_user
from app.db.init import get_db
from app.db.models.schemas import LoginIn, RegisterIn
from app.services import auth
from app.services.media import get_media_store

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn, db=Depends(get_db)):
    return await auth.register(db, body)


@router.post("/login")
async def login(body: LoginIn, db=Depends(get_db)):
    return await auth.login(db, body)


@router.get("/profile")
async def profile(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return {"message": "Access granted.", "user": await auth.profile(db, user.id)}


@router.get("/me")
async def me(db=Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return await auth.profile(db, user.id)


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    db=Depends(get_db),
    store=Depends(get_media_store),
    user: CurrentUser = Depends(get_current_user),
):
    await auth.delete_account(db, store, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
