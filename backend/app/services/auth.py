# app/services/auth.py
# 회원가입 / 로그인 / 프로필 / 계정 삭제

from __future__ import annotations
import logging
from typing import Any, Dict

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.core.security import hash_password, issue_token, verify_password
from app.db.indexes import COMMUNITY_RECIPES, SHOPS, USER_RECIPES, USERS
from app.db.models.schemas import LoginIn, RegisterIn
from app.db.models.user import UserDoc
from app.services.media import destroy_recipe_media

log = logging.getLogger(__name__)


def _user_out(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "_id": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
    }


async def register(db, payload: RegisterIn) -> Dict[str, Any]:
    email = payload.email.lower()
    users = db[USERS]
    if await users.find_one({"email": email}, {"_id": 1}):
        raise ConflictError("User with this email already exists.")
    if await users.find_one({"username": payload.username}, {"_id": 1}):
        raise ConflictError("Username is already taken.")

    doc = UserDoc(
        username=payload.username,
        email=email,
        password=hash_password(payload.password),
    ).model_dump()
    try:
        res = await users.insert_one(doc)
    except DuplicateKeyError:
        # 동시 가입: unique 인덱스가 최종 판정
        raise ConflictError("User with this email or username already exists.")
    log.info("user registered: %s", res.inserted_id)
    return {"message": "User registered."}


async def login(db, payload: LoginIn) -> Dict[str, Any]:
    user = await db[USERS].find_one({"email": payload.email.strip().lower()})
    if not user or not verify_password(payload.password, user.get("password", "")):
        raise AuthenticationError("Invalid credentials.")
    return {"token": issue_token(user)}


async def profile(db, user_id: ObjectId) -> Dict[str, Any]:
    user = await db[USERS].find_one({"_id": user_id}, {"username": 1, "email": 1})
    if not user:
        raise NotFoundError("User not found.")
    return _user_out(user)


async def delete_account(db, store, user_id: ObjectId) -> None:
    """사용자 레시피(미디어 best-effort) → 본인 커뮤니티 레시피 → 가게 → 사용자 순으로 삭제"""
    for doc in await db[USER_RECIPES].find({"owner": user_id}).to_list(length=None):
        await destroy_recipe_media(store, doc)
    await db[USER_RECIPES].delete_many({"owner": user_id})
    await db[COMMUNITY_RECIPES].delete_many({"owner": user_id})
    await db[SHOPS].delete_many({"owner": user_id})

    res = await db[USERS].delete_one({"_id": user_id})
    if res.deleted_count == 0:
        raise NotFoundError("User not found.")
    log.info("account deleted: %s", user_id)
