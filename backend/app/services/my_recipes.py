# app/services/my_recipes.py
# 사용자 레시피 (비공개 작성 → 공개 시 커뮤니티 사본 생성/동기화)
# 공개 사본에는 내용 필드만 복사한다. 평점 집계 필드는 ratings 모듈 소유.

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId

from app.core.errors import NotFoundError, ValidationError
from app.db.indexes import COMMUNITY_RECIPES, USER_RECIPES
from app.db.models.recipe import CONTENT_FIELDS, CommunityRecipeDoc, UserRecipeDoc, content_of
from app.db.models.schemas import MyRecipeIn, MyRecipePatch
from app.services.media import destroy_recipe_media
from app.services.utils import page_envelope, page_params, parse_oid, to_public

log = logging.getLogger(__name__)

MY_RECIPES_DEFAULT_LIMIT = 10
REQUIRED_FIELDS = ("title", "difficulty", "time")


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def publish_copy(db, doc: Dict[str, Any]) -> ObjectId:
    """사용자 레시피 → 새 커뮤니티 레시피, 생성된 id 반환"""
    pub = CommunityRecipeDoc(**content_of(doc), owner=doc["owner"]).model_dump()
    res = await db[COMMUNITY_RECIPES].insert_one(pub)
    log.info("published user recipe %s -> community %s", doc.get("_id"), res.inserted_id)
    return res.inserted_id


async def sync_public_copy(db, doc: Dict[str, Any]) -> Optional[ObjectId]:
    """
    공개 상태면 커뮤니티 사본을 최신 내용으로 맞춘다.
    사본이 사라졌으면 새로 만들고 링크를 갱신. 반환: 현재 publicRecipeId
    """
    if not doc.get("isPublic"):
        return doc.get("publicRecipeId")
    pub_id = doc.get("publicRecipeId")
    if pub_id:
        content = content_of(doc)
        update: Dict[str, Any] = {"$set": {**content, "updatedAt": _now()}}
        # 원본에서 빠진 내용 필드(예: 삭제된 커버)는 사본에서도 제거
        gone = [k for k in CONTENT_FIELDS if k not in content]
        if gone:
            update["$unset"] = {k: "" for k in gone}
        res = await db[COMMUNITY_RECIPES].update_one({"_id": pub_id}, update)
        if res.matched_count:
            return pub_id
        log.warning("public copy %s of %s missing, republishing", pub_id, doc.get("_id"))

    pub_id = await publish_copy(db, doc)
    await db[USER_RECIPES].update_one({"_id": doc["_id"]}, {"$set": {"publicRecipeId": pub_id}})
    doc["publicRecipeId"] = pub_id
    return pub_id


async def unpublish_copy(db, doc: Dict[str, Any]) -> None:
    pub_id = doc.get("publicRecipeId")
    if pub_id:
        await db[COMMUNITY_RECIPES].delete_one({"_id": pub_id})


async def create_recipe(db, user_id: ObjectId, payload: MyRecipeIn) -> Dict[str, Any]:
    doc = UserRecipeDoc(
        title=payload.title,
        difficulty=payload.difficulty.value,
        time=payload.time,
        imgSrc=payload.imgSrc,
        ingredients=payload.ingredients,
        steps=[s.model_dump(exclude_none=True) for s in payload.steps],
        owner=user_id,
        isPublic=payload.isPublic,
    ).model_dump(exclude_none=True)
    res = await db[USER_RECIPES].insert_one(doc)
    doc["_id"] = res.inserted_id

    if payload.isPublic:
        await sync_public_copy(db, doc)
    return to_public(doc)


async def list_recipes(db, user_id: ObjectId, page: Any = 1, limit: Any = None) -> Dict[str, Any]:
    page, limit, skip = page_params(page, limit, default_limit=MY_RECIPES_DEFAULT_LIMIT)
    filt = {"owner": user_id}
    col = db[USER_RECIPES]
    total = await col.count_documents(filt)
    docs = await col.find(filt).sort([("createdAt", -1), ("_id", -1)]).skip(skip).limit(limit).to_list(length=limit)
    return page_envelope(to_public(docs), page, limit, total)


async def load_owned(db, user_id: ObjectId, recipe_id: Any) -> Dict[str, Any]:
    oid = parse_oid(recipe_id, "recipe id")
    doc = await db[USER_RECIPES].find_one({"_id": oid, "owner": user_id})
    if not doc:
        raise NotFoundError("Recipe not found.")
    return doc


async def get_recipe(db, user_id: ObjectId, recipe_id: Any) -> Dict[str, Any]:
    return to_public(await load_owned(db, user_id, recipe_id))


async def update_recipe(db, user_id: ObjectId, recipe_id: Any, patch: MyRecipePatch) -> Dict[str, Any]:
    doc = await load_owned(db, user_id, recipe_id)

    update: Dict[str, Any] = {}
    for k in patch.model_fields_set:
        v = getattr(patch, k)
        if v is None:
            if k in REQUIRED_FIELDS or k in ("isPublic", "steps", "ingredients"):
                raise ValidationError(f"{k} must not be null.")
            update[k] = None
            continue
        if k == "difficulty":
            v = v.value
        elif k == "steps":
            v = [s.model_dump(exclude_none=True) for s in v]
        elif isinstance(v, str):
            v = v.strip()
        update[k] = v

    was_public = bool(doc.get("publicRecipeId"))
    doc.update(update)
    wants_public = bool(doc.get("isPublic"))

    # 공개 사본 동기화: private→public 생성, public→private 삭제, public 유지 시 갱신
    if wants_public:
        await sync_public_copy(db, doc)
    elif was_public:
        await unpublish_copy(db, doc)
        doc["publicRecipeId"] = None

    doc["updatedAt"] = _now()
    to_set = {k: doc.get(k) for k in (*update.keys(), "publicRecipeId", "updatedAt")}
    await db[USER_RECIPES].update_one({"_id": doc["_id"], "owner": user_id}, {"$set": to_set})
    return to_public(doc)


async def delete_recipe(db, store, user_id: ObjectId, recipe_id: Any) -> None:
    oid = parse_oid(recipe_id, "recipe id")
    doc = await db[USER_RECIPES].find_one_and_delete({"_id": oid, "owner": user_id})
    if not doc:
        raise NotFoundError("Recipe not found.")
    await unpublish_copy(db, doc)
    await destroy_recipe_media(store, doc)
